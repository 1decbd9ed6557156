from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, Index, JSON, String, Text, event
from sqlalchemy.orm import Mapper

from parish_staff.core.db import Base


class StaffRole(str, enum.Enum):
    PARISH = "parish"
    CHANCERY_OFFICE = "chancery_office"


class StaffPosition(str, enum.Enum):
    SECRETARY = "secretary"
    PRIEST = "priest"


class StaffStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    REJECTED = "rejected"
    ARCHIVED = "archived"


class TermStatus(str, enum.Enum):
    COMPLETED = "completed"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StaffAccount(Base):
    __tablename__ = "staff_accounts"
    __table_args__ = (
        CheckConstraint(
            "status != 'pending' OR (approved_at IS NULL AND rejected_at IS NULL)",
            name="ck_staff_accounts_pending_undecided",
        ),
        Index("ix_staff_accounts_parish_status", "parish_id", "status"),
    )

    # Same value as the identity provider's credential id.
    id = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    role = Column(Enum(StaffRole, name="staff_role", values_callable=_enum_values), nullable=False, default=StaffRole.PARISH)
    diocese = Column(String(64), nullable=False, index=True)
    parish_id = Column(String(128), nullable=True)
    parish_name = Column(String(255), nullable=True)
    municipality = Column(String(255), nullable=True)
    position = Column(Enum(StaffPosition, name="staff_position", values_callable=_enum_values), nullable=True)
    phone = Column(String(50), nullable=True)
    status = Column(Enum(StaffStatus, name="staff_status", values_callable=_enum_values), nullable=False, default=StaffStatus.PENDING)
    registration_source = Column(String(32), nullable=False, default="self")

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    registered_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    updated_by = Column(String(64), nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(String(64), nullable=True)
    approved_by_name = Column(String(255), nullable=True)
    approval_notes = Column(Text, nullable=True)
    term_start = Column(DateTime(timezone=True), nullable=True)

    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(String(64), nullable=True)
    rejected_by_name = Column(String(255), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    deactivated_at = Column(DateTime(timezone=True), nullable=True)
    deactivated_by = Column(String(64), nullable=True)
    deactivation_reason = Column(Text, nullable=True)
    reactivated_at = Column(DateTime(timezone=True), nullable=True)
    reactivated_by = Column(String(64), nullable=True)

    archived_at = Column(DateTime(timezone=True), nullable=True)
    archived_by = Column(String(64), nullable=True)
    archived_reason = Column(Text, nullable=True)


class TermRecordImmutableError(RuntimeError):
    pass


class TermRecord(Base):
    __tablename__ = "staff_term_records"

    id = Column(String(64), primary_key=True)
    staff_id = Column(String(64), nullable=False, index=True)
    staff_name = Column(String(255), nullable=False)
    staff_email = Column(String(255), nullable=False)
    diocese = Column(String(64), nullable=False)
    parish_id = Column(String(128), nullable=True, index=True)
    parish_name = Column(String(255), nullable=True)
    position = Column(Enum(StaffPosition, name="staff_position", values_callable=_enum_values), nullable=True)
    term_start = Column(DateTime(timezone=True), nullable=False)
    term_end = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(32), nullable=False, default=TermStatus.COMPLETED.value)
    end_reason = Column(Text, nullable=True)
    ended_by = Column(String(64), nullable=True)
    approved_successor_id = Column(String(64), nullable=True)
    stats = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)


@event.listens_for(TermRecord, "before_update")
def _reject_term_record_update(mapper: Mapper, connection, target: TermRecord) -> None:
    raise TermRecordImmutableError(f"Term record {target.id} is append-only")
