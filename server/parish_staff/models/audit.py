from __future__ import annotations

from sqlalchemy import Column, DateTime, Index, Integer, JSON, String

from parish_staff.core.db import Base
from parish_staff.models.staff import utc_now


class StaffAuditLog(Base):
    __tablename__ = "staff_audit_logs"
    __table_args__ = (Index("ix_staff_audit_logs_actor_created", "actor_id", "created_at"),)

    id = Column(Integer, primary_key=True)
    actor_id = Column(String(64), nullable=False)
    actor_email = Column(String(255), nullable=True)
    actor_name = Column(String(255), nullable=True)
    actor_role = Column(String(32), nullable=True)
    diocese = Column(String(64), nullable=True)
    parish_id = Column(String(128), nullable=True)
    action = Column(String(64), nullable=False)
    target_type = Column(String(32), nullable=False)
    target_id = Column(String(64), nullable=False, index=True)
    resource_name = Column(String(255), nullable=True)
    changes = Column(JSON, nullable=True)
    # "metadata" is reserved on declarative classes.
    details = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False, index=True)
