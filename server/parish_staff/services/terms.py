"""Formal end of a parish staff tenure.

The term record is written before the account is archived. If the record cannot
be written nothing else happens; if the archive step then loses to a concurrent
change, the record stays behind and the account remains active.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from parish_staff.models.staff import StaffAccount, StaffRole, StaffStatus, TermRecord, TermStatus, utc_now
from parish_staff.schemas.staff import StaffActionResult
from parish_staff.services import audit as audit_actions
from parish_staff.services.audit import empty_term_stats, field_change
from parish_staff.services.collaborators import StaffCollaborators
from parish_staff.services.errors import StaffErrorCode
from parish_staff.services.lifecycle import (
    StaffSummary,
    apply_transition,
    ensure_actor_active,
    fail,
    load_account,
    require_text,
    summarize,
)

logger = logging.getLogger(__name__)


def _term_stats(collaborators: StaffCollaborators, staff_id: str, since: datetime | None) -> dict:
    try:
        return collaborators.audit.get_term_stats(staff_id, since=since)
    except Exception:
        logger.warning("parish_staff_term_stats_unavailable", extra={"staff_id": staff_id}, exc_info=True)
        return empty_term_stats()


def close_term(
    db: Session,
    collaborators: StaffCollaborators,
    actor: StaffSummary,
    staff: StaffAccount,
    reason: str,
    *,
    audit_action: str = audit_actions.TERM_END,
    successor_id: str | None = None,
) -> TermRecord:
    """Write the term record for ``staff`` and archive the account."""

    now = utc_now()
    term_start = staff.term_start or staff.approved_at or staff.created_at or now
    stats = _term_stats(collaborators, staff.id, term_start)
    subject = summarize(staff)

    record = TermRecord(
        id=uuid.uuid4().hex,
        staff_id=staff.id,
        staff_name=staff.name,
        staff_email=staff.email,
        diocese=staff.diocese,
        parish_id=staff.parish_id,
        parish_name=staff.parish_name,
        position=staff.position,
        term_start=term_start,
        term_end=now,
        status=TermStatus.COMPLETED.value,
        end_reason=reason,
        ended_by=actor.id,
        approved_successor_id=successor_id,
        stats=stats,
        created_at=now,
    )
    db.add(record)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("parish_staff_term_record_failed", extra={"staff_id": staff.id})
        raise fail(StaffErrorCode.INTERNAL, "Failed to end term. Please try again.") from exc

    archived = apply_transition(
        db,
        staff.id,
        StaffStatus.ACTIVE,
        StaffStatus.ARCHIVED,
        {"archived_at": now, "archived_by": actor.id, "archived_reason": reason},
        actor_id=actor.id,
    )
    if not archived:
        logger.warning(
            "parish_staff_term_record_without_archive",
            extra={"staff_id": staff.id, "term_record_id": record.id},
        )
        raise fail(StaffErrorCode.ALREADY_PROCESSED, "This account changed before the term could be closed.")

    logger.info(
        "parish_staff_term_closed",
        extra={"staff_id": staff.id, "term_record_id": record.id, "ended_by": actor.id},
    )
    collaborators.dispatcher.dispatch(
        f"audit.{audit_action}",
        collaborators.audit.record,
        actor,
        audit_action,
        "user",
        subject.id,
        resource_name=subject.name,
        changes=[field_change("status", StaffStatus.ACTIVE, StaffStatus.ARCHIVED)],
        metadata={
            "parish_id": subject.parish_id,
            "position": subject.position,
            "reason": reason,
            "term_record_id": record.id,
            "successor_id": successor_id,
            "term_stats": stats,
        },
        parish_id=subject.parish_id,
    )
    return record


def end_term(
    db: Session,
    collaborators: StaffCollaborators,
    overseer: StaffAccount,
    staff_id: str,
    reason: str,
) -> StaffActionResult:
    if StaffRole(overseer.role) != StaffRole.CHANCERY_OFFICE:
        raise fail(StaffErrorCode.UNAUTHORIZED, "Only the Chancery Office can end staff terms.")
    ensure_actor_active(overseer)

    staff = load_account(db, staff_id)
    if staff.diocese != overseer.diocese:
        raise fail(StaffErrorCode.UNAUTHORIZED, "You can only manage staff in your own diocese.")
    if StaffStatus(staff.status) != StaffStatus.ACTIVE:
        raise fail(StaffErrorCode.INVALID_TRANSITION, "This account is not active.")
    reason = require_text(reason, "Reason")

    record = close_term(db, collaborators, summarize(overseer), staff, reason)
    return StaffActionResult(
        message=f"{record.staff_name}'s term has been ended.",
        account_id=staff_id,
        term_record_id=record.id,
    )

