from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from parish_staff.models.staff import StaffAccount, StaffRole, StaffStatus, utc_now
from parish_staff.schemas.staff import StaffActionResult
from parish_staff.services import audit as audit_actions
from parish_staff.services.audit import field_change
from parish_staff.services.collaborators import StaffCollaborators
from parish_staff.services.errors import StaffErrorCode, StaffLifecycleError
from parish_staff.services.lifecycle import (
    TERMINAL_STATUSES,
    StaffSummary,
    apply_transition,
    ensure_actor_active,
    ensure_parish_staff,
    ensure_same_parish,
    fail,
    load_account,
    require_text,
    summarize,
)
from parish_staff.services.notifications import position_label
from parish_staff.services.terms import close_term

logger = logging.getLogger(__name__)

ALREADY_PROCESSED_MESSAGE = "This registration has already been processed."


def _load_pending_target(db: Session, actor: StaffAccount, target_id: str, verb: str) -> StaffAccount:
    ensure_parish_staff(actor, f"Only current parish staff can {verb} parish staff registrations.")
    target = load_account(db, target_id, not_found_message="Pending registration not found.")
    ensure_same_parish(actor, target, f"You can only {verb} staff for your own parish.")
    ensure_actor_active(actor)
    return target


def _hand_off(
    db: Session,
    collaborators: StaffCollaborators,
    approver: StaffSummary,
    successor: StaffAccount,
) -> list[str]:
    """Archive the other active holders of the successor's position."""

    predecessors = (
        db.query(StaffAccount)
        .filter(
            StaffAccount.role == StaffRole.PARISH,
            StaffAccount.parish_id == successor.parish_id,
            StaffAccount.position == successor.position,
            StaffAccount.status == StaffStatus.ACTIVE,
            StaffAccount.id != successor.id,
        )
        .all()
    )
    archived: list[str] = []
    for predecessor in predecessors:
        try:
            close_term(
                db,
                collaborators,
                approver,
                predecessor,
                f"Succeeded by {successor.name}",
                audit_action=audit_actions.ARCHIVE,
                successor_id=successor.id,
            )
        except StaffLifecycleError as exc:
            # The approval itself is already committed.
            logger.warning(
                "parish_staff_hand_off_failed",
                extra={"staff_id": predecessor.id, "successor_id": successor.id, "error": exc.message},
            )
            continue
        archived.append(predecessor.id)
    return archived


def approve(
    db: Session,
    collaborators: StaffCollaborators,
    actor: StaffAccount,
    target_id: str,
    notes: str | None = None,
) -> StaffActionResult:
    target = _load_pending_target(db, actor, target_id, "approve")
    if StaffStatus(target.status) != StaffStatus.PENDING:
        raise fail(StaffErrorCode.ALREADY_PROCESSED, ALREADY_PROCESSED_MESSAGE)

    approver = summarize(actor)
    now = utc_now()
    notes = (notes or "").strip() or None
    approved = apply_transition(
        db,
        target.id,
        StaffStatus.PENDING,
        StaffStatus.ACTIVE,
        {
            "approved_at": now,
            "approved_by": approver.id,
            "approved_by_name": approver.name,
            "approval_notes": notes,
            "term_start": now,
        },
        actor_id=approver.id,
    )
    if not approved:
        raise fail(StaffErrorCode.ALREADY_PROCESSED, ALREADY_PROCESSED_MESSAGE)

    new_staff = summarize(target)
    logger.info(
        "parish_staff_approved",
        extra={"staff_id": new_staff.id, "approved_by": approver.id, "parish_id": new_staff.parish_id},
    )

    archived_ids: list[str] = []
    if collaborators.single_active_staff_per_position:
        archived_ids = _hand_off(db, collaborators, approver, target)

    collaborators.dispatcher.dispatch(
        "audit.parish_staff_approve",
        collaborators.audit.record,
        approver,
        audit_actions.APPROVE,
        "user",
        new_staff.id,
        resource_name=new_staff.name,
        changes=[field_change("status", StaffStatus.PENDING, StaffStatus.ACTIVE)],
        metadata={
            "diocese": new_staff.diocese,
            "parish_id": new_staff.parish_id,
            "parish_name": new_staff.parish_name,
            "position": new_staff.position,
            "notes": notes,
        },
        parish_id=new_staff.parish_id,
    )
    collaborators.dispatcher.dispatch(
        "notify.approved",
        collaborators.notifications.notify_approved,
        new_staff,
        approver,
    )

    return StaffActionResult(
        message=f"{new_staff.name} has been approved as a {position_label(new_staff.position)}.",
        account_id=new_staff.id,
        archived_staff_id=archived_ids[0] if archived_ids else None,
    )


def reject(
    db: Session,
    collaborators: StaffCollaborators,
    actor: StaffAccount,
    target_id: str,
    reason: str,
) -> StaffActionResult:
    target = _load_pending_target(db, actor, target_id, "reject")
    reason = require_text(reason, "Rejection reason")
    if StaffStatus(target.status) != StaffStatus.PENDING:
        raise fail(StaffErrorCode.ALREADY_PROCESSED, ALREADY_PROCESSED_MESSAGE)

    rejecter = summarize(actor)
    rejected = apply_transition(
        db,
        target.id,
        StaffStatus.PENDING,
        StaffStatus.REJECTED,
        {
            "rejected_at": utc_now(),
            "rejected_by": rejecter.id,
            "rejected_by_name": rejecter.name,
            "rejection_reason": reason,
        },
        actor_id=rejecter.id,
    )
    if not rejected:
        raise fail(StaffErrorCode.ALREADY_PROCESSED, ALREADY_PROCESSED_MESSAGE)

    subject = summarize(target)
    logger.info("parish_staff_rejected", extra={"staff_id": subject.id, "rejected_by": rejecter.id})
    collaborators.dispatcher.dispatch(
        "audit.parish_staff_reject",
        collaborators.audit.record,
        rejecter,
        audit_actions.REJECT,
        "user",
        subject.id,
        resource_name=subject.name,
        changes=[field_change("status", StaffStatus.PENDING, StaffStatus.REJECTED)],
        metadata={
            "diocese": subject.diocese,
            "parish_id": subject.parish_id,
            "parish_name": subject.parish_name,
            "position": subject.position,
            "reason": reason,
        },
        parish_id=subject.parish_id,
    )
    return StaffActionResult(
        message=f"Registration for {subject.name} has been rejected.",
        account_id=subject.id,
    )


def toggle_status(
    db: Session,
    collaborators: StaffCollaborators,
    actor: StaffAccount,
    target_id: str,
    desired: StaffStatus | str,
    reason: str | None = None,
) -> StaffActionResult:
    ensure_parish_staff(actor, "Only parish staff can manage parish accounts.")
    if actor.id == target_id:
        raise fail(StaffErrorCode.UNAUTHORIZED, "You cannot change the status of your own account.")
    try:
        desired = StaffStatus(desired.value if hasattr(desired, "value") else desired)
    except ValueError:
        desired = None
    if desired not in (StaffStatus.ACTIVE, StaffStatus.INACTIVE):
        raise fail(StaffErrorCode.INVALID_ARGUMENT, "Status must be active or inactive.")

    target = load_account(db, target_id)
    ensure_same_parish(actor, target, "You can only manage staff in your own parish.")
    ensure_actor_active(actor)

    current = StaffStatus(target.status)
    if current in TERMINAL_STATUSES:
        raise fail(StaffErrorCode.INVALID_TRANSITION, "This account is closed and its status can no longer change.")
    if desired == StaffStatus.INACTIVE and current != StaffStatus.ACTIVE:
        raise fail(StaffErrorCode.INVALID_TRANSITION, "Only active accounts can be deactivated.")
    if desired == StaffStatus.ACTIVE and current != StaffStatus.INACTIVE:
        raise fail(StaffErrorCode.INVALID_TRANSITION, "Only inactive accounts can be reactivated.")

    manager = summarize(actor)
    now = utc_now()
    reason = (reason or "").strip() or None
    if desired == StaffStatus.INACTIVE:
        fields = {
            "deactivated_at": now,
            "deactivated_by": manager.id,
            "deactivation_reason": reason or "Deactivated by parish staff",
        }
        action, label = audit_actions.DEACTIVATE, "deactivated"
    else:
        fields = {"reactivated_at": now, "reactivated_by": manager.id}
        action, label = audit_actions.REACTIVATE, "reactivated"

    if not apply_transition(db, target.id, current, desired, fields, actor_id=manager.id):
        raise fail(StaffErrorCode.ALREADY_PROCESSED, "This account was changed by someone else. Refresh and try again.")

    subject = summarize(target)
    logger.info(
        "parish_staff_status_changed",
        extra={"staff_id": subject.id, "from_status": current.value, "to_status": desired.value, "changed_by": manager.id},
    )
    collaborators.dispatcher.dispatch(
        f"audit.{action}",
        collaborators.audit.record,
        manager,
        action,
        "user",
        subject.id,
        resource_name=subject.name,
        changes=[field_change("status", current, desired)],
        metadata={"reason": reason, "parish_id": subject.parish_id},
        parish_id=subject.parish_id,
    )
    return StaffActionResult(
        message=f"{subject.name}'s account has been {label}.",
        account_id=subject.id,
    )
