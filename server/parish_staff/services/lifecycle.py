"""State machine and shared guards for parish staff accounts.

Every mutation goes through :func:`apply_transition`, which issues a single
conditional ``UPDATE ... WHERE status = <expected>``. The status read by the guards
is therefore re-checked by the database at write time, and of two racing callers
only one can match the row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

from slugify import slugify
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from parish_staff.core.config import settings
from parish_staff.models.staff import StaffAccount, StaffPosition, StaffRole, StaffStatus, utc_now
from parish_staff.services.errors import StaffErrorCode, StaffLifecycleError

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({StaffStatus.REJECTED, StaffStatus.ARCHIVED})

# event -> (from, to)
TRANSITIONS: Dict[str, tuple[StaffStatus, StaffStatus]] = {
    "approve": (StaffStatus.PENDING, StaffStatus.ACTIVE),
    "reject": (StaffStatus.PENDING, StaffStatus.REJECTED),
    "deactivate": (StaffStatus.ACTIVE, StaffStatus.INACTIVE),
    "reactivate": (StaffStatus.INACTIVE, StaffStatus.ACTIVE),
    "end_term": (StaffStatus.ACTIVE, StaffStatus.ARCHIVED),
}


def is_legal_transition(current: StaffStatus | str, target: StaffStatus | str) -> bool:
    current, target = StaffStatus(current), StaffStatus(target)
    return any(source == current and dest == target for source, dest in TRANSITIONS.values())


@dataclass(frozen=True)
class StaffSummary:
    """Detached snapshot of an account, safe to hand to background side effects."""

    id: str
    name: str
    email: str
    diocese: str
    role: str
    parish_id: str | None = None
    parish_name: str | None = None
    position: str | None = None


def _value(item: Any) -> Any:
    return item.value if hasattr(item, "value") else item


def summarize(account: StaffAccount) -> StaffSummary:
    return StaffSummary(
        id=account.id,
        name=account.name or account.email,
        email=account.email,
        diocese=account.diocese,
        role=_value(account.role),
        parish_id=account.parish_id,
        parish_name=account.parish_name,
        position=_value(account.position),
    )


def fail(code: StaffErrorCode, message: str) -> StaffLifecycleError:
    return StaffLifecycleError(code, message)


def require_text(value: str | None, field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise fail(StaffErrorCode.INVALID_ARGUMENT, f"{field} is required.")
    return cleaned


def require_diocese(diocese: str) -> str:
    cleaned = (diocese or "").strip().lower()
    if cleaned not in settings.DIOCESES:
        raise fail(StaffErrorCode.INVALID_ARGUMENT, "Unknown diocese.")
    return cleaned


def require_parish_id(parish_id: str) -> str:
    cleaned = (parish_id or "").strip()
    if not cleaned or slugify(cleaned, separator="_") != cleaned:
        raise fail(StaffErrorCode.INVALID_ARGUMENT, "Parish identifier is invalid.")
    return cleaned


def require_position(position: str | StaffPosition) -> StaffPosition:
    try:
        return StaffPosition(_value(position))
    except ValueError:
        raise fail(StaffErrorCode.INVALID_ARGUMENT, "Position must be secretary or priest.") from None


def load_account(db: Session, account_id: str, *, not_found_message: str = "Staff member not found.") -> StaffAccount:
    # populate_existing so guards see the persisted row, not an identity-map copy.
    account = (
        db.query(StaffAccount)
        .populate_existing()
        .filter(StaffAccount.id == account_id)
        .first()
    )
    if account is None:
        raise fail(StaffErrorCode.NOT_FOUND, not_found_message)
    return account


def ensure_parish_staff(actor: StaffAccount, message: str) -> None:
    if StaffRole(actor.role) != StaffRole.PARISH:
        raise fail(StaffErrorCode.UNAUTHORIZED, message)


def ensure_same_parish(actor: StaffAccount, target: StaffAccount, message: str) -> None:
    if not actor.parish_id or actor.parish_id != target.parish_id:
        raise fail(StaffErrorCode.UNAUTHORIZED, message)


def ensure_actor_active(actor: StaffAccount) -> None:
    if StaffStatus(actor.status) != StaffStatus.ACTIVE:
        raise fail(StaffErrorCode.UNAUTHORIZED, "Your account must be active to perform this action.")


def apply_transition(
    db: Session,
    account_id: str,
    expected: StaffStatus,
    new_status: StaffStatus,
    fields: Dict[str, Any],
    *,
    actor_id: str | None = None,
) -> bool:
    """Conditionally move ``account_id`` from ``expected`` to ``new_status``.

    Returns False, without writing anything, when the persisted status no longer
    equals ``expected``. Commits on success.
    """

    if not is_legal_transition(expected, new_status):
        raise fail(StaffErrorCode.INVALID_TRANSITION, "This status change is not allowed.")

    values = dict(fields)
    values["status"] = new_status
    values.setdefault("updated_at", utc_now())
    if actor_id is not None:
        values.setdefault("updated_by", actor_id)

    try:
        result = db.execute(
            update(StaffAccount)
            .where(StaffAccount.id == account_id, StaffAccount.status == expected)
            .values(**values)
        )
        if result.rowcount != 1:
            db.rollback()
            return False
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("staff_transition_write_failed", extra={"staff_id": account_id, "to_status": new_status.value})
        raise fail(StaffErrorCode.INTERNAL, "Unable to update the account. Please try again.") from exc
    return True
