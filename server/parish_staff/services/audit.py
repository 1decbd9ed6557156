from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, Iterable

from sqlalchemy.orm import Session

from parish_staff.core.db import SessionLocal
from parish_staff.models.audit import StaffAuditLog
from parish_staff.services.lifecycle import StaffSummary

logger = logging.getLogger(__name__)

REGISTER = "parish_staff.register"
APPROVE = "parish_staff.approve"
REJECT = "parish_staff.reject"
ARCHIVE = "parish_staff.archive"
TERM_END = "parish_staff.term_end"
DEACTIVATE = "user.deactivate"
REACTIVATE = "user.reactivate"


def field_change(field: str, old_value: Any, new_value: Any) -> Dict[str, Any]:
    return {"field": field, "old_value": _to_string(old_value), "new_value": _to_string(new_value)}


def _to_string(value: Any) -> str | None:
    if value is None:
        return None
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def _clean(data: Dict[str, Any] | None) -> Dict[str, Any] | None:
    """Drop ``None`` entries and make values JSON-friendly."""

    if not data:
        return None
    cleaned: Dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, datetime):
            value = value.isoformat()
        elif hasattr(value, "value"):
            value = value.value
        cleaned[key] = value
    return cleaned or None


class DatabaseAuditSink:
    """Audit trail for staff lifecycle actions, written through its own sessions."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    def record(
        self,
        actor: StaffSummary,
        action: str,
        target_type: str,
        target_id: str,
        *,
        resource_name: str | None = None,
        changes: Iterable[Dict[str, Any]] | None = None,
        metadata: Dict[str, Any] | None = None,
        parish_id: str | None = None,
    ) -> int:
        session = self._session_factory()
        try:
            entry = StaffAuditLog(
                actor_id=actor.id,
                actor_email=actor.email,
                actor_name=actor.name,
                actor_role=actor.role,
                diocese=actor.diocese,
                parish_id=parish_id or actor.parish_id,
                action=action,
                target_type=target_type,
                target_id=target_id,
                resource_name=resource_name,
                changes=list(changes) if changes else None,
                details=_clean(metadata),
            )
            session.add(entry)
            session.commit()
            logger.info(
                "audit_recorded",
                extra={"audit_action": action, "target_id": target_id, "actor_id": actor.id, "audit_id": entry.id},
            )
            return entry.id
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_term_stats(self, staff_id: str, since: datetime | None = None) -> Dict[str, Any]:
        session = self._session_factory()
        try:
            query = session.query(StaffAuditLog.action, StaffAuditLog.created_at).filter(
                StaffAuditLog.actor_id == staff_id
            )
            if since is not None:
                query = query.filter(StaffAuditLog.created_at >= since)
            rows = query.order_by(StaffAuditLog.created_at.desc()).all()
        finally:
            session.close()

        breakdown = Counter(action for action, _ in rows)
        last_action_at = rows[0][1] if rows else None
        return {
            "total_actions": len(rows),
            "breakdown_by_kind": dict(sorted(breakdown.items())),
            "last_action_at": last_action_at.isoformat() if last_action_at else None,
        }


def empty_term_stats() -> Dict[str, Any]:
    return {"total_actions": 0, "breakdown_by_kind": {}, "last_action_at": None}


def list_audit_entries(db: Session, target_id: str, limit: int = 50) -> list[StaffAuditLog]:
    return (
        db.query(StaffAuditLog)
        .filter(StaffAuditLog.target_id == target_id)
        .order_by(StaffAuditLog.created_at.desc(), StaffAuditLog.id.desc())
        .limit(limit)
        .all()
    )
