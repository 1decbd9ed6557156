from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy.orm import Session

from parish_staff.core.db import SessionLocal
from parish_staff.models.notification import StaffNotification
from parish_staff.services.lifecycle import StaffSummary

logger = logging.getLogger(__name__)

POSITION_LABELS = {"secretary": "Parish Secretary", "priest": "Parish Priest"}


def position_label(position: str | None) -> str:
    return POSITION_LABELS.get(position or "", "Parish Staff")


class DatabaseNotificationSink:
    """Queues in-app notifications for the dashboard inbox."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    def _store(self, notification: StaffNotification) -> int:
        session = self._session_factory()
        try:
            session.add(notification)
            session.commit()
            return notification.id
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def notify_pending_approval(self, new_staff: StaffSummary, current_active_staff_id: str | None = None) -> int:
        label = position_label(new_staff.position)
        notification = StaffNotification(
            kind="account_pending_approval",
            priority="high",
            title=f"New {label} registration",
            message=(
                f"{new_staff.name} ({new_staff.email}) registered as {label} for "
                f"{new_staff.parish_name or new_staff.parish_id} and is awaiting approval."
            ),
            recipient_ids=[current_active_staff_id] if current_active_staff_id else None,
            # Without a known active staff member every parish account of the parish sees it.
            recipient_roles=None if current_active_staff_id else ["parish"],
            diocese=new_staff.diocese,
            parish_id=new_staff.parish_id,
            related_data={"staff_id": new_staff.id, "position": new_staff.position},
        )
        notification_id = self._store(notification)
        logger.info(
            "parish_staff_pending_approval_notified",
            extra={
                "staff_id": new_staff.id,
                "parish_id": new_staff.parish_id,
                "recipient_id": current_active_staff_id,
            },
        )
        return notification_id

    def notify_approved(self, approved_staff: StaffSummary, approver: StaffSummary) -> int:
        notification = StaffNotification(
            kind="account_approved",
            priority="medium",
            title="Your account has been approved",
            message=(
                f"{approver.name} approved your {position_label(approved_staff.position)} account for "
                f"{approved_staff.parish_name or approved_staff.parish_id}. You can now sign in."
            ),
            recipient_ids=[approved_staff.id],
            diocese=approved_staff.diocese,
            parish_id=approved_staff.parish_id,
            related_data={"approved_by": approver.id, "approved_by_name": approver.name, "approved_by_role": approver.role},
        )
        notification_id = self._store(notification)
        logger.info(
            "parish_staff_approved_notified",
            extra={"staff_id": approved_staff.id, "approver_id": approver.id},
        )
        return notification_id
