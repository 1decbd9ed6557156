from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable

from sqlalchemy.orm import Session

from parish_staff.core.config import settings
from parish_staff.core.db import IdentitySessionLocal, SessionLocal
from parish_staff.services.audit import DatabaseAuditSink
from parish_staff.services.identity import LocalIdentityProvider
from parish_staff.services.notifications import DatabaseNotificationSink
from parish_staff.services.side_effects import SideEffectDispatcher


@dataclass
class StaffCollaborators:
    identity: LocalIdentityProvider
    audit: DatabaseAuditSink
    notifications: DatabaseNotificationSink
    dispatcher: SideEffectDispatcher
    # Background lookups open their own sessions; request sessions stay on the request.
    session_factory: Callable[[], Session]
    single_active_staff_per_position: bool = False


def build_collaborators(
    session_factory: Callable[[], Session] = SessionLocal,
    identity_session_factory: Callable[[], Session] = IdentitySessionLocal,
    *,
    inline_side_effects: bool | None = None,
) -> StaffCollaborators:
    inline = settings.SIDE_EFFECTS_INLINE if inline_side_effects is None else inline_side_effects
    return StaffCollaborators(
        identity=LocalIdentityProvider(identity_session_factory),
        audit=DatabaseAuditSink(session_factory),
        notifications=DatabaseNotificationSink(session_factory),
        dispatcher=SideEffectDispatcher(max_workers=settings.SIDE_EFFECT_WORKERS, inline=inline),
        session_factory=session_factory,
        single_active_staff_per_position=settings.SINGLE_ACTIVE_STAFF_PER_POSITION,
    )


@lru_cache
def get_collaborators() -> StaffCollaborators:
    return build_collaborators()
