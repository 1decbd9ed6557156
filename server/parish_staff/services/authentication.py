from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from parish_staff.auth.security import create_access_token
from parish_staff.models.staff import StaffAccount, StaffRole, StaffStatus, utc_now
from parish_staff.services.collaborators import StaffCollaborators
from parish_staff.services.errors import StaffErrorCode, StaffLifecycleError

logger = logging.getLogger(__name__)

# Same message for unknown email, wrong password and non-active accounts.
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"


def authenticate(db: Session, collaborators: StaffCollaborators, email: str, password: str) -> str:
    identity_id = collaborators.identity.authenticate(email, password)
    if identity_id is None:
        raise StaffLifecycleError(StaffErrorCode.UNAUTHORIZED, INVALID_CREDENTIALS_MESSAGE)

    account = db.get(StaffAccount, identity_id)
    if account is None or account.status != StaffStatus.ACTIVE:
        logger.info(
            "staff_login_refused",
            extra={"identity_id": identity_id, "status": StaffStatus(account.status).value if account else None},
        )
        raise StaffLifecycleError(StaffErrorCode.UNAUTHORIZED, INVALID_CREDENTIALS_MESSAGE)

    account.last_login_at = utc_now()
    db.commit()
    logger.info("staff_login", extra={"staff_id": account.id})
    return create_access_token(subject=account.id, role=StaffRole(account.role).value)
