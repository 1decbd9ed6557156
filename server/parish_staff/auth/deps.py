from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from parish_staff.core.config import settings
from parish_staff.core.db import get_db
from parish_staff.models.staff import StaffAccount, StaffRole, StaffStatus
from parish_staff.services.errors import StaffErrorCode, StaffLifecycleError

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_account(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> StaffAccount:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    token = credentials.credentials
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    subject = payload.get("sub")
    if subject is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    # Re-read on every request so a deactivated or archived account loses access immediately.
    account = (
        db.query(StaffAccount)
        .populate_existing()
        .filter(StaffAccount.id == str(subject))
        .first()
    )
    if not account:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown account")
    if account.status != StaffStatus.ACTIVE:
        raise StaffLifecycleError(StaffErrorCode.UNAUTHORIZED, "Your account must be active to perform this action.")
    return account


def require_roles(*roles: StaffRole) -> Callable[[StaffAccount], StaffAccount]:
    def checker(account: StaffAccount = Depends(get_current_account)) -> StaffAccount:
        if StaffRole(account.role) not in roles:
            raise StaffLifecycleError(StaffErrorCode.UNAUTHORIZED, "You do not have permission to perform this action.")
        return account

    return checker


require_parish_staff = require_roles(StaffRole.PARISH)
require_overseer = require_roles(StaffRole.CHANCERY_OFFICE)
require_any_staff = require_roles(StaffRole.PARISH, StaffRole.CHANCERY_OFFICE)
