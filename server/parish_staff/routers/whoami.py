from fastapi import APIRouter, Depends

from parish_staff.auth.deps import get_current_account
from parish_staff.models.staff import StaffAccount
from parish_staff.schemas.staff import StaffAccountOut

router = APIRouter(tags=["auth"])


@router.get("/whoami", response_model=StaffAccountOut)
def whoami(account: StaffAccount = Depends(get_current_account)) -> StaffAccountOut:
    return StaffAccountOut.model_validate(account)
