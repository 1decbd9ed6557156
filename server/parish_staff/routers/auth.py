from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from parish_staff.core.db import get_db
from parish_staff.schemas.auth import LoginRequest, TokenResponse
from parish_staff.services.authentication import authenticate
from parish_staff.services.collaborators import StaffCollaborators, get_collaborators

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    collaborators: StaffCollaborators = Depends(get_collaborators),
) -> TokenResponse:
    token = authenticate(db, collaborators, payload.email, payload.password)
    return TokenResponse(access_token=token)
