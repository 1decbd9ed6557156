from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from parish_staff.auth.deps import require_any_staff, require_overseer, require_parish_staff
from parish_staff.core.db import get_db
from parish_staff.models.staff import StaffAccount, StaffRole
from parish_staff.schemas.staff import (
    ApproveRequest,
    EndTermRequest,
    RejectRequest,
    StaffAccountOut,
    StaffActionResult,
    StaffAuditEntry,
    StaffListResponse,
    StaffRegistrationRequest,
    TermRecordOut,
    ToggleStatusRequest,
)
from parish_staff.services import staff_queries, status_transitions, terms
from parish_staff.services.audit import list_audit_entries
from parish_staff.services.collaborators import StaffCollaborators, get_collaborators
from parish_staff.services.errors import StaffErrorCode, StaffLifecycleError
from parish_staff.services.registration import register_staff

router = APIRouter(prefix="/parish-staff", tags=["parish-staff"])
parishes_router = APIRouter(prefix="/parishes", tags=["parish-staff"])


def _resolve_parish(account: StaffAccount, parish_id: str | None) -> str:
    """Parish staff read their own parish; overseers name the parish they want."""

    if StaffRole(account.role) == StaffRole.PARISH:
        if parish_id and parish_id != account.parish_id:
            raise StaffLifecycleError(StaffErrorCode.UNAUTHORIZED, "You can only view staff of your own parish.")
        return account.parish_id
    if not parish_id:
        raise StaffLifecycleError(StaffErrorCode.INVALID_ARGUMENT, "parish_id is required.")
    return parish_id


def _visible(viewer: StaffAccount, account: StaffAccount) -> bool:
    if StaffRole(viewer.role) == StaffRole.PARISH:
        return account.parish_id == viewer.parish_id
    return account.diocese == viewer.diocese


def _serialize(items: list[StaffAccount], viewer: StaffAccount) -> StaffListResponse:
    visible = [StaffAccountOut.model_validate(item) for item in items if _visible(viewer, item)]
    return StaffListResponse(items=visible, total=len(visible))


@router.post("/register", response_model=StaffActionResult, status_code=status.HTTP_201_CREATED)
def register(
    payload: StaffRegistrationRequest,
    db: Session = Depends(get_db),
    collaborators: StaffCollaborators = Depends(get_collaborators),
) -> StaffActionResult:
    return register_staff(db, collaborators, payload)


@router.get("/pending", response_model=StaffListResponse)
def list_pending(
    parish_id: str | None = Query(default=None),
    db: Session = Depends(get_db),
    viewer: StaffAccount = Depends(require_any_staff),
) -> StaffListResponse:
    items = staff_queries.list_pending(db, _resolve_parish(viewer, parish_id))
    return _serialize(items, viewer)


@router.get("/active", response_model=StaffAccountOut | None)
def get_active(
    parish_id: str | None = Query(default=None),
    position: str | None = Query(default=None),
    db: Session = Depends(get_db),
    viewer: StaffAccount = Depends(require_any_staff),
) -> StaffAccountOut | None:
    account = staff_queries.get_active(db, _resolve_parish(viewer, parish_id), position)
    if account is None or not _visible(viewer, account):
        return None
    return StaffAccountOut.model_validate(account)


@router.get("", response_model=StaffListResponse)
def list_staff(
    parish_id: str | None = Query(default=None),
    db: Session = Depends(get_db),
    viewer: StaffAccount = Depends(require_any_staff),
) -> StaffListResponse:
    items = staff_queries.list_active_and_inactive(db, _resolve_parish(viewer, parish_id))
    return _serialize(items, viewer)


@router.get("/{account_id}", response_model=StaffAccountOut)
def get_account(
    account_id: str,
    db: Session = Depends(get_db),
    viewer: StaffAccount = Depends(require_any_staff),
) -> StaffAccountOut:
    account = staff_queries.get_account(db, account_id)
    if not _visible(viewer, account):
        raise StaffLifecycleError(StaffErrorCode.UNAUTHORIZED, "You can only view staff you oversee.")
    return StaffAccountOut.model_validate(account)


@router.get("/{account_id}/audit", response_model=list[StaffAuditEntry])
def get_account_audit(
    account_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    viewer: StaffAccount = Depends(require_any_staff),
) -> list[StaffAuditEntry]:
    account = staff_queries.get_account(db, account_id)
    if not _visible(viewer, account):
        raise StaffLifecycleError(StaffErrorCode.UNAUTHORIZED, "You can only view staff you oversee.")
    return [StaffAuditEntry.model_validate(entry) for entry in list_audit_entries(db, account_id, limit)]


@router.post("/{account_id}/approve", response_model=StaffActionResult)
def approve(
    account_id: str,
    payload: ApproveRequest,
    db: Session = Depends(get_db),
    collaborators: StaffCollaborators = Depends(get_collaborators),
    actor: StaffAccount = Depends(require_parish_staff),
) -> StaffActionResult:
    return status_transitions.approve(db, collaborators, actor, account_id, payload.notes)


@router.post("/{account_id}/reject", response_model=StaffActionResult)
def reject(
    account_id: str,
    payload: RejectRequest,
    db: Session = Depends(get_db),
    collaborators: StaffCollaborators = Depends(get_collaborators),
    actor: StaffAccount = Depends(require_parish_staff),
) -> StaffActionResult:
    return status_transitions.reject(db, collaborators, actor, account_id, payload.reason)


@router.post("/{account_id}/status", response_model=StaffActionResult)
def toggle_status(
    account_id: str,
    payload: ToggleStatusRequest,
    db: Session = Depends(get_db),
    collaborators: StaffCollaborators = Depends(get_collaborators),
    actor: StaffAccount = Depends(require_parish_staff),
) -> StaffActionResult:
    return status_transitions.toggle_status(db, collaborators, actor, account_id, payload.status, payload.reason)


@router.post("/{account_id}/end-term", response_model=StaffActionResult)
def end_term(
    account_id: str,
    payload: EndTermRequest,
    db: Session = Depends(get_db),
    collaborators: StaffCollaborators = Depends(get_collaborators),
    overseer: StaffAccount = Depends(require_overseer),
) -> StaffActionResult:
    return terms.end_term(db, collaborators, overseer, account_id, payload.reason)


@parishes_router.get("/{parish_id}/terms", response_model=list[TermRecordOut])
def list_term_history(
    parish_id: str,
    db: Session = Depends(get_db),
    viewer: StaffAccount = Depends(require_any_staff),
) -> list[TermRecordOut]:
    records = staff_queries.list_term_history(db, _resolve_parish(viewer, parish_id))
    if StaffRole(viewer.role) != StaffRole.PARISH:
        records = [record for record in records if record.diocese == viewer.diocese]
    return [TermRecordOut.model_validate(record) for record in records]
