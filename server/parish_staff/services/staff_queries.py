from __future__ import annotations

from sqlalchemy.orm import Session

from parish_staff.models.staff import StaffAccount, StaffPosition, StaffRole, StaffStatus, TermRecord
from parish_staff.services.lifecycle import load_account, require_position


def _parish_staff(db: Session, parish_id: str):
    # populate_existing: results must reflect the latest committed state, not the identity map.
    return (
        db.query(StaffAccount)
        .populate_existing()
        .filter(StaffAccount.role == StaffRole.PARISH, StaffAccount.parish_id == parish_id)
    )


def list_pending(db: Session, parish_id: str) -> list[StaffAccount]:
    return (
        _parish_staff(db, parish_id)
        .filter(StaffAccount.status == StaffStatus.PENDING)
        .order_by(StaffAccount.registered_at.desc(), StaffAccount.created_at.desc())
        .all()
    )


def get_active(db: Session, parish_id: str, position: StaffPosition | str | None = None) -> StaffAccount | None:
    query = _parish_staff(db, parish_id).filter(StaffAccount.status == StaffStatus.ACTIVE)
    if position:
        query = query.filter(StaffAccount.position == require_position(position))
    return query.order_by(StaffAccount.term_start.asc(), StaffAccount.created_at.asc()).first()


def list_active_and_inactive(db: Session, parish_id: str) -> list[StaffAccount]:
    return (
        _parish_staff(db, parish_id)
        .filter(StaffAccount.status.in_([StaffStatus.ACTIVE, StaffStatus.INACTIVE]))
        .order_by(StaffAccount.name.asc(), StaffAccount.created_at.asc())
        .all()
    )


def get_account(db: Session, account_id: str) -> StaffAccount:
    return load_account(db, account_id)


def list_term_history(db: Session, parish_id: str) -> list[TermRecord]:
    return (
        db.query(TermRecord)
        .filter(TermRecord.parish_id == parish_id)
        .order_by(TermRecord.term_start.desc(), TermRecord.created_at.desc())
        .all()
    )
