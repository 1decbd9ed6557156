from __future__ import annotations

import os
from collections.abc import Generator
from datetime import timedelta
from pathlib import Path

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./parish_staff_test.db")
os.environ.setdefault("IDENTITY_DATABASE_URL", "sqlite+pysqlite:///./parish_identity_test.db")
os.environ.setdefault("SIDE_EFFECTS_INLINE", "true")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

import parish_staff.models  # noqa: F401
from parish_staff.auth.deps import get_current_account
from parish_staff.core.db import Base, IdentityBase, get_db
from parish_staff.main import app
from parish_staff.models.staff import StaffAccount, StaffPosition, StaffRole, StaffStatus, utc_now
from parish_staff.schemas.staff import StaffRegistrationRequest
from parish_staff.services.collaborators import StaffCollaborators, build_collaborators, get_collaborators

PARISH_ID = "st_joseph_tagbilaran"
OTHER_PARISH_ID = "holy_cross_talibon"


def _sqlite_factory(path: Path) -> tuple:
    engine = create_engine(f"sqlite+pysqlite:///{path}", connect_args={"check_same_thread": False})
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    return engine, factory


@pytest.fixture()
def session_factory(tmp_path: Path) -> Generator[sessionmaker, None, None]:
    engine, factory = _sqlite_factory(tmp_path / "staff.db")
    Base.metadata.create_all(bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def identity_session_factory(tmp_path: Path) -> Generator[sessionmaker, None, None]:
    engine, factory = _sqlite_factory(tmp_path / "identity.db")
    IdentityBase.metadata.create_all(bind=engine)
    yield factory
    IdentityBase.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def collaborators(session_factory: sessionmaker, identity_session_factory: sessionmaker) -> StaffCollaborators:
    return build_collaborators(session_factory, identity_session_factory, inline_side_effects=True)


@pytest.fixture()
def client(session_factory: sessionmaker, collaborators: StaffCollaborators) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides.clear()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_collaborators] = lambda: collaborators
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def authorize(client: TestClient):
    def _apply(account: StaffAccount):
        app.dependency_overrides[get_current_account] = lambda: account

    yield _apply
    app.dependency_overrides.pop(get_current_account, None)


@pytest.fixture()
def make_account(db_session: Session):
    counter = {"n": 0}

    def _make(
        *,
        name: str = "Maria Santos",
        role: StaffRole = StaffRole.PARISH,
        status: StaffStatus = StaffStatus.ACTIVE,
        diocese: str = "tagbilaran",
        parish_id: str | None = PARISH_ID,
        position: StaffPosition | None = StaffPosition.SECRETARY,
        email: str | None = None,
    ) -> StaffAccount:
        counter["n"] += 1
        now = utc_now()
        account = StaffAccount(
            id=f"staff-{counter['n']}",
            email=email or f"staff{counter['n']}@stjoseph-parish.org",
            name=name,
            role=role,
            diocese=diocese,
            parish_id=parish_id if role == StaffRole.PARISH else None,
            parish_name="St. Joseph Parish" if role == StaffRole.PARISH else None,
            position=position if role == StaffRole.PARISH else None,
            status=status,
            created_at=now - timedelta(days=60),
            registered_at=now - timedelta(days=60),
        )
        if status != StaffStatus.PENDING:
            account.approved_at = now - timedelta(days=30)
            account.term_start = now - timedelta(days=30)
        db_session.add(account)
        db_session.commit()
        db_session.refresh(account)
        return account

    return _make


@pytest.fixture()
def overseer(make_account) -> StaffAccount:
    return make_account(name="Chancellor", role=StaffRole.CHANCERY_OFFICE, email="chancery@tagbilaran-diocese.org")


@pytest.fixture()
def registration_payload():
    def _build(**overrides) -> StaffRegistrationRequest:
        data = {
            "email": "ana.reyes@stjoseph-parish.org",
            "password": "Secret123",
            "name": "Ana Reyes",
            "diocese": "tagbilaran",
            "parish_id": PARISH_ID,
            "parish_name": "St. Joseph Parish",
            "municipality": "Tagbilaran City",
            "position": "secretary",
            "phone": "+63 38 411 0000",
        }
        data.update(overrides)
        return StaffRegistrationRequest(**data)

    return _build
