from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from parish_staff.core.config import settings


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"future": True, "connect_args": {"check_same_thread": False}}
    return {
        "future": True,
        "pool_pre_ping": True,
        "pool_timeout": settings.DB_POOL_TIMEOUT_SECONDS,
        "connect_args": {"options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_SECONDS * 1000}"},
    }


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)
Base = declarative_base()

# Credentials live in their own store so the identity provider can fail independently
# of the profile documents.
identity_engine = create_engine(settings.IDENTITY_DATABASE_URL, **_engine_options(settings.IDENTITY_DATABASE_URL))
IdentitySessionLocal = sessionmaker(
    bind=identity_engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)
IdentityBase = declarative_base()


def get_db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
