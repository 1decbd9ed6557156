"""Identity provider used to provision and verify parish staff credentials.

Credentials live in their own store (``IDENTITY_DATABASE_URL``). Provisioning always
goes through a :class:`ProvisioningContext`, which owns a private session and never
sees the session or token of whoever triggered it, so creating a new identity cannot
disturb an account that is already signed in.
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import Callable

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from parish_staff.auth.security import hash_password, verify_password
from parish_staff.core.config import settings
from parish_staff.core.db import IdentitySessionLocal
from parish_staff.models.credential import Credential
from parish_staff.models.staff import utc_now

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    pass


class CredentialAlreadyExistsError(IdentityProviderError):
    pass


class WeakCredentialError(IdentityProviderError):
    pass


class InvalidEmailError(IdentityProviderError):
    pass


def normalize_email(email: str) -> str:
    try:
        result = validate_email((email or "").strip(), check_deliverability=False)
    except EmailNotValidError as exc:
        raise InvalidEmailError(str(exc)) from exc
    return result.normalized.lower()


def validate_password_policy(password: str, min_length: int | None = None) -> None:
    required = min_length or settings.PASSWORD_MIN_LENGTH
    if len(password or "") < required:
        raise WeakCredentialError(f"Password must be at least {required} characters long.")
    if not re.search(r"[A-Za-z]", password):
        raise WeakCredentialError("Password must include at least one letter.")
    if not re.search(r"[0-9]", password):
        raise WeakCredentialError("Password must include at least one digit.")


class ProvisioningContext:
    """Short-lived provisioning scope with its own identity-store session."""

    def __init__(self, session_factory: Callable[[], Session], password_min_length: int | None = None) -> None:
        self._session = session_factory()
        self._password_min_length = password_min_length
        self.closed = False

    def __enter__(self) -> "ProvisioningContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self.closed:
            raise IdentityProviderError("Provisioning context is closed")

    def create_credential(self, email: str, password: str) -> str:
        self._ensure_open()
        normalized = normalize_email(email)
        validate_password_policy(password, self._password_min_length)

        try:
            exists = (
                self._session.query(Credential.id)
                .filter(func.lower(Credential.email) == normalized)
                .first()
            )
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise IdentityProviderError("Identity store unavailable") from exc
        if exists:
            raise CredentialAlreadyExistsError(normalized)

        credential = Credential(
            id=uuid.uuid4().hex,
            email=normalized,
            hashed_password=hash_password(password),
        )
        self._session.add(credential)
        try:
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise CredentialAlreadyExistsError(normalized) from exc
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise IdentityProviderError("Identity store unavailable") from exc
        logger.info("credential_created", extra={"identity_id": credential.id})
        return credential.id

    def delete_credential(self, identity_id: str) -> None:
        self._ensure_open()
        try:
            deleted = self._session.query(Credential).filter(Credential.id == identity_id).delete()
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise IdentityProviderError("Identity store unavailable") from exc
        logger.info("credential_deleted", extra={"identity_id": identity_id, "deleted": deleted})

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._session.close()


class LocalIdentityProvider:
    def __init__(
        self,
        session_factory: Callable[[], Session] = IdentitySessionLocal,
        password_min_length: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._password_min_length = password_min_length

    def provisioning_context(self) -> ProvisioningContext:
        return ProvisioningContext(self._session_factory, self._password_min_length)

    def create_credential(self, email: str, password: str) -> str:
        with self.provisioning_context() as context:
            return context.create_credential(email, password)

    def delete_credential(self, identity_id: str) -> None:
        with self.provisioning_context() as context:
            context.delete_credential(identity_id)

    def find_by_email(self, email: str) -> Credential | None:
        session = self._session_factory()
        try:
            return (
                session.query(Credential)
                .filter(func.lower(Credential.email) == email.strip().lower())
                .first()
            )
        finally:
            session.close()

    def authenticate(self, email: str, password: str) -> str | None:
        """Return the identity id when the email/password pair is valid."""

        session = self._session_factory()
        try:
            credential = (
                session.query(Credential)
                .filter(func.lower(Credential.email) == (email or "").strip().lower())
                .first()
            )
            if credential is None or credential.disabled:
                return None
            if not verify_password(password, credential.hashed_password):
                return None
            credential.last_sign_in_at = utc_now()
            session.commit()
            return credential.id
        finally:
            session.close()
