"""Self-registration of parish staff.

Creating an account touches two stores. The credential is created first, in an
isolated provisioning context; the profile document keyed by the new identity id
is the commit point. If the profile write fails the credential is deleted again so
neither store is left with an orphan.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from parish_staff.models.staff import StaffAccount, StaffPosition, StaffRole, StaffStatus, utc_now
from parish_staff.schemas.staff import StaffActionResult, StaffRegistrationRequest
from parish_staff.services import audit as audit_actions
from parish_staff.services import staff_queries
from parish_staff.services.collaborators import StaffCollaborators
from parish_staff.services.errors import StaffErrorCode, StaffLifecycleError
from parish_staff.services.identity import (
    CredentialAlreadyExistsError,
    IdentityProviderError,
    InvalidEmailError,
    ProvisioningContext,
    WeakCredentialError,
    normalize_email,
)
from parish_staff.services.lifecycle import (
    StaffSummary,
    require_diocese,
    require_parish_id,
    require_position,
    require_text,
    summarize,
)

logger = logging.getLogger(__name__)

REGISTERED_MESSAGE = "Registration successful! Your account is pending approval by current parish staff."
DUPLICATE_MESSAGE = (
    "This email is already registered. If you previously submitted a registration, please wait for "
    "approval. Otherwise, try logging in or contact the administrator."
)
INVALID_EMAIL_MESSAGE = "Invalid email format. Please check your email address."
FAILED_MESSAGE = "Registration failed. Please try again later."


def _create_credential(context: ProvisioningContext, email: str, password: str) -> str:
    try:
        return context.create_credential(email, password)
    except CredentialAlreadyExistsError:
        raise StaffLifecycleError(StaffErrorCode.ALREADY_EXISTS, DUPLICATE_MESSAGE) from None
    except WeakCredentialError as exc:
        raise StaffLifecycleError(StaffErrorCode.WEAK_CREDENTIAL, f"Password is too weak. {exc}") from None
    except InvalidEmailError:
        raise StaffLifecycleError(StaffErrorCode.INVALID_ARGUMENT, INVALID_EMAIL_MESSAGE) from None
    except IdentityProviderError as exc:
        logger.exception("parish_staff_credential_failed", extra={"error": str(exc)})
        raise StaffLifecycleError(StaffErrorCode.INTERNAL, FAILED_MESSAGE) from exc


def _create_profile(
    db: Session,
    identity_id: str,
    email: str,
    payload: StaffRegistrationRequest,
    *,
    name: str,
    diocese: str,
    parish_id: str,
    parish_name: str,
    position: StaffPosition,
) -> StaffAccount:
    now = utc_now()
    account = StaffAccount(
        id=identity_id,
        email=email,
        name=name,
        role=StaffRole.PARISH,
        diocese=diocese,
        parish_id=parish_id,
        parish_name=parish_name,
        municipality=(payload.municipality or "").strip() or None,
        position=position,
        phone=(payload.phone or "").strip() or None,
        status=StaffStatus.PENDING,
        registration_source="self",
        created_at=now,
        registered_at=now,
    )
    db.add(account)
    db.commit()
    return account


def _compensate(context: ProvisioningContext, identity_id: str) -> None:
    try:
        context.delete_credential(identity_id)
        logger.info("parish_staff_orphan_credential_removed", extra={"identity_id": identity_id})
    except Exception:
        # Left for reconciliation; the caller still gets the original failure.
        logger.exception("parish_staff_orphan_credential_cleanup_failed", extra={"identity_id": identity_id})


def _notify_pending_approval(collaborators: StaffCollaborators, registrant: StaffSummary) -> None:
    current_staff_id: str | None = None
    session = collaborators.session_factory()
    try:
        current = staff_queries.get_active(session, registrant.parish_id, registrant.position)
        if current is None:
            current = staff_queries.get_active(session, registrant.parish_id)
        current_staff_id = current.id if current else None
    except Exception:
        logger.warning(
            "parish_staff_active_lookup_failed",
            extra={"parish_id": registrant.parish_id},
            exc_info=True,
        )
    finally:
        session.close()
    collaborators.notifications.notify_pending_approval(registrant, current_staff_id)


def register_staff(
    db: Session,
    collaborators: StaffCollaborators,
    payload: StaffRegistrationRequest,
) -> StaffActionResult:
    name = require_text(payload.name, "Name")
    diocese = require_diocese(payload.diocese)
    parish_id = require_parish_id(payload.parish_id)
    parish_name = require_text(payload.parish_name, "Parish name")
    position = require_position(payload.position)
    try:
        email = normalize_email(payload.email)
    except InvalidEmailError:
        raise StaffLifecycleError(StaffErrorCode.INVALID_ARGUMENT, INVALID_EMAIL_MESSAGE) from None

    context = collaborators.identity.provisioning_context()
    try:
        identity_id = _create_credential(context, email, payload.password)
        try:
            account = _create_profile(
                db,
                identity_id,
                email,
                payload,
                name=name,
                diocese=diocese,
                parish_id=parish_id,
                parish_name=parish_name,
                position=position,
            )
        except Exception as exc:
            db.rollback()
            logger.exception(
                "parish_staff_profile_write_failed",
                extra={"identity_id": identity_id, "parish_id": parish_id},
            )
            _compensate(context, identity_id)
            raise StaffLifecycleError(StaffErrorCode.INTERNAL, FAILED_MESSAGE) from exc
    finally:
        context.close()

    registrant = summarize(account)
    logger.info(
        "parish_staff_registered",
        extra={"staff_id": registrant.id, "parish_id": parish_id, "position": position.value},
    )

    dispatcher = collaborators.dispatcher
    dispatcher.dispatch(
        "audit.parish_staff_register",
        collaborators.audit.record,
        registrant,
        audit_actions.REGISTER,
        "user",
        registrant.id,
        resource_name=registrant.name,
        metadata={
            "diocese": diocese,
            "parish_id": parish_id,
            "parish_name": parish_name,
            "municipality": account.municipality,
            "position": position.value,
        },
        parish_id=parish_id,
    )
    dispatcher.dispatch("notify.pending_approval", _notify_pending_approval, collaborators, registrant)

    return StaffActionResult(message=REGISTERED_MESSAGE, account_id=registrant.id)
