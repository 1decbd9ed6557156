from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from parish_staff.models.audit import StaffAuditLog
from parish_staff.models.notification import StaffNotification
from parish_staff.models.staff import StaffAccount, StaffPosition, StaffStatus
from parish_staff.services import audit as audit_actions
from parish_staff.services import registration
from parish_staff.services.collaborators import build_collaborators
from parish_staff.services.errors import StaffErrorCode, StaffLifecycleError
from parish_staff.services.identity import IdentityProviderError
from parish_staff.services.registration import register_staff
from parish_staff.services.side_effects import SideEffectDispatcher

from conftest import PARISH_ID


def test_register_creates_pending_account_and_credential(db_session, collaborators, registration_payload):
    result = register_staff(db_session, collaborators, registration_payload())

    assert result.success is True
    assert "pending approval" in result.message
    account = db_session.get(StaffAccount, result.account_id)
    assert account.status == StaffStatus.PENDING
    assert account.email == "ana.reyes@stjoseph-parish.org"
    assert account.position == StaffPosition.SECRETARY
    assert account.registration_source == "self"
    assert account.approved_at is None and account.rejected_at is None

    credential = collaborators.identity.find_by_email("ana.reyes@stjoseph-parish.org")
    assert credential is not None
    assert credential.id == result.account_id


def test_register_records_audit_and_notifies_current_staff(db_session, collaborators, make_account, registration_payload):
    current = make_account(name="Current Secretary")

    result = register_staff(db_session, collaborators, registration_payload())

    entry = db_session.query(StaffAuditLog).filter_by(target_id=result.account_id).one()
    assert entry.action == audit_actions.REGISTER
    assert entry.actor_id == result.account_id
    assert entry.details["parish_id"] == PARISH_ID

    notification = db_session.query(StaffNotification).filter_by(kind="account_pending_approval").one()
    assert notification.recipient_ids == [current.id]
    assert notification.related_data["staff_id"] == result.account_id


def test_register_without_active_staff_notifies_parish_role(db_session, collaborators, registration_payload):
    register_staff(db_session, collaborators, registration_payload())

    notification = db_session.query(StaffNotification).one()
    assert notification.recipient_ids is None
    assert notification.recipient_roles == ["parish"]


def test_register_normalizes_email_case(db_session, collaborators, registration_payload):
    result = register_staff(db_session, collaborators, registration_payload(email="  Ana.Reyes@StJoseph-Parish.org "))

    assert db_session.get(StaffAccount, result.account_id).email == "ana.reyes@stjoseph-parish.org"


def test_register_duplicate_email_is_rejected(db_session, collaborators, registration_payload):
    register_staff(db_session, collaborators, registration_payload())

    with pytest.raises(StaffLifecycleError) as excinfo:
        register_staff(db_session, collaborators, registration_payload(name="Someone Else"))

    assert excinfo.value.code == StaffErrorCode.ALREADY_EXISTS
    assert db_session.query(StaffAccount).count() == 1


def test_register_weak_password(db_session, collaborators, registration_payload):
    with pytest.raises(StaffLifecycleError) as excinfo:
        register_staff(db_session, collaborators, registration_payload(password="short"))

    assert excinfo.value.code == StaffErrorCode.WEAK_CREDENTIAL
    assert collaborators.identity.find_by_email("ana.reyes@stjoseph-parish.org") is None


def test_register_invalid_email(db_session, collaborators, registration_payload):
    with pytest.raises(StaffLifecycleError) as excinfo:
        register_staff(db_session, collaborators, registration_payload(email="not-an-email"))

    assert excinfo.value.code == StaffErrorCode.INVALID_ARGUMENT
    assert excinfo.value.message == registration.INVALID_EMAIL_MESSAGE


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": "   "},
        {"diocese": "manila"},
        {"parish_id": "St Joseph"},
        {"position": "sacristan"},
        {"parish_name": ""},
    ],
)
def test_register_rejects_invalid_fields(db_session, collaborators, registration_payload, overrides):
    with pytest.raises(StaffLifecycleError) as excinfo:
        register_staff(db_session, collaborators, registration_payload(**overrides))

    assert excinfo.value.code == StaffErrorCode.INVALID_ARGUMENT
    assert collaborators.identity.find_by_email("ana.reyes@stjoseph-parish.org") is None


def test_profile_failure_removes_credential(db_session, collaborators, registration_payload, monkeypatch):
    def broken_profile(*args, **kwargs):
        raise RuntimeError("document store unavailable")

    monkeypatch.setattr(registration, "_create_profile", broken_profile)

    with pytest.raises(StaffLifecycleError) as excinfo:
        register_staff(db_session, collaborators, registration_payload())

    assert excinfo.value.code == StaffErrorCode.INTERNAL
    assert excinfo.value.message == registration.FAILED_MESSAGE
    assert collaborators.identity.find_by_email("ana.reyes@stjoseph-parish.org") is None
    assert db_session.query(StaffAccount).count() == 0


def test_failed_cleanup_still_reports_original_failure(db_session, collaborators, registration_payload, monkeypatch):
    def broken_profile(*args, **kwargs):
        raise RuntimeError("document store unavailable")

    monkeypatch.setattr(registration, "_create_profile", broken_profile)
    original_context = collaborators.identity.provisioning_context

    def context_with_broken_delete():
        context = original_context()

        def fail_delete(identity_id):
            raise IdentityProviderError("identity store unavailable")

        context.delete_credential = fail_delete
        return context

    monkeypatch.setattr(collaborators.identity, "provisioning_context", context_with_broken_delete)

    with pytest.raises(StaffLifecycleError) as excinfo:
        register_staff(db_session, collaborators, registration_payload())

    assert excinfo.value.code == StaffErrorCode.INTERNAL


def test_side_effect_failures_do_not_fail_registration(db_session, collaborators, registration_payload, monkeypatch):
    def broken_record(*args, **kwargs):
        raise RuntimeError("audit store down")

    monkeypatch.setattr(collaborators.audit, "record", broken_record)
    monkeypatch.setattr(collaborators.notifications, "notify_pending_approval", broken_record)

    result = register_staff(db_session, collaborators, registration_payload())

    assert result.success is True
    assert db_session.get(StaffAccount, result.account_id).status == StaffStatus.PENDING


def test_provisioning_context_is_closed_after_registration(db_session, collaborators, registration_payload, monkeypatch):
    contexts = _track_contexts(collaborators, monkeypatch)

    register_staff(db_session, collaborators, registration_payload())

    assert len(contexts) == 1
    assert contexts[0].closed is True


def _track_contexts(collaborators, monkeypatch) -> list:
    contexts = []
    original_context = collaborators.identity.provisioning_context

    def tracking_context():
        context = original_context()
        contexts.append(context)
        return context

    monkeypatch.setattr(collaborators.identity, "provisioning_context", tracking_context)
    return contexts


def test_identity_store_outage_is_reported_as_internal(
    db_session, session_factory, tmp_path, registration_payload, monkeypatch
):
    # No credentials table: every identity query fails.
    broken_engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'identity_down.db'}")
    collaborators = build_collaborators(session_factory, sessionmaker(bind=broken_engine), inline_side_effects=True)
    contexts = _track_contexts(collaborators, monkeypatch)

    with pytest.raises(StaffLifecycleError) as excinfo:
        register_staff(db_session, collaborators, registration_payload())

    assert excinfo.value.code == StaffErrorCode.INTERNAL
    assert excinfo.value.message == registration.FAILED_MESSAGE
    assert contexts[0].closed is True
    assert db_session.query(StaffAccount).count() == 0
    broken_engine.dispose()


def test_provisioning_context_is_closed_when_dispatcher_is_shut_down(
    db_session, collaborators, registration_payload, monkeypatch
):
    collaborators.dispatcher = SideEffectDispatcher(max_workers=1)
    collaborators.dispatcher.shutdown(timeout=1)
    contexts = _track_contexts(collaborators, monkeypatch)

    result = register_staff(db_session, collaborators, registration_payload())

    assert result.success is True
    assert contexts[0].closed is True
