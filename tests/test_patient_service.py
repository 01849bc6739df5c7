# tests/test_patient_service.py
from unittest.mock import MagicMock, patch

import pytest

from patient_intake.backends.base import Query
from patient_intake.core.errors import (
    ConflictError,
    DuplicateSubmissionError,
    NotFoundError,
    TransportError,
)
from patient_intake.schemas.patient import PatientRegister
from patient_intake.schemas.user import UserCreate
from patient_intake.services.idempotency_service import PENDING, RegistrationGuard
from patient_intake.services.patient_service import (
    IdentityDocumentUpload,
    create_user,
    get_patient,
    get_user,
    register_patient,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _patient_count(backend) -> int:
    return backend.documents.list_documents(backend.patient_collection_id, [])["total"]


# --- Accounts ---

def test_create_user_returns_new_account(backend):
    account = create_user(
        backend.accounts,
        user_in=UserCreate(name="Ada Lovelace", email="ada@x.com", phone="+447700900123"),
    )

    assert account.id
    assert account.email == "ada@x.com"
    assert account.name == "Ada Lovelace"
    assert account.phone == "+447700900123"


def test_create_user_same_email_returns_original_account(backend, user):
    again = create_user(
        backend.accounts,
        user_in=UserCreate(name="Johnny Doe", email="john@x.com", phone="+15559990000"),
    )

    assert again.id == user.id
    assert backend.accounts.list([Query.equal("email", ["john@x.com"])])["total"] == 1


def test_create_user_phone_taken_by_other_email_is_conflict(backend, user):
    with pytest.raises(ConflictError):
        create_user(
            backend.accounts,
            user_in=UserCreate(name="Someone Else", email="else@x.com", phone=user.phone),
        )


def test_get_user(backend, user):
    assert get_user(backend.accounts, user.id).email == "john@x.com"


def test_get_user_unknown_id_is_not_found(backend):
    with pytest.raises(NotFoundError):
        get_user(backend.accounts, "does-not-exist")


# --- Registration ---

def test_register_without_document_leaves_reference_fields_empty(backend, patient_payload):
    record = register_patient(backend, payload=patient_payload)

    assert record.id
    assert record.user_id == patient_payload.user_id
    assert record.identification_document_id is None
    assert record.identification_document_url is None
    assert record.birth_date.year == 1990


def test_register_with_document_links_uploaded_file(backend, patient_payload):
    upload = IdentityDocumentUpload(content=PNG_BYTES, file_name="id.png")

    record = register_patient(backend, payload=patient_payload, identification_document=upload)

    assert record.identification_document_id
    assert record.identification_document_id in record.identification_document_url
    assert record.identification_document_url == backend.file_view_url(record.identification_document_id)

    stored, path = backend.files.get_file(backend.bucket_id, record.identification_document_id)
    assert stored["name"] == "id.png"
    assert stored["mimeType"] == "image/png"
    assert path.read_bytes() == PNG_BYTES


def test_view_url_format(backend):
    assert backend.file_view_url("abc123") == (
        "http://testserver/api/v1/storage/buckets/identification/files/abc123/view?project=intake-test"
    )


def test_failed_upload_creates_no_record(backend, patient_payload):
    upload = IdentityDocumentUpload(content=PNG_BYTES, file_name="id.png")

    with patch.object(backend.files, "create_file", side_effect=TransportError("storage down")):
        with pytest.raises(TransportError):
            register_patient(backend, payload=patient_payload, identification_document=upload)

    assert get_patient(backend, patient_payload.user_id) is None


def test_register_for_unknown_user_is_not_found(backend, patient_form_data):
    payload = PatientRegister.model_validate({**patient_form_data, "userId": "ghost-user"})
    upload = IdentityDocumentUpload(content=PNG_BYTES, file_name="id.png")

    with patch.object(backend.files, "create_file", MagicMock()) as create_file:
        with pytest.raises(NotFoundError):
            register_patient(backend, payload=payload, identification_document=upload)

    create_file.assert_not_called()
    assert _patient_count(backend) == 0


def test_get_patient_returns_registered_record(backend, patient_payload):
    record = register_patient(backend, payload=patient_payload)

    found = get_patient(backend, patient_payload.user_id)

    assert found is not None
    assert found.id == record.id
    assert found.insurance_provider == "Blue Cross"


def test_get_patient_without_record_is_empty(backend, user):
    assert get_patient(backend, user.id) is None


# --- Duplicate submissions ---

def test_replayed_request_id_returns_first_record(backend, patient_payload, guard):
    first = register_patient(backend, payload=patient_payload, request_id="req-1", guard=guard)
    second = register_patient(backend, payload=patient_payload, request_id="req-1", guard=guard)

    assert second.id == first.id
    assert _patient_count(backend) == 1


def test_request_in_flight_is_rejected(backend, patient_payload, guard, fake_redis):
    fake_redis.store[guard._key(patient_payload.user_id, "req-2")] = PENDING

    with pytest.raises(DuplicateSubmissionError):
        register_patient(backend, payload=patient_payload, request_id="req-2", guard=guard)

    assert _patient_count(backend) == 0


def test_failed_registration_releases_request_id(backend, patient_payload, guard, fake_redis):
    with patch.object(backend.documents, "create_document", side_effect=TransportError("db down")):
        with pytest.raises(TransportError):
            register_patient(backend, payload=patient_payload, request_id="req-3", guard=guard)

    assert guard._key(patient_payload.user_id, "req-3") not in fake_redis.store

    record = register_patient(backend, payload=patient_payload, request_id="req-3", guard=guard)
    assert fake_redis.store[guard._key(patient_payload.user_id, "req-3")] == record.id


def test_without_redis_every_submission_registers(backend, patient_payload):
    guard = RegistrationGuard(None)

    register_patient(backend, payload=patient_payload, request_id="req-4", guard=guard)
    register_patient(backend, payload=patient_payload, request_id="req-4", guard=guard)

    assert _patient_count(backend) == 2


def test_same_request_id_from_another_user_registers_separately(
    backend, patient_payload, patient_form_data, guard
):
    mary = create_user(
        backend.accounts,
        user_in=UserCreate(name="Mary Major", email="mary@x.com", phone="+15552223333"),
    )
    mary_payload = PatientRegister.model_validate(
        {**patient_form_data, "name": "Mary Major", "email": "mary@x.com", "userId": mary.id}
    )

    john_record = register_patient(backend, payload=patient_payload, request_id="k", guard=guard)
    mary_record = register_patient(backend, payload=mary_payload, request_id="k", guard=guard)

    assert mary_record.id != john_record.id
    assert mary_record.user_id == mary.id
    assert get_patient(backend, mary.id).id == mary_record.id
    assert _patient_count(backend) == 2


def test_replay_pointing_at_another_users_record_is_conflict(
    backend, patient_payload, guard, fake_redis
):
    other = register_patient(backend, payload=patient_payload)
    mary = create_user(
        backend.accounts,
        user_in=UserCreate(name="Mary Major", email="mary@x.com", phone="+15552223333"),
    )
    mary_payload = patient_payload.model_copy(update={"user_id": mary.id})
    fake_redis.store[guard._key(mary.id, "req-5")] = other.id

    with pytest.raises(ConflictError):
        register_patient(backend, payload=mary_payload, request_id="req-5", guard=guard)

    assert get_patient(backend, mary.id) is None


def test_request_id_pointing_at_missing_record_registers_again(
    backend, patient_payload, guard, fake_redis
):
    fake_redis.store[guard._key(patient_payload.user_id, "req-6")] = "gone"

    record = register_patient(backend, payload=patient_payload, request_id="req-6", guard=guard)

    assert record.id != "gone"
    assert fake_redis.store[guard._key(patient_payload.user_id, "req-6")] == record.id
    assert _patient_count(backend) == 1


def test_reclaim_after_missing_record_returns_concurrent_registration(
    backend, patient_payload, guard
):
    first = register_patient(backend, payload=patient_payload)

    with patch.object(guard, "claim", side_effect=["gone", first.id]):
        again = register_patient(backend, payload=patient_payload, request_id="req-7", guard=guard)

    assert again.id == first.id
    assert _patient_count(backend) == 1
