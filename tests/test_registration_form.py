# tests/test_registration_form.py
import io
from unittest.mock import patch

import pytest
from starlette.datastructures import Headers, UploadFile

from patient_intake.core.errors import TransportError
from patient_intake.forms.base import FormValidationError
from patient_intake.forms.registration_form import (
    build_registration_form,
    parse_registration_form,
    submit_registration,
)
from patient_intake.services.patient_service import get_patient
from patient_intake.utils.id_generators import generate_unique_id


def _upload(content: bytes, filename: str = "id.png", content_type: str = "image/png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


# --- Form definition ---

def test_registration_form_sections_and_prefill(user):
    form = build_registration_form(user.id, user)

    assert [s.title for s in form.sections] == [
        "Personal Information",
        "Medical Information",
        "Identification and Verification",
        "Consent and Privacy",
    ]
    assert form.action == f"/patients/{user.id}/register"
    assert form.values["name"] == "John Doe"
    assert form.values["email"] == "john@x.com"
    assert form.values["gender"] == "male"
    assert form.values["identificationType"] == "Birth Certificate"
    assert form.values["privacyConsent"] is False
    assert form.request_id


def test_registration_form_hands_out_fresh_request_ids(user):
    assert build_registration_form(user.id).request_id != build_registration_form(user.id).request_id


def test_physician_options_list_doctors(user):
    form = build_registration_form(user.id)
    physician = next(
        f for s in form.sections for f in s.fields if f.name == "primaryPhysician"
    )

    assert "John Green" in [o.value for o in physician.options]
    assert all(o.image for o in physician.options)


# --- Parsing ---

def test_parse_without_file(patient_form_data):
    payload, upload = parse_registration_form(patient_form_data, user_id="user-1")

    assert upload is None
    assert payload.user_id == "user-1"
    assert payload.medications is None
    assert payload.treatment_consent is True


def test_parse_with_file(patient_form_data):
    form = {**patient_form_data, "identificationDocument": _upload(b"png-bytes")}

    _, upload = parse_registration_form(form, user_id="user-1")

    assert upload.content == b"png-bytes"
    assert upload.file_name == "id.png"
    assert upload.mime_type == "image/png"


@pytest.mark.parametrize("upload", [_upload(b"", filename="id.png"), _upload(b"data", filename="")])
def test_empty_file_input_counts_as_no_file(patient_form_data, upload):
    form = {**patient_form_data, "identificationDocument": upload}

    _, parsed = parse_registration_form(form, user_id="user-1")

    assert parsed is None


def test_unchecked_consent_is_rejected(patient_form_data):
    form = dict(patient_form_data)
    del form["privacyConsent"]

    with pytest.raises(FormValidationError) as exc_info:
        parse_registration_form(form, user_id="user-1")

    assert [(e.field, e.message) for e in exc_info.value.errors] == [
        ("privacyConsent", "You must consent to privacy in order to proceed"),
    ]


@pytest.mark.parametrize(
    "field, value, message",
    [
        ("phone", "5551234567", "Invalid phone number"),
        ("emergencyContactNumber", "+1 555", "Invalid phone number"),
        ("name", "J", "Name must be at least 2 characters"),
        ("address", "St", "Address must be at least 5 characters"),
        ("primaryPhysician", "", "Select at least one doctor"),
        ("gender", "unknown", "Gender must be male, female, or other"),
        ("identificationType", "Library Card", "Unknown identification type"),
    ],
)
def test_field_rules(patient_form_data, field, value, message):
    form = {**patient_form_data, field: value}

    with pytest.raises(FormValidationError) as exc_info:
        parse_registration_form(form, user_id="user-1")

    assert (field, message) in [(e.field, e.message) for e in exc_info.value.errors]


def test_phone_separators_are_normalized(patient_form_data):
    form = {**patient_form_data, "phone": "+1 (555) 123-4567"}

    payload, _ = parse_registration_form(form, user_id="user-1")

    assert payload.phone == "+15551234567"


# --- Submission ---

def test_submit_redirects_to_new_appointment(backend, guard, user, patient_form_data):
    result = submit_registration(backend, guard, user_id=user.id, form_data=patient_form_data)

    assert result.ok
    assert result.redirect_url == f"/patients/{user.id}/new-appointment"
    assert result.record.identification_document_id is None


def test_submit_with_document_links_file(backend, guard, user, patient_form_data):
    form = {**patient_form_data, "identificationDocument": _upload(b"png-bytes")}

    result = submit_registration(backend, guard, user_id=user.id, form_data=form)

    document_id = result.record.identification_document_id
    assert document_id
    assert document_id in result.record.identification_document_url


def test_invalid_submission_stays_on_form(backend, guard, user, patient_form_data):
    form = {**patient_form_data, "email": "not-an-email"}

    result = submit_registration(backend, guard, user_id=user.id, form_data=form)

    assert not result.ok
    assert result.status_code == 422
    assert result.state.error_kind == "validation"
    assert result.state.values["email"] == "not-an-email"
    assert [e.field for e in result.state.errors] == ["email"]
    assert get_patient(backend, user.id) is None


def test_backend_failure_stays_on_form(backend, guard, user, patient_form_data):
    with patch.object(backend.documents, "create_document", side_effect=TransportError("backend down")):
        result = submit_registration(backend, guard, user_id=user.id, form_data=patient_form_data)

    assert not result.ok
    assert result.status_code == 502
    assert result.state.error_kind == "transport"
    assert result.state.message == "backend down"


def test_resubmitted_request_id_registers_once(backend, guard, user, patient_form_data):
    form = {**patient_form_data, "requestId": generate_unique_id()}

    first = submit_registration(backend, guard, user_id=user.id, form_data=form)
    second = submit_registration(backend, guard, user_id=user.id, form_data=form)

    assert first.record.id == second.record.id
    assert backend.documents.list_documents(backend.patient_collection_id, [])["total"] == 1


def test_birth_date_in_future_is_rejected(patient_form_data):
    form = {**patient_form_data, "birthDate": "2999-01-01"}

    with pytest.raises(FormValidationError) as exc_info:
        parse_registration_form(form, user_id="user-1")

    assert [e.field for e in exc_info.value.errors] == ["birthDate"]
