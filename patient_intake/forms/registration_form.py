# patient_intake/forms/registration_form.py
"""
Patient registration form.

- build_registration_form(): the sections and fields a client renders,
  with default values and a fresh request id.
- parse_registration_form(): submitted multipart data -> validated
  payload + optional identity document upload.
- submit_registration(): validate, register, and decide where to go next.
"""
import logging
from typing import Any, Mapping, Optional

from pydantic import ValidationError
from starlette.datastructures import UploadFile

from patient_intake.backends.base import Backend
from patient_intake.constants import (
    DEFAULT_UPLOAD_MIME_TYPE,
    DOCTORS,
    GENDER_OPTIONS,
    IDENTIFICATION_TYPES,
    NEW_APPOINTMENT_PATH,
    PATIENT_FORM_DEFAULT_VALUES,
    REGISTER_PATH,
)
from patient_intake.core.errors import IntakeError
from patient_intake.forms.base import (
    FormValidationError,
    SubmissionResult,
    field_errors,
    submitted_values,
)
from patient_intake.schemas.form import (
    FieldOption,
    FormDefinition,
    FormField,
    FormFieldType,
    FormSection,
    FormState,
)
from patient_intake.schemas.patient import PatientRegister
from patient_intake.schemas.user import UserAccount
from patient_intake.services.idempotency_service import RegistrationGuard
from patient_intake.services.patient_service import IdentityDocumentUpload, register_patient
from patient_intake.utils.id_generators import generate_request_id

logger = logging.getLogger(__name__)

DOCUMENT_FIELD = "identificationDocument"
REQUEST_ID_FIELD = "requestId"

CHECKBOX_FIELDS = ("treatmentConsent", "disclosureConsent", "privacyConsent")

REGISTRATION_SECTIONS = [
    FormSection(
        title="Personal Information",
        fields=[
            FormField(name="name", label="Full name", field_type=FormFieldType.INPUT, placeholder="John Doe"),
            FormField(name="email", label="Email", field_type=FormFieldType.INPUT, placeholder="johndoe@gmail.com"),
            FormField(name="phone", label="Phone number", field_type=FormFieldType.PHONE_INPUT, placeholder="(555) 123-4567"),
            FormField(name="birthDate", label="Date of birth", field_type=FormFieldType.DATE_PICKER),
            FormField(
                name="gender",
                label="Gender",
                field_type=FormFieldType.RADIO,
                options=[FieldOption(value=g, label=g.capitalize()) for g in GENDER_OPTIONS],
            ),
            FormField(name="address", label="Address", field_type=FormFieldType.INPUT, placeholder="123 Main St"),
            FormField(name="occupation", label="Occupation", field_type=FormFieldType.INPUT, placeholder="Software Engineer"),
            FormField(name="emergencyContactName", label="Emergency Contact Name", field_type=FormFieldType.INPUT, placeholder="Jane Doe"),
            FormField(
                name="emergencyContactNumber",
                label="Emergency Contact Number",
                field_type=FormFieldType.PHONE_INPUT,
                placeholder="(555) 123-4567",
            ),
        ],
    ),
    FormSection(
        title="Medical Information",
        fields=[
            FormField(
                name="primaryPhysician",
                label="Primary Physician",
                field_type=FormFieldType.SELECT,
                placeholder="Select a physician",
                options=[FieldOption(value=d["name"], label=d["name"], image=d["image"]) for d in DOCTORS],
            ),
            FormField(name="insuranceProvider", label="Insurance Provider", field_type=FormFieldType.INPUT, placeholder="Blue Cross"),
            FormField(
                name="insurancePolicyNumber",
                label="Insurance Policy Number",
                field_type=FormFieldType.INPUT,
                placeholder="123456789",
            ),
            FormField(
                name="allergies",
                label="Allergies (if any)",
                field_type=FormFieldType.TEXTAREA,
                placeholder="Peanuts, Shellfish",
                required=False,
            ),
            FormField(
                name="medications",
                label="Medications (if any)",
                field_type=FormFieldType.TEXTAREA,
                placeholder="Aspirin, Ibuprofen",
                required=False,
            ),
            FormField(
                name="familyMedicalHistory",
                label="Family Medical History",
                field_type=FormFieldType.TEXTAREA,
                placeholder="Heart Disease, Diabetes",
                required=False,
            ),
            FormField(
                name="pastMedicalHistory",
                label="Past Medical History",
                field_type=FormFieldType.TEXTAREA,
                placeholder="Broken Arm, Appendectomy",
                required=False,
            ),
        ],
    ),
    FormSection(
        title="Identification and Verification",
        fields=[
            FormField(
                name="identificationType",
                label="Identification Type",
                field_type=FormFieldType.SELECT,
                placeholder="Select identification type",
                required=False,
                options=[FieldOption(value=t, label=t) for t in IDENTIFICATION_TYPES],
            ),
            FormField(
                name="identificationNumber",
                label="Identification Number",
                field_type=FormFieldType.INPUT,
                placeholder="123456789",
                required=False,
            ),
            FormField(
                name=DOCUMENT_FIELD,
                label="Scanned Copy of Identification Document",
                field_type=FormFieldType.FILE,
                required=False,
            ),
        ],
    ),
    FormSection(
        title="Consent and Privacy",
        fields=[
            FormField(name="treatmentConsent", label="I consent to treatment", field_type=FormFieldType.CHECKBOX),
            FormField(
                name="disclosureConsent",
                label="I consent to disclosure of information",
                field_type=FormFieldType.CHECKBOX,
            ),
            FormField(name="privacyConsent", label="I consent to privacy policy", field_type=FormFieldType.CHECKBOX),
        ],
    ),
]


def build_registration_form(user_id: str, user: Optional[UserAccount] = None) -> FormDefinition:
    """Registration form for `user_id`, prefilled from the account when known."""
    values = dict(PATIENT_FORM_DEFAULT_VALUES)
    if user is not None:
        values.update(name=user.name, email=user.email, phone=user.phone)

    return FormDefinition(
        title="Welcome",
        subtitle="Let us know more about yourself.",
        action=REGISTER_PATH.format(user_id=user_id),
        submit_label="Get Started",
        sections=REGISTRATION_SECTIONS,
        values=values,
        request_id=generate_request_id(),
    )


def _identity_document(value: Any) -> Optional[IdentityDocumentUpload]:
    """An attached file, or None for no/empty file input."""
    if not isinstance(value, UploadFile) or not value.filename:
        return None
    value.file.seek(0)
    content = value.file.read()
    if not content:
        return None
    return IdentityDocumentUpload(
        content=content,
        file_name=value.filename,
        mime_type=value.content_type or DEFAULT_UPLOAD_MIME_TYPE,
    )


def parse_registration_form(
    form_data: Mapping[str, Any],
    *,
    user_id: str,
) -> tuple[PatientRegister, Optional[IdentityDocumentUpload]]:
    """
    Validate submitted form data.

    Unchecked checkboxes are absent from form posts and count as False.
    Raises FormValidationError with one entry per offending field.
    """
    data: dict[str, Any] = submitted_values(form_data, skip=(DOCUMENT_FIELD, REQUEST_ID_FIELD))
    for name in CHECKBOX_FIELDS:
        data.setdefault(name, False)
    data["userId"] = user_id

    try:
        payload = PatientRegister.model_validate(data)
    except ValidationError as exc:
        raise FormValidationError(field_errors(exc)) from exc

    return payload, _identity_document(form_data.get(DOCUMENT_FIELD))


def submit_registration(
    backend: Backend,
    guard: Optional[RegistrationGuard],
    *,
    user_id: str,
    form_data: Mapping[str, Any],
    request_id: Optional[str] = None,
) -> SubmissionResult:
    """
    Register the patient from a submitted form.

    Success redirects to the new-appointment page of the user. Any failure
    is logged and the form is shown again with the error; nothing is retried.
    """
    values = submitted_values(form_data, skip=(DOCUMENT_FIELD,))
    request_id = request_id or values.get(REQUEST_ID_FIELD) or None

    try:
        payload, upload = parse_registration_form(form_data, user_id=user_id)
        patient = register_patient(
            backend,
            payload=payload,
            identification_document=upload,
            request_id=request_id,
            guard=guard,
        )
    except FormValidationError as exc:
        logger.info(f"Registration form for user {user_id} rejected: {len(exc.errors)} invalid field(s)")
        return SubmissionResult(
            state=FormState(values=values, errors=exc.errors, message=exc.message, error_kind=exc.kind.value),
            status_code=exc.http_status,
        )
    except IntakeError as exc:
        logger.error(f"Registration for user {user_id} failed ({exc.kind.value}): {exc.message}")
        return SubmissionResult(
            state=FormState(values=values, message=exc.message, error_kind=exc.kind.value),
            status_code=exc.http_status,
        )

    return SubmissionResult(
        redirect_url=NEW_APPOINTMENT_PATH.format(user_id=user_id),
        record=patient,
    )
