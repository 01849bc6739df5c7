# patient_intake/forms/user_form.py
import logging
from typing import Any, Mapping

from pydantic import ValidationError

from patient_intake.backends.base import AccountDirectory
from patient_intake.constants import REGISTER_PATH
from patient_intake.core.errors import IntakeError
from patient_intake.forms.base import (
    FormValidationError,
    SubmissionResult,
    field_errors,
    submitted_values,
)
from patient_intake.schemas.form import FormDefinition, FormField, FormFieldType, FormSection, FormState
from patient_intake.schemas.user import UserCreate
from patient_intake.services.patient_service import create_user

logger = logging.getLogger(__name__)

USER_FORM = FormDefinition(
    title="Hi there",
    subtitle="Get started with appointments.",
    action="/",
    submit_label="Get Started",
    sections=[
        FormSection(
            title="Contact",
            fields=[
                FormField(name="name", label="Full name", field_type=FormFieldType.INPUT, placeholder="John Doe"),
                FormField(name="email", label="Email", field_type=FormFieldType.INPUT, placeholder="johndoe@gmail.com"),
                FormField(
                    name="phone",
                    label="Phone number",
                    field_type=FormFieldType.PHONE_INPUT,
                    placeholder="(555) 123-4567",
                ),
            ],
        )
    ],
    values={"name": "", "email": "", "phone": ""},
)


def submit_user_form(accounts: AccountDirectory, *, form_data: Mapping[str, Any]) -> SubmissionResult:
    """Create (or find) the account, then send the visitor to the registration form."""
    values = submitted_values(form_data)

    try:
        try:
            user_in = UserCreate.model_validate(values)
        except ValidationError as exc:
            raise FormValidationError(field_errors(exc)) from exc
        user = create_user(accounts, user_in=user_in)
    except FormValidationError as exc:
        return SubmissionResult(
            state=FormState(values=values, errors=exc.errors, message=exc.message, error_kind=exc.kind.value),
            status_code=exc.http_status,
        )
    except IntakeError as exc:
        logger.error(f"Could not create account for {values.get('email')!r} ({exc.kind.value}): {exc.message}")
        return SubmissionResult(
            state=FormState(values=values, message=exc.message, error_kind=exc.kind.value),
            status_code=exc.http_status,
        )

    return SubmissionResult(redirect_url=REGISTER_PATH.format(user_id=user.id), record=user)
