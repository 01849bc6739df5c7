# patient_intake/forms/base.py
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from fastapi import status
from pydantic import ValidationError

from patient_intake.core.errors import IntakeValidationError
from patient_intake.schemas.form import FieldError, FormState


class FormValidationError(IntakeValidationError):
    """Submitted form values break the form's schema."""

    def __init__(self, errors: list[FieldError]):
        super().__init__("Please correct the highlighted fields.")
        self.errors = errors


@dataclass
class SubmissionResult:
    """
    Outcome of one form submission.

    Success carries the URL to redirect to; failure carries the form state
    to show again, with the status code matching the error kind.
    """

    redirect_url: Optional[str] = None
    record: Any = None
    state: Optional[FormState] = None
    status_code: int = status.HTTP_303_SEE_OTHER

    @property
    def ok(self) -> bool:
        return self.redirect_url is not None


def field_errors(exc: ValidationError) -> list[FieldError]:
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "__root__"
        message = err["msg"].removeprefix("Value error, ")
        errors.append(FieldError(field=field, message=message))
    return errors


def submitted_values(form_data: Mapping[str, Any], skip: tuple[str, ...] = ()) -> dict[str, Any]:
    """Plain text values of a submitted form, for showing it again."""
    return {
        key: value
        for key, value in form_data.items()
        if isinstance(value, str) and key not in skip
    }
