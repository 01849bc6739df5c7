# patient_intake/schemas/form.py
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class FormFieldType(str, Enum):
    INPUT = "input"
    TEXTAREA = "textarea"
    PHONE_INPUT = "phoneInput"
    CHECKBOX = "checkbox"
    DATE_PICKER = "datePicker"
    SELECT = "select"
    RADIO = "radio"
    FILE = "file"


class FieldOption(BaseModel):
    value: str
    label: str
    image: Optional[str] = None


class FormField(BaseModel):
    name: str
    label: str
    field_type: FormFieldType
    placeholder: Optional[str] = None
    required: bool = True
    options: list[FieldOption] = []


class FormSection(BaseModel):
    title: str
    fields: list[FormField]


class FormDefinition(BaseModel):
    title: str
    subtitle: Optional[str] = None
    action: str
    submit_label: str
    sections: list[FormSection]
    values: dict[str, Any]
    request_id: Optional[str] = None


class FieldError(BaseModel):
    field: str
    message: str


class FormState(BaseModel):
    """What the client gets back when a submission stays on the form."""

    values: dict[str, Any]
    errors: list[FieldError] = []
    message: Optional[str] = None
    error_kind: Optional[str] = None
