# patient_intake/schemas/patient.py
import re
from datetime import date, datetime, time, timezone
from typing import Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from patient_intake.constants import GENDER_OPTIONS, IDENTIFICATION_TYPES

PHONE_PATTERN = re.compile(r"^\+\d{10,15}$")


def normalize_phone(phone: str) -> str:
    """Normalize phone number: remove spaces, dashes, parentheses, keep + and digits."""
    if not phone:
        return ""
    # Remove common separators but keep + at start
    normalized = re.sub(r"[\s\-\(\)]", "", phone)
    return normalized


def validate_phone(phone: str) -> str:
    """Return the normalized phone or raise if it is not +<10-15 digits>."""
    normalized = normalize_phone(phone.strip())
    if not PHONE_PATTERN.match(normalized):
        raise ValueError("Invalid phone number")
    return normalized


def _check_length(v: str, minimum: int, maximum: int | None, label: str) -> str:
    v = v.strip()
    if len(v) < minimum:
        raise ValueError(f"{label} must be at least {minimum} characters")
    if maximum is not None and len(v) > maximum:
        raise ValueError(f"{label} must be at most {maximum} characters")
    return v


class PatientForm(BaseModel):
    """
    Registration form fields.

    Field names travel camelCase (userId, birthDate, ...) on the wire and
    are snake_case in Python; both spellings are accepted on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    email: EmailStr
    phone: str
    birth_date: date
    gender: str = "male"
    address: str
    occupation: str
    emergency_contact_name: str
    emergency_contact_number: str
    primary_physician: str
    insurance_provider: str
    insurance_policy_number: str
    allergies: Optional[str] = None
    medications: Optional[str] = None
    family_medical_history: Optional[str] = None
    past_medical_history: Optional[str] = None
    identification_type: Optional[str] = None
    identification_number: Optional[str] = None
    treatment_consent: bool = False
    disclosure_consent: bool = False
    privacy_consent: bool = False

    @field_validator(
        "allergies",
        "medications",
        "family_medical_history",
        "past_medical_history",
        "identification_type",
        "identification_number",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("name", "emergency_contact_name")
    @classmethod
    def validate_names(cls, v: str) -> str:
        return _check_length(v, 2, 50, "Name")

    @field_validator("phone", "emergency_contact_number")
    @classmethod
    def validate_phones(cls, v: str) -> str:
        return validate_phone(v)

    @field_validator("birth_date")
    @classmethod
    def validate_birth_date(cls, v: date) -> date:
        if v > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return v

    @field_validator("gender")
    @classmethod
    def validate_gender(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in GENDER_OPTIONS:
            raise ValueError("Gender must be male, female, or other")
        return v

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        return _check_length(v, 5, 500, "Address")

    @field_validator("occupation")
    @classmethod
    def validate_occupation(cls, v: str) -> str:
        return _check_length(v, 2, 500, "Occupation")

    @field_validator("primary_physician")
    @classmethod
    def validate_primary_physician(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Select at least one doctor")
        return v

    @field_validator("insurance_provider", "insurance_policy_number")
    @classmethod
    def validate_insurance(cls, v: str) -> str:
        return _check_length(v, 2, 50, "Insurance details")

    @field_validator("identification_type")
    @classmethod
    def validate_identification_type(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in IDENTIFICATION_TYPES:
            raise ValueError("Unknown identification type")
        return v

    @field_validator("treatment_consent")
    @classmethod
    def validate_treatment_consent(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("You must consent to treatment in order to proceed")
        return v

    @field_validator("disclosure_consent")
    @classmethod
    def validate_disclosure_consent(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("You must consent to disclosure in order to proceed")
        return v

    @field_validator("privacy_consent")
    @classmethod
    def validate_privacy_consent(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("You must consent to privacy in order to proceed")
        return v


class PatientRegister(PatientForm):
    """Form fields plus the owning account id."""

    user_id: str

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("User id is required")
        return v

    def to_document(self) -> dict:
        """Document fields as the backend stores them (camelCase, ISO datetimes)."""
        data = self.model_dump(mode="json", by_alias=True)
        data["birthDate"] = datetime.combine(
            self.birth_date, time.min, tzinfo=timezone.utc
        ).isoformat()
        return data


class PatientRecord(BaseModel):
    """A stored patient document as returned by the backend."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("$id", "id"))
    created_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("$createdAt", "createdAt", "created_at"),
    )
    user_id: str
    name: str
    email: str
    phone: str
    birth_date: datetime
    gender: str
    address: str
    occupation: str
    emergency_contact_name: str
    emergency_contact_number: str
    primary_physician: str
    insurance_provider: str
    insurance_policy_number: str
    allergies: Optional[str] = None
    medications: Optional[str] = None
    family_medical_history: Optional[str] = None
    past_medical_history: Optional[str] = None
    identification_type: Optional[str] = None
    identification_number: Optional[str] = None
    identification_document_id: Optional[str] = None
    identification_document_url: Optional[str] = None
    treatment_consent: bool
    disclosure_consent: bool
    privacy_consent: bool
