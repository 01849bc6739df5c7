from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from patient_intake.schemas.patient import validate_phone


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    phone: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        if len(v) > 50:
            raise ValueError("Name must be at most 50 characters")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return validate_phone(v)


class UserAccount(BaseModel):
    """An account from the backend's user directory."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("$id", "id"))
    name: str = ""
    email: str
    phone: str = ""
    created_at: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("$createdAt", "createdAt", "created_at"),
    )
