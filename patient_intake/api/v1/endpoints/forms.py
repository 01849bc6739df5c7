# patient_intake/api/v1/endpoints/forms.py
from fastapi import APIRouter, Depends, HTTPException, Query

from patient_intake.backends.base import Backend
from patient_intake.backends.provider import get_backend
from patient_intake.core.errors import IntakeError
from patient_intake.forms.registration_form import build_registration_form
from patient_intake.forms.user_form import USER_FORM
from patient_intake.schemas.form import FormDefinition
from patient_intake.services.patient_service import get_user

router = APIRouter()


@router.get("/user", response_model=FormDefinition)
def read_user_form() -> FormDefinition:
    return USER_FORM


@router.get("/registration", response_model=FormDefinition)
def read_registration_form(
    user_id: str = Query(..., description="ID of the user account registering"),
    backend: Backend = Depends(get_backend),
) -> FormDefinition:
    """
    Registration form prefilled with the account's name, email and phone.
    """
    try:
        user = get_user(backend.accounts, user_id)
    except IntakeError as exc:
        raise HTTPException(status_code=exc.http_status, detail=exc.message)
    return build_registration_form(user_id, user)
