# patient_intake/api/v1/endpoints/users.py
from fastapi import APIRouter, Depends, HTTPException, status

from patient_intake.backends.base import Backend
from patient_intake.backends.provider import get_backend
from patient_intake.core.errors import IntakeError
from patient_intake.schemas.user import UserAccount, UserCreate
from patient_intake.services.patient_service import create_user, get_user

router = APIRouter()


@router.post(
    "/",
    response_model=UserAccount,
    status_code=status.HTTP_201_CREATED,
)
def create_user_account(
    payload: UserCreate,
    backend: Backend = Depends(get_backend),
) -> UserAccount:
    """
    Create an account, or return the one already registered with this email.
    """
    try:
        return create_user(backend.accounts, user_in=payload)
    except IntakeError as exc:
        raise HTTPException(status_code=exc.http_status, detail=exc.message)


@router.get("/{user_id}", response_model=UserAccount)
def read_user(
    user_id: str,
    backend: Backend = Depends(get_backend),
) -> UserAccount:
    try:
        return get_user(backend.accounts, user_id)
    except IntakeError as exc:
        raise HTTPException(status_code=exc.http_status, detail=exc.message)
