# patient_intake/api/v1/endpoints/patients.py
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool

from patient_intake.backends.base import Backend
from patient_intake.backends.provider import get_backend
from patient_intake.core.errors import IntakeError
from patient_intake.forms.base import FormValidationError
from patient_intake.forms.registration_form import REQUEST_ID_FIELD, parse_registration_form
from patient_intake.schemas.patient import PatientRecord
from patient_intake.services.idempotency_service import RegistrationGuard, get_registration_guard
from patient_intake.services.patient_service import get_patient, register_patient

router = APIRouter()


@router.post(
    "/",
    response_model=PatientRecord,
    status_code=status.HTTP_201_CREATED,
)
async def create_patient(
    request: Request,
    idempotency_key: str | None = Header(default=None),
    backend: Backend = Depends(get_backend),
    guard: RegistrationGuard = Depends(get_registration_guard),
) -> PatientRecord:
    """
    Register a patient from a multipart form.

    - Profile fields use their camelCase names, plus `userId`.
    - `identificationDocument` is an optional file part.
    - `Idempotency-Key` header (or `requestId` field) makes replays safe.
    """
    form = await request.form()

    user_id = form.get("userId")
    if not isinstance(user_id, str) or not user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[{"field": "userId", "message": "User id is required"}],
        )

    try:
        payload, upload = parse_registration_form(form, user_id=user_id.strip())
    except FormValidationError as exc:
        raise HTTPException(
            status_code=exc.http_status,
            detail=[e.model_dump() for e in exc.errors],
        )

    request_id = idempotency_key or form.get(REQUEST_ID_FIELD) or None
    try:
        return await run_in_threadpool(
            register_patient,
            backend,
            payload=payload,
            identification_document=upload,
            request_id=request_id,
            guard=guard,
        )
    except IntakeError as exc:
        raise HTTPException(status_code=exc.http_status, detail=exc.message)


@router.get("/", response_model=list[PatientRecord])
def list_patients(
    user_id: str = Query(..., description="ID of the owning user account"),
    backend: Backend = Depends(get_backend),
) -> list[PatientRecord]:
    """
    Patient profile of a user, as a list of zero or one record.
    """
    try:
        patient = get_patient(backend, user_id)
    except IntakeError as exc:
        raise HTTPException(status_code=exc.http_status, detail=exc.message)
    return [patient] if patient else []
