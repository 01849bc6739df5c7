# patient_intake/api/web.py
"""
Browser-facing form routes.

Successful submissions answer with a 303 redirect; failed ones answer with
the form state (values, field errors, message) so the visitor stays on
the form.
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, RedirectResponse

from patient_intake.backends.base import Backend
from patient_intake.backends.provider import get_backend
from patient_intake.core.errors import IntakeError
from patient_intake.forms.base import SubmissionResult
from patient_intake.forms.registration_form import build_registration_form, submit_registration
from patient_intake.forms.user_form import USER_FORM, submit_user_form
from patient_intake.schemas.form import FormDefinition
from patient_intake.services.idempotency_service import RegistrationGuard, get_registration_guard
from patient_intake.services.patient_service import get_user

router = APIRouter()


def _respond(result: SubmissionResult):
    if result.ok:
        return RedirectResponse(url=result.redirect_url, status_code=result.status_code)
    return JSONResponse(
        status_code=result.status_code,
        content=result.state.model_dump(mode="json"),
    )


@router.get("/", response_model=FormDefinition)
def user_form() -> FormDefinition:
    return USER_FORM


@router.post("/")
async def submit_user(
    request: Request,
    backend: Backend = Depends(get_backend),
):
    form = await request.form()
    result = await run_in_threadpool(submit_user_form, backend.accounts, form_data=form)
    return _respond(result)


@router.get("/patients/{user_id}/register", response_model=FormDefinition)
def registration_form(
    user_id: str,
    backend: Backend = Depends(get_backend),
) -> FormDefinition:
    try:
        user = get_user(backend.accounts, user_id)
    except IntakeError as exc:
        raise HTTPException(status_code=exc.http_status, detail=exc.message)
    return build_registration_form(user_id, user)


@router.post("/patients/{user_id}/register")
async def submit_registration_form(
    user_id: str,
    request: Request,
    backend: Backend = Depends(get_backend),
    guard: RegistrationGuard = Depends(get_registration_guard),
):
    form = await request.form()
    result = await run_in_threadpool(
        submit_registration,
        backend,
        guard,
        user_id=user_id,
        form_data=form,
    )
    return _respond(result)
