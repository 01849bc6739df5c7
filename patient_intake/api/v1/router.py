# patient_intake/api/v1/router.py
from fastapi import APIRouter

from patient_intake.api.v1.endpoints import (
    forms,
    patients,
    storage,
    users,
)

api_router = APIRouter()

api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(patients.router, prefix="/patients", tags=["patients"])
api_router.include_router(forms.router, prefix="/forms", tags=["forms"])
api_router.include_router(storage.router, prefix="/storage", tags=["storage"])
