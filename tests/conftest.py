# tests/conftest.py
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from patient_intake.backends.base import Backend
from patient_intake.backends.local import (
    LocalAccountDirectory,
    LocalDocumentStore,
    LocalFileStore,
    create_local_schema,
)
from patient_intake.backends.provider import get_backend
from patient_intake.core.database import build_session_factory
from patient_intake.main import app
from patient_intake.schemas.patient import PatientRegister
from patient_intake.schemas.user import UserCreate
from patient_intake.services.idempotency_service import RegistrationGuard, get_registration_guard
from patient_intake.services.patient_service import create_user


class FakeRedis:
    """Just enough of redis.Redis for the registration guard."""

    def __init__(self):
        self.store = {}

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    def get(self, key):
        return self.store.get(key)

    def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0


# --- Fixtures ---

@pytest.fixture
def session_factory():
    """In-memory SQLite shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    create_local_schema(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def backend(session_factory, tmp_path) -> Backend:
    return Backend(
        accounts=LocalAccountDirectory(session_factory),
        documents=LocalDocumentStore(session_factory),
        files=LocalFileStore(session_factory, tmp_path / "uploads"),
        endpoint="http://testserver/api/v1",
        project_id="intake-test",
        bucket_id="identification",
        patient_collection_id="patients",
    )


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def guard(fake_redis) -> RegistrationGuard:
    return RegistrationGuard(fake_redis, ttl_seconds=60)


@pytest.fixture
def client(backend, guard):
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_registration_guard] = lambda: guard
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user(backend):
    return create_user(
        backend.accounts,
        user_in=UserCreate(name="John Doe", email="john@x.com", phone="+15551234567"),
    )


@pytest.fixture
def patient_form_data():
    """A complete registration form as the browser posts it."""
    return {
        "name": "John Doe",
        "email": "john@x.com",
        "phone": "+15551234567",
        "birthDate": "1990-01-01",
        "gender": "male",
        "address": "123 Main St",
        "occupation": "Software Engineer",
        "emergencyContactName": "Jane Doe",
        "emergencyContactNumber": "+15557654321",
        "primaryPhysician": "John Green",
        "insuranceProvider": "Blue Cross",
        "insurancePolicyNumber": "ABC123456",
        "allergies": "Peanuts",
        "medications": "",
        "familyMedicalHistory": "",
        "pastMedicalHistory": "Broken Arm",
        "identificationType": "Passport",
        "identificationNumber": "X1234567",
        "treatmentConsent": "on",
        "disclosureConsent": "on",
        "privacyConsent": "on",
    }


@pytest.fixture
def patient_payload(patient_form_data, user) -> PatientRegister:
    return PatientRegister.model_validate({**patient_form_data, "userId": user.id})
