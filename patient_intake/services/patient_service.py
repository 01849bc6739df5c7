# patient_intake/services/patient_service.py
import logging
from dataclasses import dataclass
from typing import Optional

from patient_intake.backends.base import AccountDirectory, Backend, FileUpload, Query
from patient_intake.constants import DEFAULT_UPLOAD_MIME_TYPE
from patient_intake.core.errors import ConflictError
from patient_intake.schemas.patient import PatientRecord, PatientRegister
from patient_intake.schemas.user import UserAccount, UserCreate
from patient_intake.services.idempotency_service import RegistrationGuard
from patient_intake.utils.id_generators import generate_unique_id

logger = logging.getLogger(__name__)


@dataclass
class IdentityDocumentUpload(FileUpload):
    """Scanned identity document attached to one registration."""

    mime_type: str = DEFAULT_UPLOAD_MIME_TYPE


def create_user(accounts: AccountDirectory, *, user_in: UserCreate) -> UserAccount:
    """
    Create an account, or return the existing one registered with the same email.

    A conflict that the email lookup can't explain (e.g. the phone belongs
    to another account) is re-raised.
    """
    email = str(user_in.email)
    try:
        created = accounts.create(
            generate_unique_id(),
            email=email,
            phone=user_in.phone,
            name=user_in.name,
        )
    except ConflictError:
        logger.info(f"Account for {email} already exists, looking it up by email")
        result = accounts.list([Query.equal("email", [email])])
        users = result.get("users") or []
        if not users:
            raise
        return UserAccount.model_validate(users[0])

    return UserAccount.model_validate(created)


def get_user(accounts: AccountDirectory, user_id: str) -> UserAccount:
    """Account by id. Raises NotFoundError if there is none."""
    return UserAccount.model_validate(accounts.get(user_id))


def get_patient(backend: Backend, user_id: str) -> Optional[PatientRecord]:
    """Patient profile owned by `user_id`, or None if the user has not registered yet."""
    result = backend.documents.list_documents(
        backend.patient_collection_id,
        [Query.equal("userId", [user_id])],
    )
    documents = result.get("documents") or []
    if not documents:
        return None
    return PatientRecord.model_validate(documents[0])


def _get_patient_by_id(backend: Backend, document_id: str) -> Optional[PatientRecord]:
    result = backend.documents.list_documents(
        backend.patient_collection_id,
        [Query.equal("$id", [document_id])],
    )
    documents = result.get("documents") or []
    return PatientRecord.model_validate(documents[0]) if documents else None


def _create_patient_record(
    backend: Backend,
    payload: PatientRegister,
    identification_document: Optional[IdentityDocumentUpload],
) -> PatientRecord:
    document_id = None
    document_url = None

    if identification_document is not None:
        uploaded = backend.files.create_file(
            backend.bucket_id,
            generate_unique_id(),
            identification_document,
        )
        document_id = uploaded["$id"]
        document_url = backend.file_view_url(document_id)
        logger.info(
            f"Stored identification document {identification_document.file_name!r} "
            f"as {document_id} for user {payload.user_id}"
        )

    data = payload.to_document()
    data["identificationDocumentId"] = document_id
    data["identificationDocumentUrl"] = document_url

    created = backend.documents.create_document(
        backend.patient_collection_id,
        generate_unique_id(),
        data,
    )
    logger.info(f"Registered patient {created.get('$id')} for user {payload.user_id}")
    return PatientRecord.model_validate(created)


def _replayed_record(
    backend: Backend,
    guard: RegistrationGuard,
    user_id: str,
    request_id: str,
) -> Optional[PatientRecord]:
    """
    Claim `request_id` for `user_id`.

    Returns the record an earlier, finished submission created, or None when
    this submission should register. A claim pointing at a record that no
    longer exists is released and claimed once more.
    """
    existing_id = guard.claim(user_id, request_id)
    existing = _get_patient_by_id(backend, existing_id) if existing_id else None

    if existing_id and existing is None:
        logger.warning(
            f"Request {request_id} points at missing patient {existing_id}; claiming it again"
        )
        guard.release(user_id, request_id)
        existing_id = guard.claim(user_id, request_id)
        existing = _get_patient_by_id(backend, existing_id) if existing_id else None
        if existing_id and existing is None:
            raise ConflictError(
                f"Request {request_id} points at missing patient {existing_id}.",
                code=409,
                type_="stale_submission",
            )

    if existing is not None and existing.user_id != user_id:
        raise ConflictError(
            "This request id belongs to another registration.",
            code=409,
            type_="request_id_mismatch",
        )
    if existing is not None:
        logger.info(f"Request {request_id} already registered patient {existing.id}")
    return existing


def register_patient(
    backend: Backend,
    *,
    payload: PatientRegister,
    identification_document: Optional[IdentityDocumentUpload] = None,
    request_id: Optional[str] = None,
    guard: Optional[RegistrationGuard] = None,
) -> PatientRecord:
    """
    Upload the identification document (if any), then create the patient profile.

    The owning account must exist; an unknown user id raises NotFoundError
    before anything is stored. With a request id and a guard, a replay of a
    finished submission by the same user returns the record it created
    instead of registering twice.
    """
    user_id = payload.user_id
    backend.accounts.get(user_id)

    guarded = bool(request_id and guard and guard.enabled)

    if guarded:
        existing = _replayed_record(backend, guard, user_id, request_id)
        if existing is not None:
            return existing

    try:
        record = _create_patient_record(backend, payload, identification_document)
    except Exception:
        if guarded:
            guard.release(user_id, request_id)
        raise

    if guarded:
        guard.complete(user_id, request_id, record.id)
    return record
