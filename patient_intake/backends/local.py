# patient_intake/backends/local.py
"""
Local implementation of the backend capabilities.

Accounts, documents and file metadata live in SQL tables (SQLAlchemy);
file bytes live on disk under the storage root. Records are returned in
the same wire shape the hosted backend uses, so services don't care
which one they talk to.
"""
import logging
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from patient_intake.backends.base import FileUpload
from patient_intake.core.errors import (
    ConflictError,
    IntakeValidationError,
    NotFoundError,
    TransportError,
)
from patient_intake.models.base import Base
from patient_intake.models.document import Document
from patient_intake.models.stored_file import StoredFile
from patient_intake.models.user import User
from patient_intake.utils.file_storage import resolve_storage_path, save_bytes_to_storage

logger = logging.getLogger(__name__)


def create_local_schema(engine: Engine) -> None:
    """Create the users / documents / files tables if they don't exist."""
    Base.metadata.create_all(bind=engine)


def _timestamp(value) -> str | None:
    return value.isoformat() if value is not None else None


def _user_to_dict(user: User) -> dict:
    return {
        "$id": user.id,
        "$createdAt": _timestamp(user.created_at),
        "$updatedAt": _timestamp(user.updated_at),
        "name": user.name,
        "email": user.email,
        "phone": user.phone or "",
    }


def _document_to_dict(doc: Document) -> dict:
    return {
        **doc.data,
        "$id": doc.id,
        "$collectionId": doc.collection_id,
        "$createdAt": _timestamp(doc.created_at),
        "$updatedAt": _timestamp(doc.updated_at),
    }


def _file_to_dict(stored: StoredFile) -> dict:
    return {
        "$id": stored.id,
        "$createdAt": _timestamp(stored.created_at),
        "bucketId": stored.bucket_id,
        "name": stored.name,
        "mimeType": stored.mime_type,
        "sizeOriginal": stored.size,
    }


def _equal_values(query: dict) -> tuple[str, list]:
    if query.get("method") != "equal":
        raise IntakeValidationError(f"Unsupported query method: {query.get('method')!r}")
    return query["attribute"], list(query.get("values") or [])


def _json_field_in(attribute: str, values: list):
    field = Document.data[attribute]
    sample = values[0] if values else ""
    if isinstance(sample, bool):
        return field.as_boolean().in_(values)
    if isinstance(sample, int):
        return field.as_integer().in_(values)
    if isinstance(sample, float):
        return field.as_float().in_(values)
    return field.as_string().in_([str(v) for v in values])


class LocalAccountDirectory:
    COLUMNS = {
        "$id": User.id,
        "email": User.email,
        "phone": User.phone,
        "name": User.name,
    }

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def create(self, user_id: str, *, email: str, phone: str, name: str) -> dict:
        with self.session_factory() as db:
            user = User(id=user_id, email=email, phone=phone or None, name=name)
            try:
                db.add(user)
                db.commit()
                db.refresh(user)
            except IntegrityError as exc:
                db.rollback()
                raise ConflictError(
                    "A user with the same id, email, or phone already exists.",
                    code=409,
                    type_="user_already_exists",
                ) from exc
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error(f"Could not create user {user_id}: {exc}", exc_info=True)
                raise TransportError("Failed to create user.") from exc
            return _user_to_dict(user)

    def get(self, user_id: str) -> dict:
        with self.session_factory() as db:
            user = db.get(User, user_id)
            if not user:
                raise NotFoundError(
                    "User with the requested ID could not be found.",
                    code=404,
                    type_="user_not_found",
                )
            return _user_to_dict(user)

    def list(self, queries: list[dict]) -> dict:
        stmt = select(User)
        for query in queries:
            attribute, values = _equal_values(query)
            column = self.COLUMNS.get(attribute)
            if column is None:
                raise IntakeValidationError(f"Attribute not found in schema: {attribute}")
            stmt = stmt.where(column.in_(values))

        with self.session_factory() as db:
            users = db.scalars(stmt.order_by(User.created_at, User.id)).all()
            return {"total": len(users), "users": [_user_to_dict(u) for u in users]}


class LocalDocumentStore:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def create_document(self, collection_id: str, document_id: str, data: dict) -> dict:
        with self.session_factory() as db:
            doc = Document(id=document_id, collection_id=collection_id, data=dict(data))
            try:
                db.add(doc)
                db.commit()
                db.refresh(doc)
            except IntegrityError as exc:
                db.rollback()
                raise ConflictError(
                    "Document with the requested ID already exists.",
                    code=409,
                    type_="document_already_exists",
                ) from exc
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error(f"Could not create document {document_id}: {exc}", exc_info=True)
                raise TransportError("Failed to create document.") from exc
            return _document_to_dict(doc)

    def list_documents(self, collection_id: str, queries: list[dict]) -> dict:
        stmt = select(Document).where(Document.collection_id == collection_id)
        for query in queries:
            attribute, values = _equal_values(query)
            if attribute == "$id":
                stmt = stmt.where(Document.id.in_([str(v) for v in values]))
            else:
                stmt = stmt.where(_json_field_in(attribute, values))

        with self.session_factory() as db:
            try:
                docs = db.scalars(stmt.order_by(Document.created_at, Document.id)).all()
            except SQLAlchemyError as exc:
                logger.error(f"Could not list documents of {collection_id}: {exc}", exc_info=True)
                raise TransportError("Failed to list documents.") from exc
            return {"total": len(docs), "documents": [_document_to_dict(d) for d in docs]}


class LocalFileStore:
    def __init__(self, session_factory: sessionmaker, storage_root: Path):
        self.session_factory = session_factory
        self.storage_root = storage_root

    def create_file(self, bucket_id: str, file_id: str, upload: FileUpload) -> dict:
        with self.session_factory() as db:
            if db.get(StoredFile, file_id) is not None:
                raise ConflictError(
                    "A file with the requested ID already exists.",
                    code=409,
                    type_="storage_file_already_exists",
                )

            try:
                storage_path = save_bytes_to_storage(
                    self.storage_root,
                    data=upload.content,
                    original_filename=upload.file_name,
                    subdir=bucket_id,
                    file_id=file_id,
                )
            except OSError as exc:
                logger.error(f"Could not write file {file_id}: {exc}", exc_info=True)
                raise TransportError("Failed to store file.") from exc

            stored = StoredFile(
                id=file_id,
                bucket_id=bucket_id,
                name=upload.file_name,
                mime_type=upload.mime_type,
                size=len(upload.content),
                storage_path=storage_path,
            )
            try:
                db.add(stored)
                db.commit()
                db.refresh(stored)
            except SQLAlchemyError as exc:
                db.rollback()
                resolve_storage_path(self.storage_root, storage_path).unlink(missing_ok=True)
                logger.error(f"Could not record file {file_id}: {exc}", exc_info=True)
                raise TransportError("Failed to store file.") from exc
            return _file_to_dict(stored)

    def get_file(self, bucket_id: str, file_id: str) -> tuple[dict, Path]:
        """File record and absolute path of a stored file."""
        with self.session_factory() as db:
            stored = db.get(StoredFile, file_id)
            if stored is None or stored.bucket_id != bucket_id:
                raise NotFoundError(
                    "The requested file could not be found.",
                    code=404,
                    type_="storage_file_not_found",
                )
            return _file_to_dict(stored), resolve_storage_path(self.storage_root, stored.storage_path)
