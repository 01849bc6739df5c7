# patient_intake/backends/provider.py
import logging
from functools import lru_cache

from patient_intake.backends.appwrite import (
    AppwriteAccountDirectory,
    AppwriteClient,
    AppwriteDocumentStore,
    AppwriteFileStore,
)
from patient_intake.backends.base import Backend
from patient_intake.backends.local import (
    LocalAccountDirectory,
    LocalDocumentStore,
    LocalFileStore,
    create_local_schema,
)
from patient_intake.core.config import Settings, get_settings
from patient_intake.utils.file_storage import get_storage_root

logger = logging.getLogger(__name__)


def build_appwrite_backend(settings: Settings, transport=None) -> Backend:
    client = AppwriteClient(
        settings.endpoint,
        settings.project_id,
        settings.api_key,
        timeout=settings.http_timeout_seconds,
        transport=transport,
    )
    return Backend(
        accounts=AppwriteAccountDirectory(client),
        documents=AppwriteDocumentStore(client, settings.database_id),
        files=AppwriteFileStore(client),
        endpoint=settings.endpoint,
        project_id=settings.project_id,
        bucket_id=settings.bucket_id,
        patient_collection_id=settings.patient_collection_id,
        closers=[client.close],
    )


def build_local_backend(settings: Settings, session_factory=None) -> Backend:
    """
    Local backend on the configured SQL database and storage root.

    `session_factory` defaults to the module-level SessionLocal.
    """
    if session_factory is None:
        from patient_intake.core.database import SessionLocal, engine

        create_local_schema(engine)
        session_factory = SessionLocal

    storage_root = get_storage_root(settings.file_storage_root)
    return Backend(
        accounts=LocalAccountDirectory(session_factory),
        documents=LocalDocumentStore(session_factory),
        files=LocalFileStore(session_factory, storage_root),
        endpoint=settings.endpoint,
        project_id=settings.project_id,
        bucket_id=settings.bucket_id,
        patient_collection_id=settings.patient_collection_id,
    )


@lru_cache()
def get_backend() -> Backend:
    """
    FastAPI dependency returning the process-wide backend handles.
    """
    settings = get_settings()
    logger.info(f"Using {settings.backend} backend at {settings.endpoint}")
    if settings.backend == "local":
        return build_local_backend(settings)
    return build_appwrite_backend(settings)


def close_backend() -> None:
    """
    Close the cached backend, if one was built, and forget it.
    """
    if get_backend.cache_info().currsize:
        get_backend().close()
        logger.info("Closed backend connections")
    get_backend.cache_clear()
