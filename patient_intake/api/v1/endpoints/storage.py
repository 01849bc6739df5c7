# patient_intake/api/v1/endpoints/storage.py
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from patient_intake.backends.base import Backend
from patient_intake.backends.local import LocalFileStore
from patient_intake.backends.provider import get_backend
from patient_intake.core.errors import NotFoundError

router = APIRouter()


@router.get("/buckets/{bucket_id}/files/{file_id}/view")
def view_file(
    bucket_id: str,
    file_id: str,
    backend: Backend = Depends(get_backend),
):
    """
    Serve a file kept by the local backend.

    The `project` query parameter of view URLs is accepted and ignored.
    """
    if not isinstance(backend.files, LocalFileStore):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    try:
        record, file_path = backend.files.get_file(bucket_id, file_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    if not file_path.exists():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found on storage.",
        )

    return FileResponse(
        path=str(file_path),
        media_type=record["mimeType"] or "application/octet-stream",
        filename=record["name"],
        content_disposition_type="inline",
    )
