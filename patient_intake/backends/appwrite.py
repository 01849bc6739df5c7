# patient_intake/backends/appwrite.py
"""
Appwrite REST implementation of the backend capabilities.

One httpx.Client per process, shared by the three capability handles.
Appwrite answers errors with {"message", "code", "type"}; those are mapped
onto the error kinds in patient_intake.core.errors.
"""
import json
import logging

import httpx

from patient_intake.backends.base import FileUpload
from patient_intake.core.errors import (
    ConflictError,
    IntakeError,
    IntakeValidationError,
    NotFoundError,
    TransportError,
)

logger = logging.getLogger(__name__)

# Appwrite rejects single requests above this size; bigger files go in chunks
CHUNK_SIZE = 5 * 1024 * 1024

RESPONSE_FORMAT = "1.5.0"


def _error_from_response(response: httpx.Response) -> IntakeError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = body.get("message") or response.reason_phrase or "Backend request failed"
    type_ = body.get("type")
    status_code = response.status_code

    if status_code == 400:
        return IntakeValidationError(message, code=status_code, type_=type_)
    if status_code == 404:
        return NotFoundError(message, code=status_code, type_=type_)
    if status_code == 409:
        return ConflictError(message, code=status_code, type_=type_)
    return TransportError(message, code=status_code, type_=type_)


def _query_params(queries: list[dict]) -> list[tuple[str, str]]:
    return [("queries[]", json.dumps(q)) for q in queries]


class AppwriteClient:
    def __init__(
        self,
        endpoint: str,
        project_id: str,
        api_key: str | None = None,
        *,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        headers = {
            "X-Appwrite-Project": project_id,
            "X-Appwrite-Response-Format": RESPONSE_FORMAT,
        }
        if api_key:
            headers["X-Appwrite-Key"] = api_key

        self.endpoint = endpoint.rstrip("/")
        self._http = httpx.Client(
            base_url=self.endpoint,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def request(
        self,
        method: str,
        path: str,
        *,
        params=None,
        json_body: dict | None = None,
        data: dict | None = None,
        files: dict | None = None,
        headers: dict | None = None,
    ) -> dict:
        try:
            response = self._http.request(
                method,
                path,
                params=params,
                json=json_body,
                data=data,
                files=files,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.error(f"Appwrite {method} {path} failed: {exc}")
            raise TransportError(f"Backend unreachable: {exc}") from exc

        if response.is_error:
            error = _error_from_response(response)
            logger.warning(
                f"Appwrite {method} {path} returned {response.status_code} "
                f"({error.type}): {error.message}"
            )
            raise error

        return response.json()

    def close(self) -> None:
        self._http.close()


class AppwriteAccountDirectory:
    def __init__(self, client: AppwriteClient):
        self.client = client

    def create(self, user_id: str, *, email: str, phone: str, name: str) -> dict:
        body = {"userId": user_id, "email": email, "phone": phone or None, "name": name}
        return self.client.request(
            "POST",
            "/users",
            json_body={k: v for k, v in body.items() if v is not None},
        )

    def get(self, user_id: str) -> dict:
        return self.client.request("GET", f"/users/{user_id}")

    def list(self, queries: list[dict]) -> dict:
        return self.client.request("GET", "/users", params=_query_params(queries))


class AppwriteDocumentStore:
    def __init__(self, client: AppwriteClient, database_id: str):
        self.client = client
        self.database_id = database_id

    def _collection_path(self, collection_id: str) -> str:
        return f"/databases/{self.database_id}/collections/{collection_id}/documents"

    def create_document(self, collection_id: str, document_id: str, data: dict) -> dict:
        return self.client.request(
            "POST",
            self._collection_path(collection_id),
            json_body={"documentId": document_id, "data": data},
        )

    def list_documents(self, collection_id: str, queries: list[dict]) -> dict:
        return self.client.request(
            "GET",
            self._collection_path(collection_id),
            params=_query_params(queries),
        )


class AppwriteFileStore:
    def __init__(self, client: AppwriteClient):
        self.client = client

    def create_file(self, bucket_id: str, file_id: str, upload: FileUpload) -> dict:
        """
        Upload a file. Files above CHUNK_SIZE are sent as consecutive
        Content-Range chunks; the last chunk's response is the file record.
        """
        path = f"/storage/buckets/{bucket_id}/files"
        size = len(upload.content)

        if size <= CHUNK_SIZE:
            return self.client.request(
                "POST",
                path,
                data={"fileId": file_id},
                files={"file": (upload.file_name, upload.content, upload.mime_type)},
            )

        result: dict = {}
        for start in range(0, size, CHUNK_SIZE):
            end = min(start + CHUNK_SIZE, size)
            headers = {"Content-Range": f"bytes {start}-{end - 1}/{size}"}
            if start > 0:
                headers["X-Appwrite-ID"] = file_id
            result = self.client.request(
                "POST",
                path,
                data={"fileId": file_id},
                files={"file": (upload.file_name, upload.content[start:end], upload.mime_type)},
                headers=headers,
            )
            logger.debug(f"Uploaded bytes {start}-{end - 1}/{size} of file {file_id}")
        return result
