# patient_intake/backends/base.py
"""
Capabilities the intake workflow needs from the backend.

Each capability is passed explicitly to the services, so the workflow runs
the same against Appwrite, the local SQL backend, or a test fake.
Records are plain dicts in the backend's wire shape ("$id", "$createdAt", ...).
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol


class Query:
    """Filters understood by list calls."""

    @staticmethod
    def equal(attribute: str, values: list[Any]) -> dict:
        return {"method": "equal", "attribute": attribute, "values": list(values)}


@dataclass
class FileUpload:
    """Bytes plus metadata of one file handed to a FileStore."""

    content: bytes
    file_name: str
    mime_type: str


class AccountDirectory(Protocol):
    def create(self, user_id: str, *, email: str, phone: str, name: str) -> dict: ...

    def get(self, user_id: str) -> dict: ...

    def list(self, queries: list[dict]) -> dict: ...


class DocumentStore(Protocol):
    def create_document(self, collection_id: str, document_id: str, data: dict) -> dict: ...

    def list_documents(self, collection_id: str, queries: list[dict]) -> dict: ...


class FileStore(Protocol):
    def create_file(self, bucket_id: str, file_id: str, upload: FileUpload) -> dict: ...


@dataclass
class Backend:
    """
    Handles to the three capabilities plus the ids the workflow needs.

    - endpoint / project_id / bucket_id build public file view URLs.
    - patient_collection_id is the collection holding patient profiles.
    """

    accounts: AccountDirectory
    documents: DocumentStore
    files: FileStore
    endpoint: str
    project_id: str
    bucket_id: str
    patient_collection_id: str
    closers: list[Callable[[], None]] = field(default_factory=list)

    def close(self) -> None:
        """Release connections held by the capabilities (HTTP clients)."""
        for closer in self.closers:
            closer()

    def file_view_url(self, file_id: str) -> str:
        endpoint = self.endpoint.rstrip("/")
        return (
            f"{endpoint}/storage/buckets/{self.bucket_id}/files/{file_id}"
            f"/view?project={self.project_id}"
        )
