# patient_intake/core/errors.py
"""
Error kinds raised by backends and services.

Every failure that leaves a backend is one of four kinds so callers can
tell a rejected payload from a missing record, a duplicate, or a backend
that could not be reached.
"""
from enum import Enum

from fastapi import status


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    TRANSPORT = "transport"


HTTP_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.TRANSPORT: status.HTTP_502_BAD_GATEWAY,
}


class IntakeError(Exception):
    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(self, message: str, *, code: int | None = None, type_: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.type = type_

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]


class IntakeValidationError(IntakeError):
    kind = ErrorKind.VALIDATION


class NotFoundError(IntakeError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(IntakeError):
    kind = ErrorKind.CONFLICT


class DuplicateSubmissionError(ConflictError):
    """Same request id submitted while the first submission is still running."""


class TransportError(IntakeError):
    kind = ErrorKind.TRANSPORT
