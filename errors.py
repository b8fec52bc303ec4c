"""Domain errors shared by the services and routers.

Every error carries a user-safe message; the HTTP status is decided here so
handlers never build error responses themselves.
"""

from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    UPSTREAM_STORAGE_ERROR = "UPSTREAM_STORAGE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DomainError(Exception):
    """Base domain error with code, HTTP status and user-safe message."""

    code = ErrorCode.INTERNAL_ERROR
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class UnauthorizedError(DomainError):
    """Missing or invalid bearer token."""

    code = ErrorCode.UNAUTHORIZED
    status_code = 401


class ForbiddenError(DomainError):
    """Authenticated, but lacking the organiser role or record ownership."""

    code = ErrorCode.FORBIDDEN
    status_code = 403


class ValidationError(DomainError):
    code = ErrorCode.VALIDATION_ERROR
    status_code = 400


class NotFoundError(DomainError):
    code = ErrorCode.NOT_FOUND
    status_code = 404


class ConflictError(DomainError):
    """Unique constraint violation, usually a slug collision."""

    code = ErrorCode.CONFLICT
    status_code = 409


class UpstreamStorageError(DomainError):
    """Object storage rejected an upload."""

    code = ErrorCode.UPSTREAM_STORAGE_ERROR
    status_code = 502


class InternalError(DomainError):
    code = ErrorCode.INTERNAL_ERROR
    status_code = 500
