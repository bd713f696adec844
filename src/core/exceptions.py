"""Custom exceptions and error codes."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the API."""

    # Authentication errors (401)
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"

    # Not found errors (404)
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
    HANDLE_NOT_FOUND = "HANDLE_NOT_FOUND"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    LAST_PROFILE = "LAST_PROFILE"
    CANNOT_DELETE_PRIMARY = "CANNOT_DELETE_PRIMARY"

    # Conflict errors (409)
    DUPLICATE_HANDLE = "DUPLICATE_HANDLE"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (500/503)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SCHEMA_UNSUPPORTED = "SCHEMA_UNSUPPORTED"
    REPOSITORY_UNAVAILABLE = "REPOSITORY_UNAVAILABLE"


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Any | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=401,
        )


class NotAuthenticatedError(AppException):
    """A profile operation was requested with no signed-in account."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.NOT_AUTHENTICATED,
            message="No account is signed in",
            status_code=401,
        )


class SchemaUnsupportedError(AppException):
    """The multi-profile store is not provisioned in this deployment.

    Callers that can degrade to legacy single-profile behaviour catch this;
    anything that needs multiple profiles surfaces it as a configuration
    problem, not a retryable fault.
    """

    def __init__(self, relation: str = "cards_identities") -> None:
        super().__init__(
            error_code=ErrorCode.SCHEMA_UNSUPPORTED,
            message="Multiple profiles are not enabled for this deployment",
            status_code=503,
            details={"relation": relation},
        )


class TransientRepositoryError(AppException):
    """Backend failure unrelated to schema shape."""

    def __init__(self, message: str = "Profile storage is unavailable", cause: str = "") -> None:
        super().__init__(
            error_code=ErrorCode.REPOSITORY_UNAVAILABLE,
            message=message,
            status_code=503,
            details={"cause": cause} if cause else None,
        )


class DuplicateHandleError(AppException):
    """Handle already taken for this account."""

    def __init__(self, handle: str) -> None:
        super().__init__(
            error_code=ErrorCode.DUPLICATE_HANDLE,
            message=f"Handle already taken: {handle}",
            status_code=409,
            details={"handle": handle},
        )


class LastProfileError(AppException):
    """Cannot delete the account's only profile."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.LAST_PROFILE,
            message="Cannot delete your only profile",
            status_code=400,
        )


class CannotDeletePrimaryError(AppException):
    """The primary profile can never be deleted."""

    def __init__(self, profile_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.CANNOT_DELETE_PRIMARY,
            message="The primary profile cannot be deleted",
            status_code=400,
            details={"profile_id": profile_id},
        )


class ProfileNotFoundError(AppException):
    """Profile not found."""

    def __init__(self, profile_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.PROFILE_NOT_FOUND,
            message=f"Profile not found: {profile_id}",
            status_code=404,
            details={"profile_id": profile_id},
        )


class HandleNotFoundError(AppException):
    """No profile with this handle could be located."""

    def __init__(self, handle: str) -> None:
        super().__init__(
            error_code=ErrorCode.HANDLE_NOT_FOUND,
            message=f"No profile found for handle: {handle}",
            status_code=404,
            details={"handle": handle},
        )
