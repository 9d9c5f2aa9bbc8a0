"""
Error taxonomy shared by every data-access module.

All errors are HTTPException subclasses so services can raise them directly
and routes propagate them untouched; non-HTTP callers (the navigation
switchboard) read ``detail`` for the user-facing message.
"""

from fastapi import HTTPException, status
from postgrest.exceptions import APIError
from typing import Any, Optional

# PostgreSQL "undefined_table" and PostgREST "table not in schema cache"
MISSING_RELATION_CODES = ("42P01", "PGRST205")
UNIQUE_VIOLATION_CODE = "23505"

PROFILE_NOT_FOUND_MESSAGE = "Profile not found. Please contact support."
UNAUTHORIZED_REQUESTS_MESSAGE = "Unauthorized: You can only view requests for your own animals"


class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class ProfileNotFoundError(HTTPException):
    def __init__(self, detail: str = PROFILE_NOT_FOUND_MESSAGE):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class UnauthorizedError(HTTPException):
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ProfileSaveError(HTTPException):
    def __init__(self, reason: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save profile data: {reason}"
        )


class DatabaseNotConfiguredError(HTTPException):
    def __init__(self, reason: str):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Database not configured: {reason}"
        )


class AdoptionCascadeError(HTTPException):
    """Approval could not complete; completed steps were reverted (see ``rolled_back``)."""

    def __init__(self, detail: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR, rolled_back: bool = False):
        super().__init__(status_code=status_code, detail=detail)
        self.rolled_back = rolled_back


def error_code(error: Any) -> Optional[str]:
    if isinstance(error, APIError):
        return error.code
    return getattr(error, "code", None)


def error_message(error: Any) -> str:
    if isinstance(error, HTTPException):
        return str(error.detail)
    if isinstance(error, APIError):
        return error.message or str(error)
    return str(error)


def is_missing_relation(error: Any) -> bool:
    """True when the backend reports that a table or view does not exist."""
    if error_code(error) in MISSING_RELATION_CODES:
        return True
    message = error_message(error).lower()
    return ("does not exist" in message and "relation" in message) or "schema cache" in message


def is_schema_missing(error: Any) -> bool:
    """Looser check used at bootstrap to decide the app needs database setup."""
    if is_missing_relation(error):
        return True
    message = error_message(error)
    return "table" in message.lower() or "schema" in message.lower() or "PGRST205" in message


def is_unique_violation(error: Any) -> bool:
    return error_code(error) == UNIQUE_VIOLATION_CODE


def backend_failure(action: str, error: Any) -> HTTPException:
    """Wrap an unexpected backend error with the operation name, keeping HTTP errors intact."""
    if isinstance(error, HTTPException):
        return error
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {error_message(error)}"
    )
