"""
Exception taxonomy for the ledger API.

Each error carries the HTTP status it maps to and a client-safe message.
Internal details (driver errors, stack traces) stay in the logs.
"""

from fastapi import status


class LedgerAPIError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message: str = "Internal server error"

    def __init__(self, message: str = None):
        super().__init__(message or self.public_message)


class Unauthorized(LedgerAPIError):
    """Credential is missing, malformed, invalid or resolves to no known caller."""

    status_code = status.HTTP_401_UNAUTHORIZED
    public_message = "Unauthorized"


class Forbidden(LedgerAPIError):
    """Caller is authenticated but lacks the required role."""

    status_code = status.HTTP_403_FORBIDDEN
    public_message = "Forbidden"


class StoreUnavailable(LedgerAPIError):
    """The document store could not be reached or rejected the operation."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Internal server error"
