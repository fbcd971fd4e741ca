"""Error taxonomy for ledger and reward operations.

Services raise these; routes translate them to HTTP status codes
using each class's ``status_code``.
"""

from typing import Optional


class CTADError(Exception):
    """Base class for all domain errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CTADError):
    """Malformed or missing required input."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, index: Optional[int] = None):
        super().__init__(message)
        self.field = field
        self.index = index


class NotFoundError(CTADError):
    """Referenced Work or Declaration does not exist."""

    status_code = 404


class ConflictError(CTADError):
    """Duplicate-key constraint on creation."""

    status_code = 409


class ImmutableRecordError(CTADError):
    """Attempted in-place change of an append-only record."""

    status_code = 409


class DependencyFailure(CTADError):
    """A secondary step failed after the primary record was committed."""

    status_code = 500


def error_payload(exc: CTADError) -> dict:
    """``{success: false, error}`` body, with the offending field when known."""
    body = {"success": False, "error": exc.message}
    if isinstance(exc, ValidationError):
        if exc.field:
            body["field"] = exc.field
        if exc.index is not None:
            body["index"] = exc.index
    return body
