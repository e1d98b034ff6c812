"""
Application errors raised by the ledger core.

Every error is recoverable: the API layer turns it into a JSON response and
the failed operation has left the database untouched.
"""
from __future__ import annotations

from typing import Any, Optional


class LedgerError(Exception):
    """Base class for all ledger errors."""

    code: str = "ledger_error"
    status_code: int = 400
    default_message: str = "The ledger operation could not be completed."

    def __init__(self, message: Optional[str] = None, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "detail": self.message,
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationError(LedgerError):
    """Malformed or out-of-range input, e.g. a non-positive amount or an overpayment."""

    code = "validation_error"
    status_code = 400
    default_message = "The request contains invalid values."


class StateError(LedgerError):
    """The operation is not allowed for the entity's current status."""

    code = "invalid_state"
    status_code = 409
    default_message = "This operation is not allowed in the current status."


class ConflictError(LedgerError):
    """The operation would break a ledger invariant."""

    code = "conflict"
    status_code = 409
    default_message = "This operation conflicts with the current ledger state."


class NotFoundError(LedgerError):
    code = "not_found"
    status_code = 404
    default_message = "The requested record does not exist."
