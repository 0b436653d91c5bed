"""Mini README: Error hierarchy raised by the ledger service.

Structure:
    * LedgerError - base class carrying the HTTP status used by the API layer.
    * ValidationError - malformed payloads or values outside the closed sets.
    * NotFoundError - unknown transaction identifiers.
    * PermissionDeniedError - edits attempted after the edit window closed.
    * StoreError - failures inside the persistence layer.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for failures surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError, ValueError):
    """Raised when a payload or filter fails validation."""

    status_code = 400


class NotFoundError(LedgerError, LookupError):
    """Raised when a referenced transaction does not exist."""

    status_code = 404


class PermissionDeniedError(LedgerError):
    """Raised when a transaction is no longer editable."""

    status_code = 403


class StoreError(LedgerError):
    """Raised when the underlying store fails."""

    status_code = 500
