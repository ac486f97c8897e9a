# Overview: Typed failures raised by the ledger, sale processor and their collaborators.

"""
Error kinds (authoritative)

- InvalidInput: malformed payloads; raised before any write.
- NotFoundError: referenced product / pending bill / sale does not exist.
- ConflictError: unique constraint violation (duplicate SKU, barcode, sale number)
  or a delete that would orphan history.
- TransactionError: a multi-step operation failed after it started; always
  rolled back. The failing step's exception is chained as __cause__.
- StorageError: the database was unavailable, locked past retry, or failed with IO.

Each kind carries the HTTP status the JSON surface answers with.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for every failure the core reports to callers."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "kind": type(self).__name__}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidInput(LedgerError, ValueError):
    """400-level input problem."""
    status_code = 400


class InsufficientStockError(InvalidInput):
    """Operation would drive godown or counter stock below zero."""


class NotFoundError(LedgerError):
    status_code = 404


class ConflictError(LedgerError):
    """409-level business rule conflict (e.g., duplicate SKU)."""
    status_code = 409


class TransactionError(LedgerError):
    """Atomic multi-step operation failed after starting; nothing was applied."""
    status_code = 500


class StorageError(LedgerError):
    status_code = 503
