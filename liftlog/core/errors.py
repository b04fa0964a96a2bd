"""Typed storage errors shared by both backends, the services and the API layer."""

from __future__ import annotations


class StorageError(Exception):
    """Base error for storage operations (relational and legacy file store).

    ``code`` is stable and maps to an HTTP status in the API layer; ``cause``
    keeps the underlying driver/IO error for logs.
    """

    code = "INTERNAL"
    status_code = 500

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def to_dict(self) -> dict:
        return {"type": self.code, "message": self.message}


class ValidationError(StorageError):
    """Malformed input or a referenced entity that does not exist. Never retried."""

    code = "VALIDATION"
    status_code = 400


class NotFoundError(StorageError):
    code = "NOT_FOUND"
    status_code = 404


class ConflictError(StorageError):
    """Uniqueness violation (duplicate exercise name, taken id) or a restricted delete."""

    code = "CONFLICT"
    status_code = 409


class TransactionError(StorageError):
    """Deadlock, timeout or lost connection inside a multi-row mutation.

    The transaction was rolled back in full, so the caller may retry the whole
    operation.
    """

    code = "TRANSACTION"
    status_code = 503


class MigrationError(StorageError):
    """Legacy source unreadable or a backend unreachable during backfill/parity."""

    code = "MIGRATION"
    status_code = 500

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        inserted: int = 0,
        skipped: int = 0,
    ):
        super().__init__(message, cause)
        self.inserted = inserted
        self.skipped = skipped

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["inserted"] = self.inserted
        payload["skipped"] = self.skipped
        return payload
