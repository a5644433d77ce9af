# Overview: Error taxonomy shared by the sale engine, the allocator and reporting.

from __future__ import annotations


class SaleError(Exception):
    """Base class for sale operation errors."""

    kind = "sale_error"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind, "details": self.details}


class InvalidRequestError(SaleError, ValueError):
    """400-level input problem. Raised before anything is written."""

    kind = "invalid_request"
    status_code = 400


class NotFoundError(SaleError, LookupError):
    """404-level: the referenced sale (or product) does not exist."""

    kind = "not_found"
    status_code = 404


class ConflictError(SaleError):
    """409-level state conflict (e.g., voiding an already voided sale)."""

    kind = "conflict"
    status_code = 409


class PersistenceError(SaleError):
    """
    Store failure inside an atomic unit. The unit has already been rolled back.

    retryable is set for lock timeouts and optimistic version conflicts; the
    caller decides whether to retry.
    """

    kind = "persistence_failure"
    status_code = 500

    def __init__(self, message: str, details: dict | None = None, retryable: bool = False):
        super().__init__(message, details)
        self.retryable = retryable
