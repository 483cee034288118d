"""
Service error taxonomy.

Every error raised by the service layer derives from InventoryError and
carries two class-level attributes consumed by callers:

- retryable: True only for Conflict and TransientPersistenceError. The
  service layer never retries; callers re-read current state first.
- http_status: status code used by the HTTP routes.

All mutating operations roll back their entire unit of work before one of
these errors reaches the caller.
"""

from __future__ import annotations


class InventoryError(Exception):
    """Base class for service-layer failures."""

    code = "inventory_error"
    retryable = False
    http_status = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "retryable": self.retryable,
        }


class ValidationError(InventoryError):
    """400-level input problem."""

    code = "validation_error"


class NotFound(InventoryError):
    code = "not_found"
    http_status = 404


class OrderNotFound(NotFound):
    code = "order_not_found"


class InvalidTransition(InventoryError):
    """A status change that the item or order state machine does not allow."""

    code = "invalid_transition"
    http_status = 409


class Conflict(InventoryError):
    """A concurrent writer changed the row first; re-read and retry or abort."""

    code = "conflict"
    retryable = True
    http_status = 409


class InsufficientStock(InventoryError):
    code = "insufficient_stock"
    http_status = 409

    def __init__(self, product_id: str, available: int, requested: int, product_name: str | None = None):
        label = product_name or product_id
        super().__init__(
            f"Insufficient stock for product {label}. Available: {available}, Required: {requested}"
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class AlreadyResolved(InventoryError):
    """The refund request was already approved or rejected."""

    code = "already_resolved"
    http_status = 409


class Unauthorized(InventoryError):
    code = "unauthorized"
    http_status = 403


class TransientPersistenceError(InventoryError):
    """Database lock timeouts, dropped connections and similar."""

    code = "transient_persistence_error"
    retryable = True
    http_status = 503


class LedgerImmutableError(InventoryError):
    """Raised when something tries to update or delete a ledger row."""

    code = "ledger_immutable"
    http_status = 500
