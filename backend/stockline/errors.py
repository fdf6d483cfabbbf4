# Overview: Typed failures raised by the ledger core.

"""
Ledger error taxonomy.

Business failures (ValidationError, NotFound, InsufficientStock) are raised
before commit and leave no side effects. StorageError wraps database faults
so callers can tell "your request was invalid" apart from "try again".
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for ledger operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(LedgerError, ValueError):
    """400-level input problem, rejected before any transaction opens."""


class NotFound(LedgerError):
    """Referenced entity does not exist."""
    def __init__(self, entity: str, entity_id):
        super().__init__(
            f"{entity} {entity_id} not found",
            details={"entity": entity, "entity_id": str(entity_id)},
        )
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStock(LedgerError):
    """Dispatch line item exceeds the warehouse quantity on hand."""
    def __init__(self, product_id, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}, available {available}",
            details={
                "product_id": str(product_id),
                "requested": requested,
                "available": available,
            },
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available

    def __eq__(self, other):
        if not isinstance(other, InsufficientStock):
            return NotImplemented
        return (self.product_id, self.requested, self.available) == (
            other.product_id, other.requested, other.available
        )

    __hash__ = LedgerError.__hash__


class StorageError(LedgerError):
    """
    Transaction could not commit.

    transient=True means a retry may succeed (deadlock, serialization
    failure, busy database); False means the write itself is bad
    (constraint violation).
    """
    def __init__(self, message: str, *, transient: bool = False):
        super().__init__(message, details={"transient": transient})
        self.transient = transient
