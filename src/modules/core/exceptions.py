"""Domain error taxonomy shared by every module.

Raised by the Service Layer when a consistency rule is violated.  All
errors are recoverable by the caller; the API layer translates them into
HTTP responses through ``modules.core.exception_handler``.

Every error exposes:
- ``code``: stable machine-readable identifier.
- ``context``: structured details (ids, counts, reasons) for the caller.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for all recoverable domain errors."""

    code = "domain_error"
    default_message = "Domain rule violated."

    def __init__(self, message: Optional[str] = None, **context: Any) -> None:
        self.message = message or self.default_message
        self.context: Dict[str, Any] = context
        super().__init__(self.message)


class NotFound(DomainError):
    """The referenced entity does not exist."""

    code = "not_found"
    default_message = "Not found."


class Inactive(DomainError):
    """The product's active-chain (product, subcategory, category) is broken."""

    code = "inactive"
    default_message = "Resource is inactive."


class InsufficientStock(DomainError):
    """Requested quantity exceeds the product's current stock."""

    code = "insufficient_stock"
    default_message = "Insufficient stock."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        product_id: Any = None,
        requested: int = 0,
        available: int = 0,
    ) -> None:
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            message,
            product_id=str(product_id) if product_id else None,
            requested=requested,
            available=available,
        )


class EmptyCart(DomainError):
    """Checkout attempted with no cart lines."""

    code = "empty_cart"
    default_message = "Cart is empty."


class StaleCartItem(DomainError):
    """A cart line no longer satisfies the checkout rules.

    ``reason`` is one of ``StaleReason`` values.
    """

    code = "stale_cart_item"
    default_message = "Cart item is no longer available."

    def __init__(
        self, message: Optional[str] = None, *, product_id: Any, reason: str
    ) -> None:
        self.product_id = product_id
        self.reason = reason
        super().__init__(
            message or f"Cart item {product_id} is stale: {reason}.",
            product_id=str(product_id),
            reason=reason,
        )


class StaleReason:
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    INSUFFICIENT_STOCK = "insufficient_stock"


class InvalidTransition(DomainError):
    """The order state machine does not allow the requested transition."""

    code = "invalid_transition"
    default_message = "Invalid status transition."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        current: Optional[str] = None,
        target: Optional[str] = None,
    ) -> None:
        self.current = current
        self.target = target
        super().__init__(
            message or f"Cannot transition from {current} to {target}.",
            current=current,
            target=target,
        )


class HasDependents(DomainError):
    """A catalog node still has children and cannot be hard-deleted."""

    code = "has_dependents"
    default_message = "Resource has dependents; deactivate it instead."

    def __init__(self, message: Optional[str] = None, *, count: int) -> None:
        self.count = count
        super().__init__(message, count=count)


class ReferencedByOrders(DomainError):
    """A product appears in order history and cannot be hard-deleted."""

    code = "referenced_by_orders"
    default_message = "Product is referenced by orders; deactivate it instead."


class UnsupportedOperation(DomainError):
    """The operation is never allowed (e.g. deleting an order)."""

    code = "unsupported_operation"
    default_message = "Operation not supported."


class FieldValidationError(DomainError):
    """Field-level constraint violation (the taxonomy's ``ValidationError``).

    ``errors`` maps field name to a message.
    """

    code = "invalid"
    default_message = "Validation failed."

    def __init__(
        self, message: Optional[str] = None, *, errors: Optional[Dict[str, str]] = None
    ) -> None:
        self.errors = errors or {}
        super().__init__(message, errors=self.errors)


# Alias matching the taxonomy name; import as ``FieldValidationError`` in
# modules that also use ``django.core.exceptions.ValidationError``.
ValidationError = FieldValidationError
