"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderPlaced(DomainEvent):
    """Raised when a cart is converted into an order."""

    order_number: str = ""
    total: Decimal = Decimal("0.00")
    line_count: int = 0


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled and its stock restored."""

    previous_status: str = ""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised when an order moves forward in its lifecycle."""

    old_status: str = ""
    new_status: str = ""
