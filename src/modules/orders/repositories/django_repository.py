"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` to ensure
the Order aggregate (Order + OrderLines) is persisted atomically.

Concurrency control on status updates uses ``select_for_update()``.
Pending domain events are written to the outbox in the same transaction
as the order row.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.core.exceptions import UnsupportedOperation
from modules.core.models import OutboxEvent
from modules.orders.models import Order, OrderLine, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its lines atomically.

        ``total`` is the sum of the line subtotals.
        """
        order = Order(
            user_id=data["user_id"],
            shipping_address=data["shipping_address"],
            contact_phone=data["contact_phone"],
            notes=data.get("notes", ""),
        )
        order.save()

        total = Decimal("0.00")
        lines = data.get("lines", [])
        for line_data in lines:
            line = OrderLine(
                order=order,
                product_id=line_data["product_id"],
                quantity=line_data["quantity"],
                unit_price_snapshot=line_data["unit_price"],
            )
            line.save()
            total += line.subtotal

        order.total = total
        order.save(update_fields=["total", "updated_at"])

        logger.info("order.created", order_id=str(order.id), line_count=len(lines))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: Any) -> Optional[Order]:
        """Retrieve an order with lines and history prefetched.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_related("user")
                .prefetch_related("lines__product", "status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: Any) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Eager-loads lines so the caller can iterate over them while the row
        is locked.
        """
        try:
            return (
                Order.objects.select_for_update()
                .prefetch_related("lines")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        queryset = Order.objects.select_related("user").prefetch_related(
            "lines__product", "status_history"
        )
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def has_lines_for_product(self, product_id: Any) -> bool:
        try:
            return OrderLine.objects.filter(product_id=product_id).exists()
        except (ValueError, ValidationError):
            return False

    # ------------------------------------------------------------------
    # Save / Delete (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order, update_fields: Optional[List[str]] = None) -> Order:
        """Persist an order and write its pending events to the outbox."""
        entity.save(update_fields=update_fields)

        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=event.to_payload(),
                topic=OUTBOX_TOPIC,
            )

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    def delete(self, id: Any) -> bool:
        raise UnsupportedOperation("Orders cannot be deleted; cancel the order instead.")

    # ------------------------------------------------------------------
    # Order-specific writes
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_history(
        self,
        order_id: Any,
        new_status: str,
        old_status: Optional[str] = None,
        user_id: Any = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        history = OrderStatusHistory(
            order_id=order_id,
            old_status=old_status,
            new_status=new_status,
            user_id=user_id,
            notes=notes,
        )
        history.save()

        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=new_status,
        )
        return history
