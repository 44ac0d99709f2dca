"""Order service layer (Use Cases).

Orchestrates cart→order conversion, status management and cancellation.
All write operations are atomic: the service defines the unit-of-work
boundary.

Business rules enforced:
- Checkout re-validates every cart line against the locked product rows
  (existence, active-chain, stock) before anything is written.
- Prices are snapshotted at checkout; stock is reserved with conditional
  decrements so concurrent checkouts can never oversell.
- Cancellation (Pending/Paid only) restores every line's stock.
- Status transitions are validated against the state machine; each change
  is recorded in the history and the outbox.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.db import transaction

from modules.core.exceptions import (
    EmptyCart,
    FieldValidationError,
    InvalidTransition,
    NotFound,
    StaleCartItem,
    StaleReason,
    UnsupportedOperation,
)
from modules.orders.constants import OrderStatus
from modules.orders.events import OrderCancelled, OrderPlaced, OrderStatusChanged
from shared.infrastructure.bus import event_bus as default_event_bus

if TYPE_CHECKING:
    from modules.cart.repositories.interfaces import ICartRepository
    from modules.catalog.repositories.interfaces import IProductRepository
    from modules.orders.dtos import PlaceOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).  ``owner_id``
    arguments restrict an operation to orders of that user; ``None`` means
    unrestricted (staff).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        cart_repository: ICartRepository,
        product_repository: IProductRepository,
        event_bus: Optional[IEventBus] = None,
    ) -> None:
        self._order_repo = order_repository
        self._cart_repo = cart_repository
        self._product_repo = product_repository
        self._event_bus = event_bus or default_event_bus

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def place_order(self, user_id: Any, dto: PlaceOrderDTO) -> Order:
        """Convert the user's cart into a Pending order.

        Steps:
        1. Lock the cart lines.
        2. Lock the referenced products in primary-key order and
           re-validate each line.
        3. Reserve stock with conditional decrements.
        4. Persist order + lines, clear the cart, record history and event.

        Raises:
            EmptyCart: the cart has no lines.
            StaleCartItem: a line's product vanished, became inactive or
                no longer has enough stock.
        """
        log = logger.bind(user_id=str(user_id))
        log.info("order.checkout_started")

        cart_lines = self._cart_repo.lock_for_user(user_id)
        if not cart_lines:
            raise EmptyCart("Cannot place an order with an empty cart.")

        products = self._product_repo.lock_many(line.product_id for line in cart_lines)

        order_lines = []
        for line in cart_lines:
            product = products.get(line.product_id)
            if product is None:
                reason = StaleReason.NOT_FOUND
            elif not product.is_orderable:
                reason = StaleReason.INACTIVE
            elif product.stock < line.quantity:
                reason = StaleReason.INSUFFICIENT_STOCK
            else:
                order_lines.append(
                    {
                        "product_id": product.id,
                        "quantity": line.quantity,
                        "unit_price": product.price,
                    }
                )
                continue
            log.warning("order.stale_cart_item", product_id=str(line.product_id), reason=reason)
            raise StaleCartItem(product_id=line.product_id, reason=reason)

        for item in order_lines:
            if not self._product_repo.decrement_stock(item["product_id"], item["quantity"]):
                raise StaleCartItem(
                    product_id=item["product_id"],
                    reason=StaleReason.INSUFFICIENT_STOCK,
                )
            log.info(
                "order.stock_reserved",
                product_id=str(item["product_id"]),
                quantity=item["quantity"],
            )

        order = self._order_repo.create(
            {
                "user_id": user_id,
                "shipping_address": dto.shipping_address,
                "contact_phone": dto.contact_phone,
                "notes": dto.notes,
                "lines": order_lines,
            }
        )
        self._cart_repo.clear(user_id)

        order.add_domain_event(
            OrderPlaced(
                aggregate_id=order.id,
                order_number=order.order_number,
                total=order.total,
                line_count=len(order_lines),
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            new_status=OrderStatus.PENDING,
            user_id=user_id,
            notes="Order placed",
        )
        self._event_bus.publish_on_commit(order.pull_domain_events())

        log.info(
            "order.placed",
            order_id=str(order.id),
            order_number=order.order_number,
            total=str(order.total),
        )
        return self._order_repo.get_by_id(order.id) or order

    @transaction.atomic
    def cancel(
        self,
        order_id: Any,
        actor_id: Any = None,
        owner_id: Any = None,
        notes: str = "",
    ) -> Order:
        """Cancel an order and restore the stock of every line.

        The order row is locked first so concurrent cancellations cannot
        restore stock twice.

        Raises:
            NotFound: order does not exist (or is not the owner's).
            InvalidTransition: the order is not Pending or Paid.
        """
        order = self._get_locked(order_id, owner_id)
        log = logger.bind(order_id=str(order_id), current_status=order.status)

        if not order.is_cancellable:
            log.warning("order.cancel_not_allowed")
            raise InvalidTransition(current=order.status, target=OrderStatus.CANCELLED)

        for line in sorted(order.lines.all(), key=lambda line: str(line.product_id)):
            self._product_repo.increment_stock(line.product_id, line.quantity)
            log.info(
                "order.stock_restored",
                product_id=str(line.product_id),
                quantity=line.quantity,
            )

        old_status = order.status
        order.status = OrderStatus.CANCELLED
        order.add_domain_event(
            OrderCancelled(aggregate_id=order.id, previous_status=old_status)
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            new_status=OrderStatus.CANCELLED,
            old_status=old_status,
            user_id=actor_id,
            notes=notes or "Order cancelled",
        )
        self._event_bus.publish_on_commit(order.pull_domain_events())

        log.info("order.cancelled")
        return self._order_repo.get_by_id(order.id) or order

    @transaction.atomic
    def advance(
        self,
        order_id: Any,
        target_status: str,
        actor_id: Any = None,
        notes: str = "",
    ) -> Order:
        """Move an order forward in its lifecycle.

        Requesting the current status is a no-op.  ``CANCELLED`` is routed
        through ``cancel``.

        Raises:
            FieldValidationError: unknown status value.
            NotFound: order does not exist.
            InvalidTransition: skip or reversal.
        """
        target = str(target_status or "").strip().upper()
        if target not in OrderStatus.values:
            raise FieldValidationError(
                errors={"status": f"'{target_status}' is not a valid order status."}
            )
        if target == OrderStatus.CANCELLED:
            return self.cancel(order_id, actor_id=actor_id, notes=notes)

        order = self._get_locked(order_id)
        log = logger.bind(
            order_id=str(order_id), current_status=order.status, new_status=target
        )

        if order.status == target:
            log.info("order.status_unchanged")
            return self._order_repo.get_by_id(order.id) or order

        if not order.can_transition_to(target):
            log.warning("order.invalid_transition")
            raise InvalidTransition(current=order.status, target=target)

        old_status = order.status
        order.status = target
        order.stamp(target)
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id, old_status=old_status, new_status=target
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            new_status=target,
            old_status=old_status,
            user_id=actor_id,
            notes=notes,
        )
        self._event_bus.publish_on_commit(order.pull_domain_events())

        log.info("order.status_updated")
        return self._order_repo.get_by_id(order.id) or order

    def delete(self, order_id: Any) -> None:
        """Orders are part of the financial history and are never deleted.

        Raises:
            UnsupportedOperation: always.
        """
        logger.warning("order.delete_rejected", order_id=str(order_id))
        raise UnsupportedOperation("Orders cannot be deleted; cancel the order instead.")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: Any, owner_id: Any = None) -> Order:
        """Retrieve a single order by ID.

        Raises:
            NotFound: the order does not exist or belongs to someone else.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order or (owner_id is not None and order.user_id != owner_id):
            raise NotFound(f"Order {order_id} not found.")
        return order

    def list_orders(
        self, filters: Optional[Dict[str, Any]] = None, owner_id: Any = None
    ) -> List[Order]:
        filters = dict(filters or {})
        if owner_id is not None:
            filters["user_id"] = owner_id
        return self._order_repo.list(filters)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_locked(self, order_id: Any, owner_id: Any = None) -> Order:
        order = self._order_repo.get_for_update(order_id)
        if not order or (owner_id is not None and order.user_id != owner_id):
            raise NotFound(f"Order {order_id} not found.")
        return order
