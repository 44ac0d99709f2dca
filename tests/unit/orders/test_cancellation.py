"""Unit tests for order cancellation.

Covers:
- Pending and Paid orders can be cancelled; stock is restored exactly once.
- Shipped, Delivered and Cancelled orders cannot be cancelled.
- Owners can only cancel their own orders.
- Orders are never deleted.
"""

from __future__ import annotations

import pytest

from modules.catalog.models import Product
from modules.core.exceptions import InvalidTransition, NotFound, UnsupportedOperation
from modules.core.models import OutboxEvent
from modules.orders.constants import OrderStatus
from modules.orders.models import Order

pytestmark = pytest.mark.unit


@pytest.fixture()
def placed_order(cart_service, order_service, customer, cola, make_product, checkout):
    chips = make_product(name="Chips", price="1.25", stock=5)
    cart_service.add_item(customer.id, cola.id, 4)
    cart_service.add_item(customer.id, chips.id, 5)
    return order_service.place_order(customer.id, checkout)


def _stock(name):
    return Product.objects.get(name=name).stock


class TestCancel:
    def test_cancel_pending_restores_stock(self, order_service, placed_order, customer):
        assert (_stock("Cola"), _stock("Chips")) == (6, 0)

        order = order_service.cancel(placed_order.id, actor_id=customer.id, owner_id=customer.id)

        assert order.status == OrderStatus.CANCELLED
        assert (_stock("Cola"), _stock("Chips")) == (10, 5)

    def test_cancel_paid_order(self, order_service, placed_order):
        order_service.advance(placed_order.id, OrderStatus.PAID)

        order = order_service.cancel(placed_order.id)

        assert order.status == OrderStatus.CANCELLED
        assert _stock("Cola") == 10

    def test_advance_to_cancelled_routes_through_cancel(self, order_service, placed_order):
        order = order_service.advance(placed_order.id, "cancelled")

        assert order.status == OrderStatus.CANCELLED
        assert _stock("Chips") == 5

    def test_second_cancel_rejected_without_double_restore(self, order_service, placed_order):
        order_service.cancel(placed_order.id)

        with pytest.raises(InvalidTransition):
            order_service.cancel(placed_order.id)

        assert (_stock("Cola"), _stock("Chips")) == (10, 5)

    @pytest.mark.parametrize("status", [OrderStatus.SHIPPED, OrderStatus.DELIVERED])
    def test_cannot_cancel_after_shipping(self, order_service, placed_order, status):
        Order.objects.filter(pk=placed_order.pk).update(status=status)

        with pytest.raises(InvalidTransition):
            order_service.cancel(placed_order.id)

        assert _stock("Cola") == 6

    def test_history_and_outbox(self, order_service, placed_order, customer):
        order = order_service.cancel(placed_order.id, actor_id=customer.id, notes="Changed my mind")

        entry = order.status_history.get(new_status=OrderStatus.CANCELLED)
        assert entry.old_status == OrderStatus.PENDING
        assert entry.notes == "Changed my mind"
        cancelled = OutboxEvent.objects.get(
            aggregate_id=str(order.id), event_type="OrderCancelled"
        )
        assert cancelled.payload["previous_status"] == OrderStatus.PENDING

    def test_inactive_product_still_restocked(self, order_service, placed_order):
        Product.objects.filter(name="Cola").update(active=False)

        order_service.cancel(placed_order.id)

        assert _stock("Cola") == 10


class TestOwnership:
    def test_other_user_cannot_cancel(self, order_service, placed_order, other_customer):
        with pytest.raises(NotFound):
            order_service.cancel(placed_order.id, owner_id=other_customer.id)
        assert Order.objects.get(pk=placed_order.pk).status == OrderStatus.PENDING

    def test_other_user_cannot_read(self, order_service, placed_order, other_customer, customer):
        with pytest.raises(NotFound):
            order_service.get_order(placed_order.id, owner_id=other_customer.id)
        assert order_service.get_order(placed_order.id, owner_id=customer.id).pk == placed_order.pk

    def test_list_scoped_to_owner(self, order_service, placed_order, other_customer):
        assert order_service.list_orders(owner_id=other_customer.id) == []
        assert len(order_service.list_orders()) == 1


class TestDelete:
    def test_service_delete_always_rejected(self, order_service, placed_order):
        with pytest.raises(UnsupportedOperation):
            order_service.delete(placed_order.id)
        assert Order.objects.filter(pk=placed_order.pk).exists()

    def test_model_delete_rejected(self, placed_order):
        with pytest.raises(UnsupportedOperation):
            placed_order.delete()
