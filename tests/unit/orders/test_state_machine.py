"""Unit tests for the order lifecycle (``OrderService.advance``).

Covers:
- Forward transitions Pending -> Paid -> Shipped -> Delivered.
- Skips, reversals and moves out of terminal states are rejected.
- Timestamps are stamped once; same-status requests are no-ops.
- Every change writes history and an outbox row.
"""

from __future__ import annotations

import uuid

import pytest

from modules.core.exceptions import FieldValidationError, InvalidTransition, NotFound
from modules.core.models import OutboxEvent
from modules.orders.constants import VALID_TRANSITIONS, OrderStatus
from modules.orders.models import Order, OrderStatusHistory

pytestmark = pytest.mark.unit


@pytest.fixture()
def placed_order(cart_service, order_service, customer, cola, checkout):
    cart_service.add_item(customer.id, cola.id, 1)
    return order_service.place_order(customer.id, checkout)


def _force_status(order, status):
    Order.objects.filter(pk=order.pk).update(status=status)


class TestForwardTransitions:
    def test_full_lifecycle(self, order_service, placed_order, admin_user):
        for status in (OrderStatus.PAID, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
            order = order_service.advance(placed_order.id, status, actor_id=admin_user.id)
            assert order.status == status

        assert order.paid_at is not None
        assert order.shipped_at is not None
        assert order.delivered_at is not None
        assert order.paid_at <= order.shipped_at <= order.delivered_at
        assert order.is_terminal

    def test_status_is_case_insensitive(self, order_service, placed_order):
        order = order_service.advance(placed_order.id, "paid")
        assert order.status == OrderStatus.PAID

    def test_history_records_actor_and_notes(self, order_service, placed_order, admin_user):
        order_service.advance(
            placed_order.id, OrderStatus.PAID, actor_id=admin_user.id, notes="Card captured"
        )

        entry = OrderStatusHistory.objects.get(
            order=placed_order, new_status=OrderStatus.PAID
        )
        assert entry.old_status == OrderStatus.PENDING
        assert entry.new_status == OrderStatus.PAID
        assert entry.user_id == admin_user.id
        assert entry.notes == "Card captured"

    def test_outbox_row_per_change(self, order_service, placed_order):
        order_service.advance(placed_order.id, OrderStatus.PAID)

        events = list(
            OutboxEvent.objects.filter(aggregate_id=str(placed_order.id)).values_list(
                "event_type", flat=True
            )
        )
        assert sorted(events) == ["OrderPlaced", "OrderStatusChanged"]

    def test_same_status_is_noop(self, order_service, placed_order):
        order_service.advance(placed_order.id, OrderStatus.PAID)
        paid_at = Order.objects.get(pk=placed_order.pk).paid_at
        history_count = OrderStatusHistory.objects.filter(order=placed_order).count()

        order = order_service.advance(placed_order.id, OrderStatus.PAID)

        assert order.paid_at == paid_at
        assert OrderStatusHistory.objects.filter(order=placed_order).count() == history_count


class TestRejectedTransitions:
    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (OrderStatus.PENDING, OrderStatus.SHIPPED),
            (OrderStatus.PENDING, OrderStatus.DELIVERED),
            (OrderStatus.PAID, OrderStatus.PENDING),
            (OrderStatus.PAID, OrderStatus.DELIVERED),
            (OrderStatus.SHIPPED, OrderStatus.PAID),
            (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
            (OrderStatus.DELIVERED, OrderStatus.SHIPPED),
            (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
            (OrderStatus.CANCELLED, OrderStatus.PENDING),
            (OrderStatus.CANCELLED, OrderStatus.PAID),
        ],
    )
    def test_invalid_transition(self, order_service, placed_order, current, target):
        _force_status(placed_order, current)

        with pytest.raises(InvalidTransition) as exc_info:
            order_service.advance(placed_order.id, target)

        assert exc_info.value.current == current
        assert exc_info.value.target == target
        assert Order.objects.get(pk=placed_order.pk).status == current

    def test_unknown_status_value(self, order_service, placed_order):
        with pytest.raises(FieldValidationError) as exc_info:
            order_service.advance(placed_order.id, "REFUNDED")
        assert "status" in exc_info.value.errors

    def test_missing_order(self, order_service):
        with pytest.raises(NotFound):
            order_service.advance(uuid.uuid4(), OrderStatus.PAID)


class TestTransitionTable:
    def test_terminal_states_have_no_exits(self):
        assert VALID_TRANSITIONS[OrderStatus.DELIVERED] == set()
        assert VALID_TRANSITIONS[OrderStatus.CANCELLED] == set()

    def test_cancellation_only_from_pending_or_paid(self):
        sources = {
            status
            for status, targets in VALID_TRANSITIONS.items()
            if OrderStatus.CANCELLED in targets
        }
        assert sources == {OrderStatus.PENDING, OrderStatus.PAID}
