"""Integration tests for OutboxEvent creation from OrderService."""

from __future__ import annotations

import pytest

from modules.core.exceptions import EmptyCart
from modules.core.models import EventStatus, OutboxEvent
from modules.orders.constants import OrderStatus

pytestmark = pytest.mark.integration


@pytest.fixture()
def order(cart_service, order_service, customer, cola, checkout):
    cart_service.add_item(customer.id, cola.id, 1)
    return order_service.place_order(customer.id, checkout)


def test_place_order_writes_outbox_event(order):
    events = OutboxEvent.objects.filter(
        event_type="OrderPlaced", aggregate_id=str(order.id)
    )
    assert events.count() == 1
    event = events.first()
    assert event.topic == "orders"
    assert event.status == EventStatus.PENDING
    assert event.payload["line_count"] == 1


def test_cancel_order_writes_outbox_event(order_service, order):
    order_service.cancel(order.id)

    events = OutboxEvent.objects.filter(
        event_type="OrderCancelled", aggregate_id=str(order.id)
    )
    assert events.count() == 1
    assert events.first().payload["previous_status"] == OrderStatus.PENDING


def test_status_change_writes_outbox_event(order_service, order):
    order_service.advance(order.id, OrderStatus.PAID)

    event = OutboxEvent.objects.get(
        event_type="OrderStatusChanged", aggregate_id=str(order.id)
    )
    assert event.payload["old_status"] == OrderStatus.PENDING
    assert event.payload["new_status"] == OrderStatus.PAID


def test_noop_advance_writes_nothing(order_service, order):
    order_service.advance(order.id, OrderStatus.PENDING)
    assert OutboxEvent.objects.filter(aggregate_id=str(order.id)).count() == 1


def test_failed_checkout_writes_nothing(order_service, customer, checkout):
    with pytest.raises(EmptyCart):
        order_service.place_order(customer.id, checkout)
    assert not OutboxEvent.objects.exists()


def test_event_published_once_per_change(
    order_service, order, django_capture_on_commit_callbacks
):
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        order_service.advance(order.id, OrderStatus.PAID)

    assert len(callbacks) == 1
