"""Unit tests for domain events and the in-memory bus."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.events import OrderCancelled, OrderPlaced
from modules.orders.models import Order
from shared.infrastructure.bus import InMemoryEventBus

pytestmark = pytest.mark.unit


def test_order_registers_and_pulls_domain_events():
    order = Order(
        order_number="ORD-TEST-000001",
        status=OrderStatus.PENDING,
        total=Decimal("0.00"),
    )

    assert order.domain_events == []

    event = OrderPlaced(aggregate_id=order.id, order_number=order.order_number)
    order.add_domain_event(event)

    assert order.domain_events == [event]
    assert event.event_name == "OrderPlaced"

    assert order.pull_domain_events() == [event]
    assert order.domain_events == []


def test_payload_is_json_safe():
    aggregate_id = uuid4()
    event = OrderPlaced(
        aggregate_id=aggregate_id,
        order_number="ORD-20260101-ABCDEF",
        total=Decimal("12.50"),
        line_count=2,
    )

    payload = event.to_payload()

    assert payload["aggregate_id"] == str(aggregate_id)
    assert payload["total"] == "12.50"
    assert payload["line_count"] == 2
    assert payload["event_name"] == "OrderPlaced"
    assert isinstance(payload["occurred_on"], str)


class TestInMemoryEventBus:
    def test_publish_dispatches_by_event_type(self):
        bus = InMemoryEventBus()
        placed_handler, cancelled_handler = MagicMock(), MagicMock()
        bus.subscribe(OrderPlaced, placed_handler)
        bus.subscribe(OrderCancelled, cancelled_handler)

        event = OrderPlaced(aggregate_id=uuid4())
        bus.publish(event)

        placed_handler.handle.assert_called_once_with(event)
        cancelled_handler.handle.assert_not_called()

    def test_subscribe_is_idempotent(self):
        bus = InMemoryEventBus()
        handler = MagicMock()
        bus.subscribe(OrderPlaced, handler)
        bus.subscribe(OrderPlaced, handler)

        bus.publish(OrderPlaced(aggregate_id=uuid4()))

        handler.handle.assert_called_once()

    def test_publish_on_commit_waits_for_commit(self, django_capture_on_commit_callbacks):
        bus = InMemoryEventBus()
        handler = MagicMock()
        bus.subscribe(OrderCancelled, handler)
        events = [OrderCancelled(aggregate_id=uuid4()), OrderCancelled(aggregate_id=uuid4())]

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            bus.publish_on_commit(events)
            handler.handle.assert_not_called()

        assert len(callbacks) == 2
        assert [call.args[0] for call in handler.handle.call_args_list] == events
