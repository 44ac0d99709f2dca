"""OrderService tests with mocked repositories (no database access).

The ``transaction.atomic`` decorator is bypassed through ``__wrapped__`` so
only the orchestration logic is exercised.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from modules.core.exceptions import EmptyCart, InvalidTransition, StaleCartItem, StaleReason
from modules.orders.constants import OrderStatus
from modules.orders.dtos import PlaceOrderDTO
from modules.orders.events import OrderPlaced, OrderStatusChanged
from modules.orders.models import Order
from modules.orders.services import OrderService

pytestmark = pytest.mark.unit

USER_ID = 7


def _product(stock=10, price="2.50", orderable=True):
    product = MagicMock()
    product.id = uuid.uuid4()
    product.stock = stock
    product.price = Decimal(price)
    product.is_orderable = orderable
    return product


def _cart_line(product, quantity):
    line = MagicMock()
    line.product_id = product.id
    line.quantity = quantity
    return line


@pytest.fixture()
def repos():
    return {
        "order": MagicMock(),
        "cart": MagicMock(),
        "product": MagicMock(),
        "bus": MagicMock(),
    }


@pytest.fixture()
def service(repos):
    return OrderService(
        order_repository=repos["order"],
        cart_repository=repos["cart"],
        product_repository=repos["product"],
        event_bus=repos["bus"],
    )


@pytest.fixture()
def dto():
    return PlaceOrderDTO(shipping_address="42 Main Street", contact_phone="+1 555 0100")


def _place(service, dto):
    return OrderService.place_order.__wrapped__(service, USER_ID, dto)


class TestPlaceOrderOrchestration:
    def test_happy_path_calls(self, service, repos, dto):
        cola, chips = _product(), _product(price="1.25")
        repos["cart"].lock_for_user.return_value = [_cart_line(cola, 2), _cart_line(chips, 1)]
        repos["product"].lock_many.return_value = {cola.id: cola, chips.id: chips}
        repos["product"].decrement_stock.return_value = True
        order = Order(user_id=USER_ID, order_number="ORD-20260101-ABCDEF", total=Decimal("6.25"))
        repos["order"].create.return_value = order
        repos["order"].get_by_id.return_value = order

        result = _place(service, dto)

        assert result is order
        data = repos["order"].create.call_args.args[0]
        assert data["user_id"] == USER_ID
        assert data["lines"] == [
            {"product_id": cola.id, "quantity": 2, "unit_price": Decimal("2.50")},
            {"product_id": chips.id, "quantity": 1, "unit_price": Decimal("1.25")},
        ]
        repos["cart"].clear.assert_called_once_with(USER_ID)
        repos["order"].save.assert_called_once_with(order)
        repos["order"].add_history.assert_called_once()
        (events,) = repos["bus"].publish_on_commit.call_args.args
        assert isinstance(events[0], OrderPlaced)
        assert order.domain_events == []

    def test_empty_cart_touches_nothing(self, service, repos, dto):
        repos["cart"].lock_for_user.return_value = []

        with pytest.raises(EmptyCart):
            _place(service, dto)

        repos["product"].lock_many.assert_not_called()
        repos["order"].create.assert_not_called()

    def test_missing_product_is_stale(self, service, repos, dto):
        ghost = _product()
        repos["cart"].lock_for_user.return_value = [_cart_line(ghost, 1)]
        repos["product"].lock_many.return_value = {}

        with pytest.raises(StaleCartItem) as exc_info:
            _place(service, dto)

        assert exc_info.value.reason == StaleReason.NOT_FOUND
        repos["product"].decrement_stock.assert_not_called()

    def test_validation_happens_before_any_decrement(self, service, repos, dto):
        ok, inactive = _product(), _product(orderable=False)
        repos["cart"].lock_for_user.return_value = [_cart_line(ok, 1), _cart_line(inactive, 1)]
        repos["product"].lock_many.return_value = {ok.id: ok, inactive.id: inactive}

        with pytest.raises(StaleCartItem):
            _place(service, dto)

        repos["product"].decrement_stock.assert_not_called()
        repos["cart"].clear.assert_not_called()


class TestAdvanceOrchestration:
    def test_advance_publishes_status_changed(self, service, repos):
        order = Order(user_id=USER_ID, order_number="ORD-20260101-ABCDEF")
        repos["order"].get_for_update.return_value = order
        repos["order"].get_by_id.return_value = order

        OrderService.advance.__wrapped__(service, order.id, "paid")

        assert order.status == OrderStatus.PAID
        assert order.paid_at is not None
        (events,) = repos["bus"].publish_on_commit.call_args.args
        assert isinstance(events[0], OrderStatusChanged)
        assert events[0].old_status == OrderStatus.PENDING

    def test_invalid_transition_saves_nothing(self, service, repos):
        order = Order(user_id=USER_ID, status=OrderStatus.DELIVERED)
        repos["order"].get_for_update.return_value = order

        with pytest.raises(InvalidTransition):
            OrderService.advance.__wrapped__(service, order.id, OrderStatus.SHIPPED)

        repos["order"].save.assert_not_called()
        repos["bus"].publish_on_commit.assert_not_called()
