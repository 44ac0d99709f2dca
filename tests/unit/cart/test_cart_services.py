"""Unit tests for CartService.

Covers:
- Adding products and combining quantities on one line.
- Stock checked against the combined quantity.
- Inactive products (anywhere in the chain) are rejected.
- Price snapshots survive price changes.
- Update, remove and clear semantics.
- Stock is always read from a locked product row.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest

from modules.cart.models import CartLine
from modules.cart.services import CartService
from modules.catalog.models import Product
from modules.catalog.repositories import ProductDjangoRepository
from modules.core.exceptions import (
    FieldValidationError,
    Inactive,
    InsufficientStock,
    NotFound,
)

pytestmark = pytest.mark.unit


class LockRecordingProductRepository(ProductDjangoRepository):
    def __init__(self):
        self.locked = []

    def get_for_update(self, id):
        self.locked.append(id)
        return super().get_for_update(id)


class VanishingProductRepository(ProductDjangoRepository):
    """Product row deleted by another request just before the lock."""

    def get_for_update(self, id):
        Product.objects.filter(id=id).delete()
        return super().get_for_update(id)


def _service(repositories, product_repository):
    return CartService(
        cart_repository=repositories["cart"],
        product_repository=product_repository,
    )


class TestAddItem:
    def test_add_creates_line_with_price_snapshot(self, cart_service, customer, cola):
        line = cart_service.add_item(customer.id, cola.id, 2)

        assert line.quantity == 2
        assert line.unit_price_snapshot == Decimal("2.50")
        assert CartLine.objects.filter(user=customer).count() == 1

    def test_adding_same_product_combines_quantity(self, cart_service, customer, cola):
        cart_service.add_item(customer.id, cola.id, 2)
        line = cart_service.add_item(customer.id, cola.id, 3)

        assert line.quantity == 5
        assert CartLine.objects.filter(user=customer).count() == 1

    def test_combined_quantity_checked_against_stock(self, cart_service, customer, make_product):
        product = make_product(stock=5)
        cart_service.add_item(customer.id, product.id, 4)

        with pytest.raises(InsufficientStock) as exc_info:
            cart_service.add_item(customer.id, product.id, 2)

        assert exc_info.value.requested == 6
        assert exc_info.value.available == 5
        assert CartLine.objects.get(user=customer).quantity == 4

    def test_quantity_above_stock_rejected(self, cart_service, customer, make_product):
        product = make_product(stock=1)
        with pytest.raises(InsufficientStock):
            cart_service.add_item(customer.id, product.id, 2)

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity_rejected(self, cart_service, customer, cola, quantity):
        with pytest.raises(FieldValidationError) as exc_info:
            cart_service.add_item(customer.id, cola.id, quantity)
        assert "quantity" in exc_info.value.errors

    def test_missing_product(self, cart_service, customer):
        with pytest.raises(NotFound):
            cart_service.add_item(customer.id, uuid.uuid4(), 1)

    def test_inactive_product_rejected(self, cart_service, customer, cola):
        cola.active = False
        cola.save()
        with pytest.raises(Inactive):
            cart_service.add_item(customer.id, cola.id, 1)

    def test_inactive_category_rejected(self, cart_service, customer, cola, beverages):
        beverages.active = False
        beverages.save()
        with pytest.raises(Inactive):
            cart_service.add_item(customer.id, cola.id, 1)

    def test_existing_line_keeps_original_price(self, cart_service, customer, cola):
        cart_service.add_item(customer.id, cola.id, 1)
        cola.price = Decimal("9.99")
        cola.save()

        line = cart_service.add_item(customer.id, cola.id, 1)

        assert line.unit_price_snapshot == Decimal("2.50")

    def test_carts_are_per_user(self, cart_service, customer, other_customer, cola):
        cart_service.add_item(customer.id, cola.id, 1)
        cart_service.add_item(other_customer.id, cola.id, 3)

        assert cart_service.get_cart(customer.id).total_quantity == 1
        assert cart_service.get_cart(other_customer.id).total_quantity == 3


class TestUpdateQuantity:
    def test_update_replaces_quantity(self, cart_service, customer, cola):
        cart_service.add_item(customer.id, cola.id, 1)
        line = cart_service.update_quantity(customer.id, cola.id, 7)
        assert line.quantity == 7

    def test_update_above_stock(self, cart_service, customer, cola):
        cart_service.add_item(customer.id, cola.id, 1)
        with pytest.raises(InsufficientStock):
            cart_service.update_quantity(customer.id, cola.id, 11)

    def test_update_to_zero_rejected(self, cart_service, customer, cola):
        cart_service.add_item(customer.id, cola.id, 1)
        with pytest.raises(FieldValidationError):
            cart_service.update_quantity(customer.id, cola.id, 0)

    def test_update_missing_line(self, cart_service, customer, cola):
        with pytest.raises(NotFound):
            cart_service.update_quantity(customer.id, cola.id, 1)


class TestRemoveAndClear:
    def test_remove_item(self, cart_service, customer, cola):
        cart_service.add_item(customer.id, cola.id, 1)
        cart_service.remove_item(customer.id, cola.id)
        assert cart_service.get_cart(customer.id).line_count == 0

    def test_remove_absent_item_is_noop(self, cart_service, customer, cola):
        cart_service.remove_item(customer.id, cola.id)
        cart_service.remove_item(customer.id, uuid.uuid4())

    def test_clear_cart(self, cart_service, customer, cola, make_product):
        cart_service.add_item(customer.id, cola.id, 1)
        cart_service.add_item(customer.id, make_product(name="Lemon Soda").id, 1)

        cart_service.clear_cart(customer.id)
        cart_service.clear_cart(customer.id)

        assert not CartLine.objects.filter(user=customer).exists()


class TestGetCart:
    def test_totals_use_snapshots(self, cart_service, customer, cola, make_product):
        chips = make_product(name="Chips", price="1.25")
        cart_service.add_item(customer.id, cola.id, 2)
        cart_service.add_item(customer.id, chips.id, 4)
        cola.price = Decimal("100.00")
        cola.save()

        cart = cart_service.get_cart(customer.id)

        assert cart.line_count == 2
        assert cart.total_quantity == 6
        assert cart.total == Decimal("10.00")

    def test_empty_cart(self, cart_service, customer):
        cart = cart_service.get_cart(customer.id)
        assert cart.lines == []
        assert cart.total == Decimal("0.00")


# ---------------------------------------------------------------------------
# Locking
# ---------------------------------------------------------------------------


class TestLockedStockReads:
    def test_add_reads_product_under_lock(self, repositories, customer, cola):
        product_repo = LockRecordingProductRepository()
        _service(repositories, product_repo).add_item(customer.id, cola.id, 1)
        assert product_repo.locked == [cola.id]

    def test_update_reads_product_under_lock(self, repositories, customer, cola):
        product_repo = LockRecordingProductRepository()
        service = _service(repositories, product_repo)
        service.add_item(customer.id, cola.id, 1)
        product_repo.locked.clear()

        service.update_quantity(customer.id, cola.id, 3)

        assert product_repo.locked == [cola.id]

    def test_update_sees_committed_stock_change(self, cart_service, customer, cola):
        cart_service.add_item(customer.id, cola.id, 1)
        Product.objects.filter(id=cola.id).update(stock=2)

        with pytest.raises(InsufficientStock) as exc_info:
            cart_service.update_quantity(customer.id, cola.id, 3)

        assert exc_info.value.available == 2

    def test_product_deleted_before_lock(self, repositories, customer, cola):
        service = _service(repositories, VanishingProductRepository())

        with pytest.raises(NotFound):
            service.add_item(customer.id, cola.id, 1)

        assert not CartLine.objects.filter(user=customer).exists()
