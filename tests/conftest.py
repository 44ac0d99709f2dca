from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.catalog.models import Category, Product, Subcategory

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer():
    return User.objects.create_user(username="customer", password="testpass123")


@pytest.fixture()
def other_customer():
    return User.objects.create_user(username="other", password="testpass123")


@pytest.fixture()
def admin_user():
    return User.objects.create_user(
        username="staff", password="testpass123", is_staff=True
    )


@pytest.fixture()
def customer_client(customer):
    client = APIClient()
    client.force_authenticate(user=customer)
    return client


@pytest.fixture()
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


# ---------------------------------------------------------------------------
# Catalog: Beverages > Soda > Cola
# ---------------------------------------------------------------------------


@pytest.fixture()
def beverages():
    return Category.objects.create(name="Beverages")


@pytest.fixture()
def soda(beverages):
    return Subcategory.objects.create(category=beverages, name="Soda")


@pytest.fixture()
def juice(beverages):
    return Subcategory.objects.create(category=beverages, name="Juice")


@pytest.fixture()
def make_product(soda):
    def _make(name="Cola", price="2.50", stock=10, subcategory=None, **extra):
        subcategory = subcategory or soda
        return Product.objects.create(
            name=name,
            price=Decimal(price),
            stock=stock,
            subcategory=subcategory,
            category_id=subcategory.category_id,
            **extra,
        )

    return _make


@pytest.fixture()
def cola(make_product):
    return make_product()


# ---------------------------------------------------------------------------
# Services wired to the Django repositories
# ---------------------------------------------------------------------------


@pytest.fixture()
def repositories():
    from modules.cart.repositories import CartDjangoRepository
    from modules.catalog.repositories import (
        CategoryDjangoRepository,
        ProductDjangoRepository,
        SubcategoryDjangoRepository,
    )
    from modules.orders.repositories import OrderDjangoRepository

    return {
        "category": CategoryDjangoRepository(),
        "subcategory": SubcategoryDjangoRepository(),
        "product": ProductDjangoRepository(),
        "cart": CartDjangoRepository(),
        "order": OrderDjangoRepository(),
    }


@pytest.fixture()
def cascade_service(repositories):
    from modules.catalog.cascade import CascadeService

    return CascadeService(
        category_repository=repositories["category"],
        subcategory_repository=repositories["subcategory"],
        product_repository=repositories["product"],
    )


@pytest.fixture()
def cart_service(repositories):
    from modules.cart.services import CartService

    return CartService(
        cart_repository=repositories["cart"],
        product_repository=repositories["product"],
    )


@pytest.fixture()
def order_service(repositories):
    from modules.orders.services import OrderService

    return OrderService(
        order_repository=repositories["order"],
        cart_repository=repositories["cart"],
        product_repository=repositories["product"],
    )


@pytest.fixture()
def checkout():
    from modules.orders.dtos import PlaceOrderDTO

    return PlaceOrderDTO(
        shipping_address="42 Main Street, Springfield",
        contact_phone="+1 555 0100",
    )
