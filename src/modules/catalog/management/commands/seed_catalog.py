from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.cart.repositories import CartDjangoRepository
from modules.cart.services import CartService
from modules.catalog.models import Category, Product, Subcategory
from modules.catalog.repositories import ProductDjangoRepository
from modules.orders.dtos import PlaceOrderDTO
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.services import OrderService

CATALOG = {
    "Beverages": {
        "Soda": [
            ("Cola", Decimal("2.50")),
            ("Lemon Soda", Decimal("2.30")),
            ("Ginger Ale", Decimal("2.80")),
        ],
        "Juice": [
            ("Orange Juice", Decimal("3.90")),
            ("Apple Juice", Decimal("3.60")),
        ],
    },
    "Electronics": {
        "Peripherals": [
            ("Mechanical Keyboard", Decimal("89.90")),
            ("Wireless Mouse", Decimal("29.90")),
            ("27in Monitor", Decimal("249.00")),
        ],
        "Audio": [
            ("Headset", Decimal("59.90")),
            ("Bluetooth Speaker", Decimal("45.00")),
        ],
    },
    "Office": {
        "Paper": [
            ("A4 Paper Ream", Decimal("6.50")),
            ("Notebook", Decimal("3.20")),
        ],
        "Writing": [
            ("Blue Pen", Decimal("0.90")),
            ("Highlighter", Decimal("1.40")),
        ],
    },
}


class Command(BaseCommand):
    help = "Seed database with a development catalog, users and orders."

    def add_arguments(self, parser):
        parser.add_argument(
            "--orders",
            type=int,
            default=10,
            help="Number of orders to place through the checkout flow.",
        )

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users = self._seed_users()
        products = self._seed_catalog()
        orders_created = self._seed_orders(users, products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={len(users)}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> list:
        User = get_user_model()
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
        customers = []
        for username in ("alice", "bob"):
            user = User.objects.filter(username=username).first()
            if user is None:
                user = User.objects.create_user(username, password=f"{username}123")
            customers.append(user)
        return customers

    def _seed_catalog(self) -> list[Product]:
        self.stdout.write("Creating catalog...")
        products: list[Product] = []
        for category_name, subcategories in CATALOG.items():
            category, _ = Category.objects.get_or_create(name=category_name)
            for subcategory_name, items in subcategories.items():
                subcategory, _ = Subcategory.objects.get_or_create(
                    category=category, name=subcategory_name
                )
                for name, price in items:
                    product, _ = Product.objects.get_or_create(
                        subcategory=subcategory,
                        name=name,
                        defaults={
                            "category": category,
                            "price": price,
                            "stock": random.randint(20, 200),
                        },
                    )
                    products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating catalog... Done!"))
        return products

    def _seed_orders(self, users: list, products: list[Product], count: int) -> int:
        self.stdout.write("Placing orders...")
        if not users or not products:
            self.stdout.write(self.style.WARNING("Skipping orders (no users/products)."))
            return 0

        cart_repo = CartDjangoRepository()
        product_repo = ProductDjangoRepository()
        carts = CartService(cart_repository=cart_repo, product_repository=product_repo)
        orders = OrderService(
            order_repository=OrderDjangoRepository(),
            cart_repository=cart_repo,
            product_repository=product_repo,
        )

        for _ in range(count):
            user = random.choice(users)
            for product in random.sample(products, k=random.randint(1, 4)):
                carts.add_item(user.id, product.id, random.randint(1, 3))
            orders.place_order(
                user.id,
                PlaceOrderDTO(
                    shipping_address=f"{random.randint(1, 999)} Main Street",
                    contact_phone="+1 555 0100",
                ),
            )

        self.stdout.write(self.style.SUCCESS("Placing orders... Done!"))
        return count
