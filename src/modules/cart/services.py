"""Cart service layer (Use Cases).

Business rules enforced:
- Quantities are at least 1.
- Only orderable products (whole active-chain) can be added.
- The cart never holds more of a product than its current stock.
- A line keeps the price it was first added at.

Stock is only checked here; it is reserved by the Order Engine at checkout.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any

import structlog
from django.db import transaction

from modules.cart.dtos import CartSummary
from modules.cart.models import CartLine
from modules.core.exceptions import (
    FieldValidationError,
    Inactive,
    InsufficientStock,
    NotFound,
)

if TYPE_CHECKING:
    from modules.cart.repositories.interfaces import ICartRepository
    from modules.catalog.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


def _check_quantity(quantity: int) -> None:
    if quantity is None or quantity < 1:
        raise FieldValidationError(errors={"quantity": "Quantity must be at least 1."})


class CartService:
    """Application service for cart use-cases."""

    def __init__(
        self,
        cart_repository: ICartRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._cart_repo = cart_repository
        self._product_repo = product_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_item(self, user_id: Any, product_id: Any, quantity: int) -> CartLine:
        """Add *quantity* of a product to the user's cart.

        An existing line has its quantity combined with the new one; the
        combined quantity is what must fit in stock.

        Raises:
            FieldValidationError: quantity < 1.
            NotFound: the product does not exist.
            Inactive: the product, its subcategory or its category is inactive.
            InsufficientStock: the combined quantity exceeds stock.
        """
        _check_quantity(quantity)
        log = logger.bind(user_id=str(user_id), product_id=str(product_id))

        # Cart line before product, the same lock order as checkout.  The
        # product is read under lock so the stock check sees committed checkouts.
        line = self._cart_repo.get_line_for_update(user_id, product_id)
        product = self._product_repo.get_for_update(product_id)
        if not product:
            raise NotFound(f"Product {product_id} not found.")

        if not product.is_orderable:
            log.warning("cart.product_inactive")
            raise Inactive(f"Product {product_id} is not available.")

        requested = quantity + (line.quantity if line else 0)
        if requested > product.stock:
            log.warning("cart.insufficient_stock", requested=requested, available=product.stock)
            raise InsufficientStock(
                f"Requested {requested}, available {product.stock}.",
                product_id=product.id,
                requested=requested,
                available=product.stock,
            )

        if line:
            line.quantity = requested
        else:
            line = CartLine(
                user_id=user_id,
                product=product,
                quantity=quantity,
                unit_price_snapshot=product.price,
            )
        line = self._cart_repo.save(line)
        log.info("cart.item_added", quantity=line.quantity)
        return line

    @transaction.atomic
    def update_quantity(self, user_id: Any, product_id: Any, new_quantity: int) -> CartLine:
        """Replace a line's quantity; the price snapshot is kept.

        Raises:
            FieldValidationError: quantity < 1.
            NotFound: the user has no line for the product.
            InsufficientStock: quantity exceeds current stock.
        """
        _check_quantity(new_quantity)
        line = self._cart_repo.get_line_for_update(user_id, product_id)
        if not line:
            raise NotFound(f"Product {product_id} is not in the cart.")

        product = self._product_repo.get_for_update(line.product_id)
        if not product:
            raise NotFound(f"Product {product_id} not found.")
        if new_quantity > product.stock:
            raise InsufficientStock(
                f"Requested {new_quantity}, available {product.stock}.",
                product_id=product.id,
                requested=new_quantity,
                available=product.stock,
            )

        line.quantity = new_quantity
        line = self._cart_repo.save(line)
        logger.info(
            "cart.quantity_updated",
            user_id=str(user_id),
            product_id=str(product_id),
            quantity=new_quantity,
        )
        return line

    def remove_item(self, user_id: Any, product_id: Any) -> None:
        removed = self._cart_repo.remove(user_id, product_id)
        logger.info(
            "cart.item_removed",
            user_id=str(user_id),
            product_id=str(product_id),
            removed=removed,
        )

    def clear_cart(self, user_id: Any) -> None:
        self._cart_repo.clear(user_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_cart(self, user_id: Any) -> CartSummary:
        """Current lines and totals, priced at their snapshots."""
        lines = self._cart_repo.list_for_user(user_id)
        return CartSummary(
            lines=lines,
            total=sum((line.subtotal for line in lines), Decimal("0.00")),
            line_count=len(lines),
            total_quantity=sum(line.quantity for line in lines),
        )
