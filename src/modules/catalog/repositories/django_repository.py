"""Django ORM implementations of the catalog repositories.

Bulk flag changes use ``QuerySet.update`` filtered on the current value so
the returned row count is the number of rows actually flipped.  Stock
arithmetic uses ``F()`` expressions so concurrent transactions never lose
updates; the decrement is conditional on ``stock >= quantity``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from modules.catalog.models import Category, Product, Subcategory
from modules.catalog.repositories.interfaces import (
    ICategoryRepository,
    IProductRepository,
    ISubcategoryRepository,
)

logger = structlog.get_logger(__name__)

MONEY = DecimalField(max_digits=20, decimal_places=2)


def _product_totals(queryset) -> Dict[str, Any]:
    """Active/inactive counts, units in stock and Σ(price × stock)."""
    totals = queryset.aggregate(
        active_count=Count("id", filter=Q(active=True)),
        inactive_count=Count("id", filter=Q(active=False)),
        stock_sum=Coalesce(Sum("stock"), 0),
        value_sum=Coalesce(
            Sum(ExpressionWrapper(F("price") * F("stock"), output_field=MONEY)),
            Decimal("0.00"),
            output_field=MONEY,
        ),
    )
    return {
        "active_products": totals["active_count"],
        "inactive_products": totals["inactive_count"],
        "stock_total": totals["stock_sum"],
        "inventory_value": totals["value_sum"],
    }


class CategoryDjangoRepository(ICategoryRepository):
    """Concrete Category repository backed by Django ORM."""

    def get_by_id(self, id: Any) -> Optional[Category]:
        try:
            return Category.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: Any) -> Optional[Category]:
        try:
            return Category.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_name(self, name: str) -> Optional[Category]:
        return Category.objects.filter(name=name.strip()).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Category]:
        queryset = Category.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(
        self, entity: Category, update_fields: Optional[List[str]] = None
    ) -> Category:
        entity.save(update_fields=update_fields)
        logger.info("category.saved", category_id=str(entity.id))
        return entity

    @transaction.atomic
    def delete(self, id: Any) -> bool:
        deleted, _ = Category.objects.filter(id=id).delete()
        return deleted > 0

    def set_active(self, id: Any, active: bool) -> int:
        return Category.objects.filter(id=id).exclude(active=active).update(
            active=active, updated_at=timezone.now()
        )

    def stats(self, id: Any) -> Dict[str, Any]:
        # Aliases must not shadow the ``active`` field used in the filters.
        subcategories = Subcategory.objects.filter(category_id=id).aggregate(
            active_count=Count("id", filter=Q(active=True)),
            inactive_count=Count("id", filter=Q(active=False)),
        )
        return {
            "active_subcategories": subcategories["active_count"],
            "inactive_subcategories": subcategories["inactive_count"],
            **_product_totals(Product.objects.filter(category_id=id)),
        }


class SubcategoryDjangoRepository(ISubcategoryRepository):
    """Concrete Subcategory repository backed by Django ORM."""

    def get_by_id(self, id: Any) -> Optional[Subcategory]:
        try:
            return (
                Subcategory.objects.select_related("category").filter(id=id).first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: Any) -> Optional[Subcategory]:
        try:
            return Subcategory.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_name(self, category_id: Any, name: str) -> Optional[Subcategory]:
        return Subcategory.objects.filter(
            category_id=category_id, name=name.strip()
        ).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Subcategory]:
        queryset = Subcategory.objects.select_related("category")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(
        self, entity: Subcategory, update_fields: Optional[List[str]] = None
    ) -> Subcategory:
        entity.save(update_fields=update_fields)
        logger.info("subcategory.saved", subcategory_id=str(entity.id))
        return entity

    @transaction.atomic
    def delete(self, id: Any) -> bool:
        deleted, _ = Subcategory.objects.filter(id=id).delete()
        return deleted > 0

    def set_active(self, id: Any, active: bool) -> int:
        return Subcategory.objects.filter(id=id).exclude(active=active).update(
            active=active, updated_at=timezone.now()
        )

    def deactivate_by_category(self, category_id: Any) -> int:
        return Subcategory.objects.filter(category_id=category_id, active=True).update(
            active=False, updated_at=timezone.now()
        )

    def count_by_category(self, category_id: Any) -> int:
        return Subcategory.objects.filter(category_id=category_id).count()

    def stats(self, id: Any) -> Dict[str, Any]:
        return _product_totals(Product.objects.filter(subcategory_id=id))


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: Any) -> Optional[Product]:
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_with_chain(self, id: Any) -> Optional[Product]:
        try:
            return (
                Product.objects.select_related("subcategory", "category")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: Any) -> Optional[Product]:
        """Lock one product row; subcategory and category are read, not locked."""
        try:
            return (
                Product.objects.select_related("subcategory", "category")
                .select_for_update(of=("self",))
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def lock_many(self, ids: Iterable[Any]) -> Dict[Any, Product]:
        """Lock rows sorted by primary key so concurrent checkouts never deadlock.

        ``of=("self",)`` keeps the lock on product rows only; the joined
        subcategory/category rows are read, not locked.
        """
        queryset = (
            Product.objects.select_related("subcategory", "category")
            .filter(id__in=list(ids))
            .order_by("id")
        )
        queryset = queryset.select_for_update(of=("self",))
        return {product.id: product for product in queryset}

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        queryset = Product.objects.select_related("subcategory", "category")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(
        self, entity: Product, update_fields: Optional[List[str]] = None
    ) -> Product:
        entity.save(update_fields=update_fields)
        logger.info("product.saved", product_id=str(entity.id))
        return entity

    @transaction.atomic
    def delete(self, id: Any) -> bool:
        deleted, _ = Product.objects.filter(id=id).delete()
        return deleted > 0

    def set_active(self, id: Any, active: bool) -> int:
        return Product.objects.filter(id=id).exclude(active=active).update(
            active=active, updated_at=timezone.now()
        )

    def deactivate_by_category(self, category_id: Any) -> int:
        return Product.objects.filter(
            subcategory__category_id=category_id, active=True
        ).update(active=False, updated_at=timezone.now())

    def deactivate_by_subcategory(self, subcategory_id: Any) -> int:
        return Product.objects.filter(
            subcategory_id=subcategory_id, active=True
        ).update(active=False, updated_at=timezone.now())

    def count_by_category(self, category_id: Any) -> int:
        return Product.objects.filter(category_id=category_id).count()

    def count_by_subcategory(self, subcategory_id: Any) -> int:
        return Product.objects.filter(subcategory_id=subcategory_id).count()

    def decrement_stock(self, id: Any, quantity: int) -> bool:
        updated = Product.objects.filter(id=id, stock__gte=quantity).update(
            stock=F("stock") - quantity, updated_at=timezone.now()
        )
        return updated == 1

    def increment_stock(self, id: Any, quantity: int) -> bool:
        updated = Product.objects.filter(id=id).update(
            stock=F("stock") + quantity, updated_at=timezone.now()
        )
        return updated == 1
