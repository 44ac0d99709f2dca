"""Catalog hierarchy: Category → Subcategory → Product.

Business rules implemented at the model level:
- Category name unique (2–100 chars).
- Subcategory name unique within its category.
- Product price >= 0 and stock >= 0 (CHECK constraints).
- Product image reference must be a jpg/jpeg/png/gif file name.
- ``product.subcategory.category == product.category`` (``clean``).

Each node carries an explicit ``active`` flag.  Cascading deactivation
lives in ``modules.catalog.cascade``; models never reach into each other
from save hooks.
"""

from __future__ import annotations

import re
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import (
    MinLengthValidator,
    MinValueValidator,
    RegexValidator,
)
from django.db import models

from modules.catalog.constants import (
    ALLOWED_IMAGE_EXTENSIONS,
    CATEGORY_NAME_MAX_LENGTH,
    CATEGORY_NAME_MIN_LENGTH,
    PRODUCT_NAME_MAX_LENGTH,
    PRODUCT_NAME_MIN_LENGTH,
)
from modules.core.models import BaseModel

IMAGE_REF_PATTERN = re.compile(
    r"\.(" + "|".join(ALLOWED_IMAGE_EXTENSIONS) + r")$", re.IGNORECASE
)

validate_image_extension = RegexValidator(
    regex=IMAGE_REF_PATTERN,
    message="Image must be a JPG, JPEG, PNG or GIF file.",
)


class Category(BaseModel):
    """Top-level catalog node."""

    name = models.CharField(
        max_length=CATEGORY_NAME_MAX_LENGTH,
        unique=True,
        validators=[MinLengthValidator(CATEGORY_NAME_MIN_LENGTH)],
    )
    description = models.TextField(blank=True, default="")
    active = models.BooleanField(default=True)

    class Meta:
        db_table = "categories"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["active"], name="categories_active_idx"),
        ]

    def save(self, *args, **kwargs) -> None:
        if self.name:
            self.name = self.name.strip()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.name


class Subcategory(BaseModel):
    """Second-level node, owned by a Category."""

    category = models.ForeignKey(
        "catalog.Category",
        on_delete=models.CASCADE,
        related_name="subcategories",
    )
    name = models.CharField(
        max_length=CATEGORY_NAME_MAX_LENGTH,
        validators=[MinLengthValidator(CATEGORY_NAME_MIN_LENGTH)],
    )
    description = models.TextField(blank=True, default="")
    active = models.BooleanField(default=True)

    class Meta:
        db_table = "subcategories"
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["category", "name"],
                name="subcategories_name_per_category_uniq",
            ),
        ]
        indexes = [
            models.Index(fields=["active"], name="subcategories_active_idx"),
        ]

    def save(self, *args, **kwargs) -> None:
        if self.name:
            self.name = self.name.strip()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.category_id}/{self.name}"


class Product(BaseModel):
    """Orderable leaf of the catalog.

    ``is_orderable`` evaluates the full active-chain; callers should load
    the product with ``select_related("subcategory", "category")`` to avoid
    extra queries.
    """

    name = models.CharField(
        max_length=PRODUCT_NAME_MAX_LENGTH,
        validators=[MinLengthValidator(PRODUCT_NAME_MIN_LENGTH)],
    )
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    stock = models.PositiveIntegerField(default=0)
    image_ref = models.CharField(
        max_length=255,
        blank=True,
        default="",
        validators=[validate_image_extension],
    )
    category = models.ForeignKey(
        "catalog.Category",
        on_delete=models.CASCADE,
        related_name="products",
    )
    subcategory = models.ForeignKey(
        "catalog.Subcategory",
        on_delete=models.CASCADE,
        related_name="products",
    )
    active = models.BooleanField(default=True)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["active"], name="products_active_idx"),
            models.Index(fields=["name"], name="products_name_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="products_price_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(stock__gte=0),
                name="products_stock_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # Active-chain
    # ------------------------------------------------------------------

    @property
    def is_orderable(self) -> bool:
        """``True`` only when product, subcategory and category are all active."""
        return bool(
            self.active and self.subcategory.active and self.category.active
        )

    def has_stock(self, quantity: int) -> bool:
        return self.stock >= quantity

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if (
            self.subcategory_id
            and self.category_id
            and self.subcategory.category_id != self.category_id
        ):
            raise ValidationError(
                {"subcategory": "Subcategory does not belong to the selected category."}
            )

    def __str__(self) -> str:
        return self.name
