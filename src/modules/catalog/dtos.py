"""Catalog DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2, immutable
(``frozen=True``).

- ``CreateCategoryDTO`` / ``UpdateCategoryDTO``
- ``CreateSubcategoryDTO`` / ``UpdateSubcategoryDTO``
- ``CreateProductDTO`` / ``UpdateProductDTO``
- ``AffectedCounts``: result of a cascade toggle.
- ``AdjustStockDTO`` / ``StockAdjustmentDTO``: manual stock changes.
- ``CategoryStatsDTO`` / ``SubcategoryStatsDTO``: counts, units and inventory value.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from modules.catalog.constants import (
    CATEGORY_NAME_MAX_LENGTH,
    CATEGORY_NAME_MIN_LENGTH,
    PRODUCT_NAME_MAX_LENGTH,
    PRODUCT_NAME_MIN_LENGTH,
    StockOperation,
)
from modules.catalog.models import IMAGE_REF_PATTERN


def _check_name(value: str, min_length: int, max_length: int) -> str:
    value = (value or "").strip()
    if not min_length <= len(value) <= max_length:
        raise ValueError(
            f"Name must be between {min_length} and {max_length} characters."
        )
    return value


def _check_price(value: Optional[Decimal]) -> Optional[Decimal]:
    if value is not None and value < 0:
        raise ValueError("Price cannot be negative.")
    return value


def _check_stock(value: Optional[int]) -> Optional[int]:
    if value is not None and value < 0:
        raise ValueError("Stock cannot be negative.")
    return value


def _check_image_ref(value: Optional[str]) -> Optional[str]:
    if value and not IMAGE_REF_PATTERN.search(value):
        raise ValueError("Image must be a JPG, JPEG, PNG or GIF file.")
    return value


# ---------------------------------------------------------------------------
# Category
# ---------------------------------------------------------------------------


class CreateCategoryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        return _check_name(v, CATEGORY_NAME_MIN_LENGTH, CATEGORY_NAME_MAX_LENGTH)


class UpdateCategoryDTO(BaseModel):
    """Partial update; ``active`` is changed through the cascade engine only."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_length(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _check_name(v, CATEGORY_NAME_MIN_LENGTH, CATEGORY_NAME_MAX_LENGTH)


# ---------------------------------------------------------------------------
# Subcategory
# ---------------------------------------------------------------------------


class CreateSubcategoryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    category_id: UUID
    name: str
    description: str = ""

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        return _check_name(v, CATEGORY_NAME_MIN_LENGTH, CATEGORY_NAME_MAX_LENGTH)


class UpdateSubcategoryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_length(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _check_name(v, CATEGORY_NAME_MIN_LENGTH, CATEGORY_NAME_MAX_LENGTH)


# ---------------------------------------------------------------------------
# Product
# ---------------------------------------------------------------------------


class CreateProductDTO(BaseModel):
    """Immutable DTO for product creation.

    ``category_id`` is optional: when omitted it is derived from the
    subcategory; when given it must match the subcategory's category.
    """

    model_config = ConfigDict(frozen=True)

    subcategory_id: UUID
    category_id: Optional[UUID] = None
    name: str
    price: Decimal
    description: str = ""
    stock: int = 0
    image_ref: str = ""

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        return _check_name(v, PRODUCT_NAME_MIN_LENGTH, PRODUCT_NAME_MAX_LENGTH)

    @field_validator("price")
    @classmethod
    def price_non_negative(cls, v: Decimal) -> Decimal:
        return _check_price(v)

    @field_validator("stock")
    @classmethod
    def stock_non_negative(cls, v: int) -> int:
        return _check_stock(v)

    @field_validator("image_ref")
    @classmethod
    def image_extension(cls, v: str) -> str:
        return _check_image_ref(v)


class UpdateProductDTO(BaseModel):
    """All fields optional; only supplied fields are updated."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    stock: Optional[int] = None
    subcategory_id: Optional[UUID] = None

    @field_validator("name")
    @classmethod
    def name_length(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _check_name(v, PRODUCT_NAME_MIN_LENGTH, PRODUCT_NAME_MAX_LENGTH)

    @field_validator("price")
    @classmethod
    def price_non_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return _check_price(v)

    @field_validator("stock")
    @classmethod
    def stock_non_negative(cls, v: Optional[int]) -> Optional[int]:
        return _check_stock(v)


class AdjustStockDTO(BaseModel):
    """Manual stock change: add, remove or overwrite ``quantity`` units."""

    model_config = ConfigDict(frozen=True)

    operation: StockOperation
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Quantity cannot be negative.")
        return v


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class AffectedCounts(BaseModel):
    """Rows whose ``active`` flag was flipped by a cascade."""

    model_config = ConfigDict(frozen=True)

    subcategories: int = 0
    products: int = 0


class CategoryStatsDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    category_id: UUID
    active_subcategories: int
    inactive_subcategories: int
    active_products: int
    inactive_products: int
    inventory_value: Decimal
    stock_total: int


class SubcategoryStatsDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    subcategory_id: UUID
    active_products: int
    inactive_products: int
    inventory_value: Decimal
    stock_total: int


class StockAdjustmentDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    operation: StockOperation
    previous_stock: int
    stock: int
