"""Cart DTOs for the Service Layer.

- ``AddCartItemDTO`` / ``UpdateCartItemDTO``: API input.
- ``CartSummary``: result of ``CartService.get_cart``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AddCartItemDTO(BaseModel):
    """``quantity`` bounds are a business rule checked by ``CartService``."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int = 1


class UpdateCartItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    quantity: int


class CartSummary(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    lines: List[Any]
    total: Decimal
    line_count: int
    total_quantity: int
