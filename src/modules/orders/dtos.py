"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer and the Service layer.
DTOs are immutable (``frozen=True``).

- ``PlaceOrderDTO``: checkout input (the cart supplies the lines).
- ``AdvanceOrderDTO``: status change input.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, field_validator

PHONE_PATTERN = re.compile(r"^\+?[0-9 ()\-]{7,20}$")


class PlaceOrderDTO(BaseModel):
    """Immutable DTO for checkout requests.

    Validates:
    - ``shipping_address`` is not blank.
    - ``contact_phone`` looks like a phone number.
    """

    model_config = ConfigDict(frozen=True)

    shipping_address: str
    contact_phone: str
    notes: str = ""

    @field_validator("shipping_address")
    @classmethod
    def address_not_blank(cls, v: str) -> str:
        v = (v or "").strip()
        if len(v) < 5:
            raise ValueError("Shipping address must have at least 5 characters.")
        return v

    @field_validator("contact_phone")
    @classmethod
    def phone_format(cls, v: str) -> str:
        v = (v or "").strip()
        if not PHONE_PATTERN.match(v):
            raise ValueError("Contact phone must have 7 to 20 digits.")
        return v


class AdvanceOrderDTO(BaseModel):
    """Status value is checked against ``OrderStatus`` by the service."""

    model_config = ConfigDict(frozen=True)

    status: str
    notes: str = ""
