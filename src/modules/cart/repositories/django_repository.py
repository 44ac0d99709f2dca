"""Django ORM implementation of the Cart repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.cart.models import CartLine
from modules.cart.repositories.interfaces import ICartRepository

logger = structlog.get_logger(__name__)


class CartDjangoRepository(ICartRepository):
    """Concrete Cart repository backed by Django ORM."""

    def get_by_id(self, id: Any) -> Optional[CartLine]:
        try:
            return CartLine.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_line(self, user_id: Any, product_id: Any) -> Optional[CartLine]:
        try:
            return (
                CartLine.objects.select_related("product")
                .filter(user_id=user_id, product_id=product_id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_line_for_update(self, user_id: Any, product_id: Any) -> Optional[CartLine]:
        try:
            return (
                CartLine.objects.select_for_update()
                .filter(user_id=user_id, product_id=product_id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[CartLine]:
        queryset = CartLine.objects.select_related("product")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def list_for_user(self, user_id: Any) -> List[CartLine]:
        return list(
            CartLine.objects.select_related("product")
            .filter(user_id=user_id)
            .order_by("created_at", "id")
        )

    def lock_for_user(self, user_id: Any) -> List[CartLine]:
        return list(
            CartLine.objects.select_for_update()
            .filter(user_id=user_id)
            .order_by("product_id")
        )

    @transaction.atomic
    def save(
        self, entity: CartLine, update_fields: Optional[List[str]] = None
    ) -> CartLine:
        entity.save(update_fields=update_fields)
        return entity

    @transaction.atomic
    def delete(self, id: Any) -> bool:
        deleted, _ = CartLine.objects.filter(id=id).delete()
        return deleted > 0

    def remove(self, user_id: Any, product_id: Any) -> int:
        try:
            deleted, _ = CartLine.objects.filter(
                user_id=user_id, product_id=product_id
            ).delete()
        except (ValueError, ValidationError):
            return 0
        return deleted

    def clear(self, user_id: Any) -> int:
        deleted, _ = CartLine.objects.filter(user_id=user_id).delete()
        logger.info("cart.cleared", user_id=str(user_id), lines=deleted)
        return deleted
