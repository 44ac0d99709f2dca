"""Cart API views.

Every endpoint acts on the authenticated user's own cart.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.cart.dtos import AddCartItemDTO, UpdateCartItemDTO
from modules.cart.repositories import CartDjangoRepository
from modules.cart.serializers import CartLineSerializer, CartSummarySerializer
from modules.cart.services import CartService
from modules.catalog.repositories import ProductDjangoRepository


class CartViewSet(ViewSet):
    """Routes are wired explicitly in ``modules.cart.urls``."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CartService(
            cart_repository=CartDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )

    def retrieve(self, request: Request) -> Response:
        """GET /api/v1/cart/"""
        summary = self._service.get_cart(request.user.id)
        return Response(CartSummarySerializer(summary).data)

    def clear(self, request: Request) -> Response:
        """DELETE /api/v1/cart/"""
        self._service.clear_cart(request.user.id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    def add_item(self, request: Request) -> Response:
        """POST /api/v1/cart/items/"""
        dto = AddCartItemDTO(
            product_id=request.data.get("product_id"),
            quantity=request.data.get("quantity", 1),
        )
        line = self._service.add_item(request.user.id, dto.product_id, dto.quantity)
        return Response(CartLineSerializer(line).data, status=status.HTTP_201_CREATED)

    def update_item(self, request: Request, product_id: str) -> Response:
        """PATCH /api/v1/cart/items/{product_id}/"""
        dto = UpdateCartItemDTO(quantity=request.data.get("quantity"))
        line = self._service.update_quantity(request.user.id, product_id, dto.quantity)
        return Response(CartLineSerializer(line).data)

    def remove_item(self, request: Request, product_id: str) -> Response:
        """DELETE /api/v1/cart/items/{product_id}/"""
        self._service.remove_item(request.user.id, product_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
