"""Catalog API views.

Exposes ``CatalogService``, ``CascadeService`` and ``ReferentialGuard`` via
HTTP using DRF ViewSets.  Domain errors propagate to
``modules.core.exception_handler``, which maps them to HTTP status codes.

Any authenticated user can read the catalog; mutations require staff.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.catalog.cascade import CascadeService
from modules.catalog.constants import NodeKind
from modules.catalog.dtos import (
    AdjustStockDTO,
    CreateCategoryDTO,
    CreateProductDTO,
    CreateSubcategoryDTO,
    UpdateCategoryDTO,
    UpdateProductDTO,
    UpdateSubcategoryDTO,
)
from modules.catalog.filters import CategoryFilter, ProductFilter, SubcategoryFilter
from modules.catalog.guard import ReferentialGuard
from modules.catalog.models import Category, Product, Subcategory
from modules.catalog.repositories import (
    CategoryDjangoRepository,
    ProductDjangoRepository,
    SubcategoryDjangoRepository,
)
from modules.catalog.serializers import (
    CategorySerializer,
    CategoryStatsSerializer,
    ImageUploadSerializer,
    ProductSerializer,
    SetActiveSerializer,
    StockAdjustmentSerializer,
    SubcategorySerializer,
    SubcategoryStatsSerializer,
)
from modules.catalog.services import CatalogService
from modules.catalog.storage import DjangoFileStorage
from modules.orders.repositories import OrderDjangoRepository

READ_ACTIONS = {"list", "retrieve", "metadata"}


class CatalogNodeViewSet(ListModelMixin, GenericViewSet):
    """Shared plumbing for the three catalog node kinds.

    Subclasses set ``node_kind`` and implement ``retrieve``/``create``/
    ``update``.  Activation, deletability checks and deletes are common.
    """

    node_kind: str = ""
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    search_fields = ["name", "description"]
    ordering_fields = ["name", "created_at"]
    ordering = ["name", "id"]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        category_repo = CategoryDjangoRepository()
        subcategory_repo = SubcategoryDjangoRepository()
        product_repo = ProductDjangoRepository()
        self._service = CatalogService(
            category_repository=category_repo,
            subcategory_repository=subcategory_repo,
            product_repository=product_repo,
            file_storage=DjangoFileStorage(),
        )
        self._cascade = CascadeService(
            category_repository=category_repo,
            subcategory_repository=subcategory_repo,
            product_repository=product_repo,
        )
        self._guard = ReferentialGuard(
            category_repository=category_repo,
            subcategory_repository=subcategory_repo,
            product_repository=product_repo,
            order_repository=OrderDjangoRepository(),
        )

    def get_permissions(self):
        if self.action in READ_ACTIONS:
            return [IsAuthenticated()]
        return [IsAdminUser()]

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/{nodes}/{pk}/"""
        return self.update(request, pk)

    @action(detail=True, methods=["patch"], url_path="active")
    def set_active(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/{nodes}/{pk}/active/

        Deactivation cascades to descendants; reactivation does not.
        """
        serializer = SetActiveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        active = serializer.validated_data["active"]

        counts = self._cascade.set_active(self.node_kind, pk, active)
        return Response(
            {
                "id": pk,
                "active": active,
                "affected": {
                    "subcategories": counts.subcategories,
                    "products": counts.products,
                },
            }
        )

    @action(detail=True, methods=["get"], url_path="deletable")
    def deletable(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/{nodes}/{pk}/deletable/"""
        return Response(
            {"id": pk, "deletable": self._guard.can_delete(self.node_kind, pk)}
        )

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/{nodes}/{pk}/"""
        self._guard.delete(self.node_kind, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CategoryViewSet(CatalogNodeViewSet):
    node_kind = NodeKind.CATEGORY
    filterset_class = CategoryFilter
    serializer_class = CategorySerializer

    def get_queryset(self):
        return Category.objects.all()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/categories/{pk}/"""
        return Response(CategorySerializer(self._service.get_category(pk)).data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/categories/"""
        data = request.data
        dto = CreateCategoryDTO(
            name=data.get("name", ""),
            description=data.get("description", ""),
        )
        category = self._service.create_category(dto)
        return Response(CategorySerializer(category).data, status=status.HTTP_201_CREATED)

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/categories/{pk}/"""
        data = request.data
        dto = UpdateCategoryDTO(
            name=data.get("name"),
            description=data.get("description"),
        )
        return Response(CategorySerializer(self._service.update_category(pk, dto)).data)

    @action(detail=True, methods=["get"], url_path="stats")
    def stats(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/categories/{pk}/stats/"""
        return Response(CategoryStatsSerializer(self._service.category_stats(pk)).data)


class SubcategoryViewSet(CatalogNodeViewSet):
    node_kind = NodeKind.SUBCATEGORY
    filterset_class = SubcategoryFilter
    serializer_class = SubcategorySerializer

    def get_queryset(self):
        return Subcategory.objects.select_related("category")

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/subcategories/{pk}/"""
        return Response(SubcategorySerializer(self._service.get_subcategory(pk)).data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/subcategories/"""
        data = request.data
        dto = CreateSubcategoryDTO(
            category_id=data.get("category_id"),
            name=data.get("name", ""),
            description=data.get("description", ""),
        )
        subcategory = self._service.create_subcategory(dto)
        return Response(
            SubcategorySerializer(subcategory).data, status=status.HTTP_201_CREATED
        )

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/subcategories/{pk}/"""
        data = request.data
        dto = UpdateSubcategoryDTO(
            name=data.get("name"),
            description=data.get("description"),
        )
        return Response(
            SubcategorySerializer(self._service.update_subcategory(pk, dto)).data
        )

    @action(detail=True, methods=["get"], url_path="stats")
    def stats(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/subcategories/{pk}/stats/"""
        return Response(
            SubcategoryStatsSerializer(self._service.subcategory_stats(pk)).data
        )


class ProductViewSet(CatalogNodeViewSet):
    node_kind = NodeKind.PRODUCT
    filterset_class = ProductFilter
    serializer_class = ProductSerializer
    ordering_fields = ["name", "price", "stock", "created_at"]

    def get_queryset(self):
        return Product.objects.select_related("subcategory", "category")

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/"""
        return Response(ProductSerializer(self._service.get_product(pk)).data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/products/"""
        data = request.data
        dto = CreateProductDTO(
            subcategory_id=data.get("subcategory_id"),
            category_id=data.get("category_id") or None,
            name=data.get("name", ""),
            price=data.get("price"),
            description=data.get("description", ""),
            stock=data.get("stock", 0),
            image_ref=data.get("image_ref", ""),
        )
        product = self._service.create_product(dto)
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/products/{pk}/"""
        data = request.data
        dto = UpdateProductDTO(
            name=data.get("name"),
            description=data.get("description"),
            price=data.get("price"),
            stock=data.get("stock"),
            subcategory_id=data.get("subcategory_id"),
        )
        return Response(ProductSerializer(self._service.update_product(pk, dto)).data)

    @action(detail=True, methods=["patch"], url_path="stock")
    def stock(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/products/{pk}/stock/

        Body: ``{"operation": "increase" | "decrease" | "set", "quantity": n}``.
        """
        data = request.data
        dto = AdjustStockDTO(
            operation=data.get("operation"),
            quantity=data.get("quantity"),
        )
        adjustment = self._service.adjust_stock(pk, dto)
        return Response(StockAdjustmentSerializer(adjustment).data)

    @action(
        detail=True,
        methods=["post"],
        url_path="image",
        parser_classes=[MultiPartParser, FormParser],
    )
    def image(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/products/{pk}/image/ (multipart, field ``image``)"""
        serializer = ImageUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data["image"]
        product = self._service.set_product_image(pk, upload.name, upload)
        return Response(ProductSerializer(product).data)
