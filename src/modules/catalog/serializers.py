"""Catalog DRF serializers for API output.

Input is validated by the Pydantic DTOs in ``dtos.py``; these serializers
only render model instances.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.catalog.models import Category, Product, Subcategory


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = [
            "id",
            "name",
            "description",
            "active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class SubcategorySerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source="category.name", read_only=True)

    class Meta:
        model = Subcategory
        fields = [
            "id",
            "category_id",
            "category_name",
            "name",
            "description",
            "active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ProductSerializer(serializers.ModelSerializer):
    """Product with its active-chain flattened for clients."""

    category_name = serializers.CharField(source="category.name", read_only=True)
    subcategory_name = serializers.CharField(source="subcategory.name", read_only=True)
    is_orderable = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "description",
            "price",
            "stock",
            "image_ref",
            "category_id",
            "category_name",
            "subcategory_id",
            "subcategory_name",
            "active",
            "is_orderable",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class SetActiveSerializer(serializers.Serializer):
    """Validates ``PATCH {node}/{id}/active/`` payloads."""

    active = serializers.BooleanField()


class CategoryStatsSerializer(serializers.Serializer):
    category_id = serializers.UUIDField()
    active_subcategories = serializers.IntegerField()
    inactive_subcategories = serializers.IntegerField()
    active_products = serializers.IntegerField()
    inactive_products = serializers.IntegerField()
    inventory_value = serializers.DecimalField(max_digits=20, decimal_places=2)
    stock_total = serializers.IntegerField()


class SubcategoryStatsSerializer(serializers.Serializer):
    subcategory_id = serializers.UUIDField()
    active_products = serializers.IntegerField()
    inactive_products = serializers.IntegerField()
    inventory_value = serializers.DecimalField(max_digits=20, decimal_places=2)
    stock_total = serializers.IntegerField()


class StockAdjustmentSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    operation = serializers.CharField()
    previous_stock = serializers.IntegerField()
    stock = serializers.IntegerField()


class ImageUploadSerializer(serializers.Serializer):
    image = serializers.FileField()
