"""Cart DRF serializers for API output."""

from __future__ import annotations

from rest_framework import serializers

from modules.cart.models import CartLine


class CartLineSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CartLine
        fields = [
            "id",
            "product_id",
            "product_name",
            "quantity",
            "unit_price_snapshot",
            "subtotal",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CartSummarySerializer(serializers.Serializer):
    lines = CartLineSerializer(many=True)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    line_count = serializers.IntegerField()
    total_quantity = serializers.IntegerField()
