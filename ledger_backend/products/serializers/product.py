# products/serializers/product.py

from rest_framework import serializers

from products.models import Product, ProductPrice, StockMovement


class ProductSerializer(serializers.ModelSerializer):
    """
    stock_quantity is read-only: stock only changes through stock movements.
    """

    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = (
            "id",
            "sku",
            "name",
            "stock_quantity",
            "min_stock",
            "allow_negative_stock",
            "is_active",
            "is_low_stock",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "stock_quantity", "is_low_stock", "created_at", "updated_at")


class ProductPriceSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductPrice
        fields = ("id", "price_type", "amount", "currency", "valid_from", "valid_until")
        read_only_fields = ("id",)


class StockMovementSerializer(serializers.ModelSerializer):
    journal_entry_number = serializers.IntegerField(
        source="journal_entry.entry_number", read_only=True, default=None
    )

    class Meta:
        model = StockMovement
        fields = (
            "id",
            "movement_type",
            "quantity",
            "unit_cost",
            "total_cost",
            "stock_before",
            "stock_after",
            "reference",
            "notes",
            "invoice",
            "journal_entry_number",
            "created_at",
        )
        read_only_fields = fields


class AvailabilityItemSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class AvailabilityRequestSerializer(serializers.Serializer):
    items = AvailabilityItemSerializer(many=True, allow_empty=False)


class AdjustStockSerializer(serializers.Serializer):
    target = serializers.IntegerField(min_value=0)
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    unit_cost = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, allow_null=True, default=None
    )
    post_to_ledger = serializers.BooleanField(default=False)
