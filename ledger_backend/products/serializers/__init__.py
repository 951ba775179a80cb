# products/serializers/__init__.py

from .product import (
    AdjustStockSerializer,
    AvailabilityRequestSerializer,
    ProductPriceSerializer,
    ProductSerializer,
    StockMovementSerializer,
)

__all__ = [
    "ProductSerializer",
    "ProductPriceSerializer",
    "StockMovementSerializer",
    "AvailabilityRequestSerializer",
    "AdjustStockSerializer",
]
