# products/views/__init__.py

"""
Products views package exports.
"""

from .product import ProductViewSet, StockAvailabilityView

__all__ = [
    "ProductViewSet",
    "StockAvailabilityView",
]
