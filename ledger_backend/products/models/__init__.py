"""
PATH: products/models/__init__.py

Products models export surface.
"""

from .product import Product, ProductPrice
from .stock_movement import StockMovement

__all__ = [
    "Product",
    "ProductPrice",
    "StockMovement",
]
