# products/urls.py

"""
PRODUCTS URLS

Purpose:
- Register product domain routes under /api/products/
    /products/                          CRUD
    /products/<id>/history/             stock movements
    /products/<id>/cost/                resolved unit cost
    /products/<id>/prices/              add a dated price
    /products/<id>/adjust/              count adjustment
    /stock/availability/                validate items against stock
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from products.views import ProductViewSet, StockAvailabilityView

router = DefaultRouter()

router.register(r"products", ProductViewSet, basename="products")

urlpatterns = [
    path("stock/availability/", StockAvailabilityView.as_view(), name="stock-availability"),
    path("", include(router.urls)),
]
