# sales/api/urls.py

"""
SALES API URLS

    /api/sales/customers/
    /api/sales/invoices/            (+ preview/, validate/, <id>/activity/)
    /api/sales/receipts/
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from sales.api.views import CustomerReceiptViewSet, CustomerViewSet, InvoiceViewSet

router = DefaultRouter()
router.register(r"customers", CustomerViewSet, basename="customers")
router.register(r"invoices", InvoiceViewSet, basename="invoices")
router.register(r"receipts", CustomerReceiptViewSet, basename="receipts")

urlpatterns = [
    path("", include(router.urls)),
]
