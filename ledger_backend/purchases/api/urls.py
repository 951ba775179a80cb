# purchases/api/urls.py

from django.urls import path

from purchases.api.views import (
    PurchaseInvoiceListCreateView,
    SupplierListCreateView,
    SupplierPaymentListCreateView,
    SupplierStatementView,
)

urlpatterns = [
    path("suppliers/", SupplierListCreateView.as_view(), name="purchase-suppliers"),
    path(
        "suppliers/<uuid:supplier_id>/statement/",
        SupplierStatementView.as_view(),
        name="supplier-statement",
    ),
    path(
        "invoices/", PurchaseInvoiceListCreateView.as_view(), name="purchase-invoices"
    ),
    path(
        "payments/", SupplierPaymentListCreateView.as_view(), name="supplier-payments"
    ),
]
