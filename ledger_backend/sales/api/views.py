# sales/api/views.py

"""
SALES API (STAFF)

- Customers: list / create / retrieve
- Invoices: list / retrieve; create runs the invoice-inventory orchestrator
    POST /invoices/            create with inventory (stock + COGS [+ revenue])
    POST /invoices/preview/    read-only stock + cost preview
    POST /invoices/validate/   {valid, errors, warnings}
- Customer receipts: list / create
"""

from __future__ import annotations

from dataclasses import asdict

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from sales.api.serializers import (
    ActivitySerializer,
    CustomerReceiptCreateSerializer,
    CustomerReceiptSerializer,
    CustomerSerializer,
    InvoiceCreateSerializer,
    InvoicePreviewSerializer,
    InvoiceSerializer,
)
from sales.models import Customer, CustomerReceipt, Invoice
from sales.services.invoice_inventory import (
    create_invoice_with_inventory,
    preview_invoice_inventory,
    validate_invoice_for_inventory,
)
from sales.services.receipt_service import register_customer_receipt


def _items_payload(items) -> list[dict]:
    return [{**item, "product_id": str(item["product_id"])} for item in items]


@extend_schema(tags=["sales"])
class CustomerViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    serializer_class = CustomerSerializer
    filterset_fields = ("is_active",)
    queryset = Customer.objects.all().order_by("name")


@extend_schema(tags=["sales"])
class InvoiceViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = InvoiceSerializer
    filterset_fields = ("invoice_type", "status", "payment_status", "customer", "issue_date")

    queryset = (
        Invoice.objects.select_related("customer")
        .prefetch_related("items__product")
        .order_by("-issue_date", "-created_at")
    )

    @extend_schema(request=InvoiceCreateSerializer, responses={201: dict})
    def create(self, request):
        ser = InvoiceCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)
        data["items"] = _items_payload(data["items"])

        result = create_invoice_with_inventory(data, user=request.user)

        invoice = self.get_queryset().get(pk=result.invoice.pk)
        return Response(
            {
                "invoice": InvoiceSerializer(invoice).data,
                "cogs_amount": str(result.cogs_amount),
                "cogs_entry_number": result.cogs_entry.entry_number if result.cogs_entry else None,
                "revenue_entry_number": (
                    result.revenue_entry.entry_number if result.revenue_entry else None
                ),
                "movements": [str(m.pk) for m in result.movements],
            },
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(request=InvoicePreviewSerializer, responses={200: dict})
    @action(detail=False, methods=["post"])
    def preview(self, request):
        ser = InvoicePreviewSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        preview = preview_invoice_inventory(_items_payload(ser.validated_data["items"]))
        preview["shortfalls"] = [
            {**asdict(s), "product_id": str(s.product_id)} for s in preview["shortfalls"]
        ]
        return Response(preview)

    @extend_schema(request=InvoicePreviewSerializer, responses={200: dict})
    @action(detail=False, methods=["post"])
    def validate(self, request):
        ser = InvoicePreviewSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        return Response(validate_invoice_for_inventory(_items_payload(ser.validated_data["items"])))

    @extend_schema(responses=ActivitySerializer(many=True))
    @action(detail=True, methods=["get"])
    def activity(self, request, pk=None):
        invoice = self.get_object()
        return Response(ActivitySerializer(invoice.activities.all(), many=True).data)


@extend_schema(tags=["sales"])
class CustomerReceiptViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    serializer_class = CustomerReceiptSerializer
    filterset_fields = ("customer", "invoice", "method")
    queryset = CustomerReceipt.objects.select_related("journal_entry").order_by("-date", "-created_at")

    @extend_schema(request=CustomerReceiptCreateSerializer, responses=CustomerReceiptSerializer)
    def create(self, request):
        ser = CustomerReceiptCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        result = register_customer_receipt(
            customer_id=data["customer_id"],
            invoice_id=data.get("invoice_id"),
            amount=data["amount"],
            method=data["method"],
            date=data.get("date"),
            reference=data["reference"],
            user=request.user,
        )
        return Response(
            CustomerReceiptSerializer(result.receipt).data, status=status.HTTP_201_CREATED
        )
