# purchases/api/views.py

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from purchases.api.serializers import (
    PurchaseInvoiceCreateSerializer,
    PurchaseInvoiceSerializer,
    SupplierPaymentCreateSerializer,
    SupplierPaymentSerializer,
    SupplierSerializer,
)
from purchases.models import PurchaseInvoice, Supplier, SupplierPayment
from purchases.services.payment_service import (
    register_purchase_payment,
    register_supplier_payment,
    supplier_account_statement,
)
from purchases.services.purchase_invoice_service import receive_purchase_invoice


class SupplierListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = SupplierSerializer

    @extend_schema(tags=["purchases"], responses=SupplierSerializer(many=True))
    def get(self, request):
        qs = Supplier.objects.filter(is_active=True).order_by("name")
        return Response(SupplierSerializer(qs, many=True).data)

    @extend_schema(tags=["purchases"], request=SupplierSerializer, responses=SupplierSerializer)
    def post(self, request):
        ser = SupplierSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        supplier = ser.save()
        return Response(SupplierSerializer(supplier).data, status=status.HTTP_201_CREATED)


class SupplierStatementView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["purchases"], responses={200: dict})
    def get(self, request, supplier_id):
        supplier = get_object_or_404(Supplier, pk=supplier_id)
        return Response(supplier_account_statement(supplier))


class PurchaseInvoiceListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = PurchaseInvoiceSerializer
    filterset_fields = ("supplier", "status", "payment_status")

    queryset = (
        PurchaseInvoice.objects.select_related("supplier", "journal_entry")
        .prefetch_related("items__product")
        .order_by("-invoice_date", "-created_at")
    )

    @extend_schema(tags=["purchases"], responses=PurchaseInvoiceSerializer(many=True))
    def get(self, request):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(PurchaseInvoiceSerializer(page, many=True).data)
        return Response(PurchaseInvoiceSerializer(qs, many=True).data)

    @extend_schema(
        tags=["purchases"],
        request=PurchaseInvoiceCreateSerializer,
        responses=PurchaseInvoiceSerializer,
    )
    def post(self, request):
        ser = PurchaseInvoiceCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        invoice = receive_purchase_invoice(
            supplier_id=data["supplier_id"],
            invoice_number=data["invoice_number"],
            invoice_type=data["invoice_type"],
            invoice_date=data.get("invoice_date"),
            due_date=data.get("due_date"),
            perceptions=data["perceptions"],
            items=[{**item, "product_id": str(item["product_id"])} for item in data["items"]],
            user=request.user,
        )
        invoice = self.get_queryset().get(pk=invoice.pk)
        return Response(PurchaseInvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)


class SupplierPaymentListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = SupplierPaymentSerializer
    filterset_fields = ("supplier", "invoice", "payment_method")

    queryset = SupplierPayment.objects.select_related("supplier", "invoice", "journal_entry").order_by(
        "-created_at"
    )

    @extend_schema(tags=["purchases"], responses=SupplierPaymentSerializer(many=True))
    def get(self, request):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(SupplierPaymentSerializer(page, many=True).data)
        return Response(SupplierPaymentSerializer(qs, many=True).data)

    @extend_schema(
        tags=["purchases"],
        request=SupplierPaymentCreateSerializer,
        responses=SupplierPaymentSerializer,
    )
    def post(self, request):
        ser = SupplierPaymentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        common = {
            "amount": data["amount"],
            "payment_method": data["payment_method"],
            "payment_date": data.get("payment_date"),
            "reference": data["reference"],
            "narration": data["narration"],
            "user": request.user,
        }
        if data.get("invoice_id"):
            result = register_purchase_payment(invoice_id=data["invoice_id"], **common)
        else:
            result = register_supplier_payment(supplier_id=data["supplier_id"], **common)

        payment = self.get_queryset().get(pk=result.payment.pk)
        return Response(SupplierPaymentSerializer(payment).data, status=status.HTTP_201_CREATED)
