# purchases/api/serializers.py

from rest_framework import serializers

from accounting.services.account_registry import PAYMENT_METHODS
from purchases.models import PurchaseInvoice, PurchaseInvoiceItem, Supplier, SupplierPayment


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = ("id", "name", "tax_id", "phone", "email", "balance", "is_active", "created_at")
        read_only_fields = ("id", "balance", "created_at")


class PurchaseInvoiceItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = PurchaseInvoiceItem
        fields = ("id", "product", "product_name", "quantity", "unit_cost", "line_total")
        read_only_fields = fields


class PurchaseInvoiceSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source="supplier.name", read_only=True)
    items = PurchaseInvoiceItemSerializer(many=True, read_only=True)
    journal_entry_number = serializers.IntegerField(
        source="journal_entry.entry_number", read_only=True, default=None
    )

    class Meta:
        model = PurchaseInvoice
        fields = (
            "id",
            "supplier",
            "supplier_name",
            "invoice_number",
            "invoice_type",
            "invoice_date",
            "due_date",
            "status",
            "payment_status",
            "subtotal_amount",
            "tax_amount",
            "perceptions_amount",
            "total_amount",
            "balance",
            "journal_entry_number",
            "created_at",
            "items",
        )
        read_only_fields = fields


class PurchaseInvoiceItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_cost = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, required=False)


class PurchaseInvoiceCreateSerializer(serializers.Serializer):
    supplier_id = serializers.UUIDField()
    invoice_number = serializers.CharField(max_length=64)
    invoice_type = serializers.CharField(max_length=1, required=False, default="A")
    invoice_date = serializers.DateField(required=False, allow_null=True)
    due_date = serializers.DateField(required=False, allow_null=True)
    perceptions = serializers.ListField(
        child=serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0),
        required=False,
        default=list,
    )
    items = PurchaseInvoiceItemInputSerializer(many=True, allow_empty=False)


class SupplierPaymentSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source="supplier.name", read_only=True)
    invoice_number = serializers.CharField(source="invoice.invoice_number", read_only=True, default=None)
    journal_entry_number = serializers.IntegerField(
        source="journal_entry.entry_number", read_only=True, default=None
    )

    class Meta:
        model = SupplierPayment
        fields = (
            "id",
            "supplier",
            "supplier_name",
            "invoice",
            "invoice_number",
            "payment_date",
            "amount",
            "payment_method",
            "reference",
            "narration",
            "journal_entry_number",
            "created_at",
        )
        read_only_fields = fields


class SupplierPaymentCreateSerializer(serializers.Serializer):
    """Either invoice_id (pays that invoice) or supplier_id (on account)."""

    supplier_id = serializers.UUIDField(required=False, allow_null=True)
    invoice_id = serializers.UUIDField(required=False, allow_null=True)
    payment_date = serializers.DateField(required=False, allow_null=True)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    payment_method = serializers.ChoiceField(choices=[(m, m) for m in PAYMENT_METHODS])
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    narration = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if not attrs.get("invoice_id") and not attrs.get("supplier_id"):
            raise serializers.ValidationError("supplier_id or invoice_id is required")
        return attrs
