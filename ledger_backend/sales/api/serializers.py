# sales/api/serializers.py

from rest_framework import serializers

from accounting.services.account_registry import PAYMENT_METHODS
from sales.models import Activity, Customer, CustomerReceipt, Invoice, InvoiceItem


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ("id", "name", "tax_id", "email", "balance", "is_active", "created_at")
        read_only_fields = ("id", "balance", "created_at")


class InvoiceItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = InvoiceItem
        fields = (
            "id",
            "product",
            "product_name",
            "quantity",
            "unit_price",
            "tax_rate",
            "subtotal",
            "tax_amount",
            "unit_cost",
        )
        read_only_fields = fields


class ActivitySerializer(serializers.ModelSerializer):
    class Meta:
        model = Activity
        fields = ("id", "activity_type", "description", "metadata", "created_at")
        read_only_fields = fields


class InvoiceSerializer(serializers.ModelSerializer):
    items = InvoiceItemSerializer(many=True, read_only=True)
    customer_name = serializers.CharField(source="customer.name", read_only=True, default=None)

    class Meta:
        model = Invoice
        fields = (
            "id",
            "number",
            "invoice_type",
            "customer",
            "customer_name",
            "currency",
            "subtotal",
            "tax_amount",
            "tax_rate_a_amount",
            "tax_rate_b_amount",
            "total",
            "balance",
            "status",
            "payment_status",
            "issue_date",
            "due_date",
            "notes",
            "created_at",
            "items",
        )
        read_only_fields = fields


# ==========================================================
# INPUT
# ==========================================================


class InvoiceItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, required=False)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, required=False)


class InvoiceCreateSerializer(serializers.Serializer):
    invoice_type = serializers.ChoiceField(choices=Invoice.InvoiceType.choices)
    customer_id = serializers.IntegerField(required=False, allow_null=True)
    number = serializers.CharField(max_length=32, required=False, allow_blank=True)
    currency = serializers.CharField(max_length=3, required=False, default="ARS")
    issue_date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    post_revenue = serializers.BooleanField(required=False, allow_null=True, default=None)
    items = InvoiceItemInputSerializer(many=True, allow_empty=False)

    def validate_items(self, items):
        for item in items:
            if item.get("unit_price") is None:
                raise serializers.ValidationError("Each item needs a unit_price")
        return items


class InvoicePreviewSerializer(serializers.Serializer):
    items = InvoiceItemInputSerializer(many=True, allow_empty=False)


class CustomerReceiptSerializer(serializers.ModelSerializer):
    journal_entry_number = serializers.IntegerField(
        source="journal_entry.entry_number", read_only=True, default=None
    )

    class Meta:
        model = CustomerReceipt
        fields = (
            "id",
            "customer",
            "invoice",
            "amount",
            "method",
            "date",
            "reference",
            "journal_entry_number",
            "created_at",
        )
        read_only_fields = fields


class CustomerReceiptCreateSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField()
    invoice_id = serializers.UUIDField(required=False, allow_null=True)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    method = serializers.ChoiceField(choices=[(m, m) for m in PAYMENT_METHODS])
    date = serializers.DateField(required=False, allow_null=True)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
