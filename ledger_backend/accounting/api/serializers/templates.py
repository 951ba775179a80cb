# accounting/api/serializers/templates.py

from rest_framework import serializers

from accounting.models.template import JournalEntryTemplate, TemplateLine


class TemplateLineSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)

    class Meta:
        model = TemplateLine
        fields = (
            "line_number",
            "account_code",
            "side",
            "amount_type",
            "fixed_amount",
            "percentage",
            "custom_field",
            "description",
        )
        read_only_fields = fields


class JournalEntryTemplateSerializer(serializers.ModelSerializer):
    lines = TemplateLineSerializer(many=True, read_only=True)

    class Meta:
        model = JournalEntryTemplate
        fields = ("id", "code", "name", "trigger_type", "description", "is_active", "lines")
        read_only_fields = fields


class ApplyTemplateSerializer(serializers.Serializer):
    """Source document figures for a manual template application."""

    document_id = serializers.CharField(max_length=64)
    date = serializers.DateField()
    description = serializers.CharField(max_length=255)
    total = serializers.DecimalField(max_digits=14, decimal_places=2, default=0)
    subtotal = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True, default=None)
    tax = serializers.DecimalField(max_digits=14, decimal_places=2, default=0)
    tax_rate_a = serializers.DecimalField(max_digits=14, decimal_places=2, default=0)
    tax_rate_b = serializers.DecimalField(max_digits=14, decimal_places=2, default=0)
    perceptions = serializers.ListField(
        child=serializers.DecimalField(max_digits=14, decimal_places=2), required=False, default=list
    )
    retention = serializers.DecimalField(max_digits=14, decimal_places=2, default=0)
    net_payment = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True, default=None)
    principal = serializers.DecimalField(max_digits=14, decimal_places=2, default=0)
    interest = serializers.DecimalField(max_digits=14, decimal_places=2, default=0)
    custom_fields = serializers.DictField(
        child=serializers.DecimalField(max_digits=14, decimal_places=2), required=False, default=dict
    )
    auto_post = serializers.BooleanField(default=True)
