# accounting/api/serializers/accounts.py

from rest_framework import serializers

from accounting.models.account import Account


class AccountListSerializer(serializers.ModelSerializer):
    """
    Read-only serializer for listing the chart of accounts.
    """

    parent_code = serializers.CharField(source="parent.code", read_only=True, default=None)
    balance = serializers.DecimalField(max_digits=16, decimal_places=2, read_only=True)

    class Meta:
        model = Account
        fields = (
            "id",
            "code",
            "name",
            "account_type",
            "level",
            "parent_code",
            "is_postable",
            "is_active",
            "debit_balance",
            "credit_balance",
            "balance",
        )
        read_only_fields = fields
