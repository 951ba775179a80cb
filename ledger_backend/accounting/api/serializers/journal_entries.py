# accounting/api/serializers/journal_entries.py

from rest_framework import serializers

from accounting.models.journal import JournalEntry, JournalEntryLine


class JournalEntryLineSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)

    class Meta:
        model = JournalEntryLine
        fields = ("line_number", "account_code", "account_name", "debit", "credit", "description")
        read_only_fields = fields


class JournalEntrySerializer(serializers.ModelSerializer):
    lines = JournalEntryLineSerializer(many=True, read_only=True)
    reverses = serializers.IntegerField(source="reverses.entry_number", read_only=True, default=None)

    class Meta:
        model = JournalEntry
        fields = (
            "id",
            "entry_number",
            "date",
            "description",
            "reference",
            "template_code",
            "trigger_type",
            "status",
            "origin_type",
            "origin_id",
            "reverses",
            "created_at",
            "posted_at",
            "lines",
        )
        read_only_fields = fields


class ReverseEntrySerializer(serializers.Serializer):
    description = serializers.CharField(required=False, allow_blank=True, default="")
    date = serializers.DateField(required=False, allow_null=True, default=None)
