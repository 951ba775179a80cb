# accounting/api/serializers/__init__.py

from accounting.api.serializers.accounts import AccountListSerializer
from accounting.api.serializers.journal_entries import (
    JournalEntryLineSerializer,
    JournalEntrySerializer,
    ReverseEntrySerializer,
)
from accounting.api.serializers.templates import (
    ApplyTemplateSerializer,
    JournalEntryTemplateSerializer,
    TemplateLineSerializer,
)

__all__ = [
    "AccountListSerializer",
    "JournalEntrySerializer",
    "JournalEntryLineSerializer",
    "ReverseEntrySerializer",
    "JournalEntryTemplateSerializer",
    "TemplateLineSerializer",
    "ApplyTemplateSerializer",
]
