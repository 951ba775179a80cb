# accounting/api/views/__init__.py

"""
accounting.api.views package

Do NOT import accounting.api.urls from here to avoid circular imports.
"""

from accounting.api.views.accounts import AccountListView, AccountStatementView, TrialBalanceView
from accounting.api.views.journal_entries import JournalEntryViewSet
from accounting.api.views.templates import JournalEntryTemplateViewSet

__all__ = [
    "AccountListView",
    "AccountStatementView",
    "TrialBalanceView",
    "JournalEntryViewSet",
    "JournalEntryTemplateViewSet",
]
