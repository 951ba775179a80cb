# accounting/models/__init__.py

"""
ACCOUNTING MODELS PACKAGE EXPORTS

Note:
- Keep this file *imports-only* (no business logic).
- Do NOT import services from models at module import time (models must stay pure).
"""

from accounting.models.account import Account
from accounting.models.journal import JournalEntry, JournalEntryLine, LedgerSequence
from accounting.models.template import JournalEntryTemplate, TemplateLine, TriggerType

__all__ = [
    "Account",
    "JournalEntry",
    "JournalEntryLine",
    "LedgerSequence",
    "JournalEntryTemplate",
    "TemplateLine",
    "TriggerType",
]
