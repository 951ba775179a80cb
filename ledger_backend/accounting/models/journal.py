# accounting/models/journal.py

"""
======================================================
PATH: accounting/models/journal.py
======================================================
JOURNAL ENTRY + LINE MODELS

JournalEntry is the header of one accounting transaction, JournalEntryLine
one debit-or-credit posting to a single leaf account.

Guarantees:
- entry_number is unique and comes from LedgerSequence (allocated inside the
  inserting transaction by the journal entry service)
- origin is an explicit (origin_type, origin_id) pair: NONE carries no id,
  every other origin carries one
- exactly one of debit / credit is strictly positive on every line
- POSTED entries and their lines are immutable: save() and delete() raise.
  DRAFT -> POSTED happens through a guarded status update in the service
  layer; corrections are reversal entries.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

from accounting.models.account import Account


class JournalEntry(models.Model):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        POSTED = "POSTED", "Posted"

    class Origin(models.TextChoices):
        NONE = "NONE", "None"
        INVOICE = "INVOICE", "Sale invoice"
        PAYMENT = "PAYMENT", "Supplier payment"
        RECEIPT = "RECEIPT", "Customer receipt"
        ADJUSTMENT = "ADJUSTMENT", "Stock adjustment"
        PURCHASE = "PURCHASE", "Purchase invoice"

    entry_number = models.PositiveBigIntegerField(unique=True, editable=False)

    date = models.DateField(default=timezone.localdate)
    description = models.TextField(help_text="Narrative description of the journal entry")

    reference = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="External reference (invoice number, payment reference, etc.)",
    )

    template_code = models.CharField(max_length=50, blank=True, default="")
    trigger_type = models.CharField(max_length=30, blank=True, default="")

    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.DRAFT,
    )

    origin_type = models.CharField(
        max_length=12,
        choices=Origin.choices,
        default=Origin.NONE,
    )
    origin_id = models.CharField(max_length=64, null=True, blank=True)

    reverses = models.OneToOneField(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reversal",
        help_text="Posted entry this entry offsets",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="journal_entries",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    posted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["entry_number"]
        indexes = [
            models.Index(fields=["date"]),
            models.Index(fields=["status"]),
            models.Index(fields=["trigger_type"]),
            models.Index(fields=["origin_type", "origin_id"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(origin_type="NONE", origin_id__isnull=True)
                    | (~Q(origin_type="NONE") & Q(origin_id__isnull=False))
                ),
                name="chk_journal_origin_pair",
            ),
        ]
        verbose_name = "Journal Entry"
        verbose_name_plural = "Journal Entries"

    def __str__(self):
        return f"JournalEntry #{self.entry_number} - {self.date}"

    @property
    def is_posted(self) -> bool:
        return self.status == self.Status.POSTED

    def totals(self) -> tuple[Decimal, Decimal]:
        agg = self.lines.aggregate(
            debit=models.Sum("debit"),
            credit=models.Sum("credit"),
        )
        return (agg["debit"] or Decimal("0.00"), agg["credit"] or Decimal("0.00"))

    def _persisted_status(self) -> str | None:
        if self._state.adding or not self.pk:
            return None
        return (
            JournalEntry.objects.filter(pk=self.pk)
            .values_list("status", flat=True)
            .first()
        )

    def clean(self):
        self.description = (self.description or "").strip()
        if not self.description:
            raise ValidationError("Journal entry description is required")

        self.reference = (self.reference or "").strip()

        if self.origin_type == self.Origin.NONE:
            self.origin_id = None
        elif not self.origin_id:
            raise ValidationError(
                {"origin_id": f"origin_id is required for origin {self.origin_type}"}
            )

    def save(self, *args, **kwargs):
        if self._persisted_status() == self.Status.POSTED:
            raise ValidationError("Posted journal entries are immutable")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self._persisted_status() == self.Status.POSTED:
            raise ValidationError("Posted journal entries cannot be deleted")
        return super().delete(*args, **kwargs)


class JournalEntryLine(models.Model):
    entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    line_number = models.PositiveSmallIntegerField()

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )

    debit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    credit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    description = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["entry_id", "line_number"]
        indexes = [
            models.Index(fields=["account"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["entry", "line_number"],
                name="uniq_journal_line_number",
            ),
            models.CheckConstraint(
                condition=(
                    (Q(debit__gt=0) & Q(credit=0)) | (Q(debit=0) & Q(credit__gt=0))
                ),
                name="chk_journal_line_one_side",
            ),
        ]

    def __str__(self):
        side = f"Dr {self.debit}" if self.debit > 0 else f"Cr {self.credit}"
        return f"{self.account.code} {side}"

    def clean(self):
        debit = self.debit or Decimal("0.00")
        credit = self.credit or Decimal("0.00")

        if debit < 0 or credit < 0:
            raise ValidationError("Debit or credit cannot be negative")
        if (debit > 0) == (credit > 0):
            raise ValidationError("Exactly one of debit or credit must be positive")

        if self.account_id and not self.account.is_postable:
            raise ValidationError(
                {"account": f"Account {self.account.code} is not a posting account"}
            )

    def _entry_is_posted(self) -> bool:
        return JournalEntry.objects.filter(
            pk=self.entry_id, status=JournalEntry.Status.POSTED
        ).exists()

    def save(self, *args, **kwargs):
        if self._entry_is_posted():
            raise ValidationError("Lines of a posted journal entry are immutable")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self._entry_is_posted():
            raise ValidationError("Lines of a posted journal entry cannot be deleted")
        return super().delete(*args, **kwargs)


class LedgerSequence(models.Model):
    """
    Counter row per named sequence ("journal_entry").

    next_value is advanced first with an UPDATE ... F("next_value") + 1 and
    read back afterwards, inside the transaction that consumes it. The
    UPDATE holds the row lock until commit, so two concurrent postings
    never share a number.
    """

    name = models.CharField(max_length=50, unique=True)
    next_value = models.PositiveBigIntegerField(default=1)

    class Meta:
        verbose_name = "Ledger Sequence"

    def __str__(self):
        return f"{self.name} -> {self.next_value}"
