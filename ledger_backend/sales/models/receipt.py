# sales/models/receipt.py

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class CustomerReceipt(models.Model):
    """
    Money received from a customer, optionally against one invoice.
    Immutable once written; the journal entry is attached in the same
    transaction.
    """

    class Method(models.TextChoices):
        CASH = "CASH", "Cash"
        TRANSFER = "TRANSFER", "Bank transfer"
        DEBIT = "DEBIT", "Debit card"
        CHECK = "CHECK", "Check"
        CARD = "CARD", "Credit card"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    customer = models.ForeignKey(
        "sales.Customer", on_delete=models.PROTECT, related_name="receipts"
    )
    invoice = models.ForeignKey(
        "sales.Invoice",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="receipts",
    )

    amount = models.DecimalField(max_digits=14, decimal_places=2)
    method = models.CharField(max_length=16, choices=Method.choices)
    date = models.DateField(default=timezone.localdate)
    reference = models.CharField(max_length=100, blank=True, default="")

    journal_entry = models.OneToOneField(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="customer_receipt",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="customer_receipts",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-date", "-created_at"]

    def __str__(self):
        return f"Receipt {self.amount} {self.method} ({self.customer_id})"

    def clean(self):
        if self.amount is None or self.amount <= 0:
            raise ValidationError("Receipt amount must be > 0")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Customer receipts are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)
