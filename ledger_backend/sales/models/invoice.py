# sales/models/invoice.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class Invoice(models.Model):
    """
    Sale invoice.

    GUARANTEES:
    - created AUTHORIZED by sales.services.invoice_inventory, together with
      its SALE stock movements and COGS entry (one transaction)
    - total == subtotal + tax_amount
    - balance is the amount still receivable; 0 <= balance <= total
    - balance and payment_status only change through the receipt service
    """

    class InvoiceType(models.TextChoices):
        A = "A", "A (tax discriminated)"
        B = "B", "B"
        C = "C", "C"
        E = "E", "E (export)"

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        AUTHORIZED = "AUTHORIZED", "Authorized"
        CANCELLED = "CANCELLED", "Cancelled"

    class PaymentStatus(models.TextChoices):
        PENDING = "PENDING", "Pending"
        PARTIAL = "PARTIAL", "Partially paid"
        PAID = "PAID", "Paid"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    number = models.CharField(max_length=32, unique=True)
    invoice_type = models.CharField(max_length=1, choices=InvoiceType.choices)

    customer = models.ForeignKey(
        "sales.Customer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
    )

    currency = models.CharField(max_length=3, default="ARS")

    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_rate_a_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Tax charged at the general rate",
    )
    tax_rate_b_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Tax charged at the reduced rate",
    )
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.AUTHORIZED)
    payment_status = models.CharField(
        max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )

    issue_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="invoices"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-issue_date", "-created_at"]
        indexes = [
            models.Index(fields=["issue_date"]),
            models.Index(fields=["status"]),
            models.Index(fields=["payment_status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(balance__gte=0),
                name="chk_invoice_balance_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.invoice_type} {self.number}"

    def clean(self):
        if self.total != (self.subtotal or 0) + (self.tax_amount or 0):
            raise ValidationError("total must equal subtotal + tax_amount")
        if self.balance is not None and self.total is not None and self.balance > self.total:
            raise ValidationError("balance cannot exceed total")
        if self.due_date and self.issue_date and self.due_date < self.issue_date:
            raise ValidationError("due_date cannot be before issue_date")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def amount_paid(self) -> Decimal:
        return (self.total or Decimal("0.00")) - (self.balance or Decimal("0.00"))


class InvoiceItem(models.Model):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        "products.Product", on_delete=models.PROTECT, related_name="invoice_items"
    )

    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    tax_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("21.00"), help_text="Percent"
    )
    subtotal = models.DecimalField(max_digits=14, decimal_places=2)
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    # cost snapshot at sale time
    unit_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.invoice.number} x{self.quantity} {self.product_id}"

    def clean(self):
        if not self.quantity or self.quantity <= 0:
            raise ValidationError("quantity must be > 0")
        if self.unit_price is None or self.unit_price < 0:
            raise ValidationError("unit_price cannot be negative")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
