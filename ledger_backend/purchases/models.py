# purchases/models.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from products.models.product import Product

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES)


User = settings.AUTH_USER_MODEL


class Supplier(models.Model):
    """
    Supplier master.

    balance is what we owe the supplier: raised by received purchase
    invoices, lowered by payments (guarded F() updates only).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=200)
    tax_id = models.CharField(max_length=32, blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    email = models.EmailField(blank=True, default="")

    balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["name"]),
            models.Index(fields=["is_active"]),
        ]

    def __str__(self):
        return self.name


class PurchaseInvoice(models.Model):
    """
    Supplier invoice header.

    Created by purchases.services.purchase_invoice_service, which in the
    same transaction records PURCHASE stock movements, raises the supplier
    balance and posts the purchase template.

    balance is the amount still payable. Paying it down to <= 0.01 marks
    the invoice PAID / COMPLETED.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    STATUS_PENDING = "PENDING"
    STATUS_PAID = "PAID"
    STATUS_CANCELLED = "CANCELLED"

    STATUSES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PAID, "Paid"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    PAYMENT_PENDING = "PENDING"
    PAYMENT_PARTIAL = "PARTIAL"
    PAYMENT_COMPLETED = "COMPLETED"

    PAYMENT_STATUSES = [
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_PARTIAL, "Partially paid"),
        (PAYMENT_COMPLETED, "Completed"),
    ]

    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        related_name="invoices",
    )

    invoice_number = models.CharField(max_length=64)
    invoice_type = models.CharField(max_length=1, default="A")
    invoice_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_PENDING)
    payment_status = models.CharField(
        max_length=20, choices=PAYMENT_STATUSES, default=PAYMENT_PENDING
    )

    subtotal_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    tax_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    perceptions_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    total_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    balance = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    journal_entry = models.OneToOneField(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="purchase_invoice",
    )

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchase_invoices_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-invoice_date", "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["supplier", "invoice_number"],
                name="uniq_supplier_invoice_number",
            ),
            models.CheckConstraint(
                condition=models.Q(subtotal_amount__gte=Decimal("0.00")),
                name="purchase_invoice_subtotal_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=Decimal("0.00")),
                name="purchase_invoice_total_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(balance__gte=Decimal("0.00")),
                name="purchase_invoice_balance_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["supplier", "invoice_number"]),
            models.Index(fields=["status", "created_at"]),
        ]

    def clean(self):
        if not (self.invoice_number or "").strip():
            raise ValidationError({"invoice_number": "invoice_number is required"})

        expected = _money(self.subtotal_amount) + _money(self.tax_amount) + _money(self.perceptions_amount)
        if _money(self.total_amount) != expected:
            raise ValidationError(
                {"total_amount": "total_amount must equal subtotal + tax + perceptions"}
            )

        if self.balance is not None and self.balance > self.total_amount:
            raise ValidationError({"balance": "balance cannot exceed total_amount"})

    def save(self, *args, **kwargs):
        if self.invoice_number is not None:
            self.invoice_number = self.invoice_number.strip()

        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.invoice_number} ({self.supplier.name})"


class PurchaseInvoiceItem(models.Model):
    """
    Supplier invoice line. Its unit_cost becomes the PURCHASE movement's
    unit cost and so the product's next acquisition cost.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice = models.ForeignKey(
        PurchaseInvoice,
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="purchase_invoice_items",
    )

    quantity = models.PositiveIntegerField()
    unit_cost = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="purchase_invoice_item_quantity_gt_zero",
            ),
            models.CheckConstraint(
                condition=models.Q(unit_cost__gte=Decimal("0.00")),
                name="purchase_invoice_item_unit_cost_nonnegative",
            ),
        ]

    def clean(self):
        if self.unit_cost is not None and self.unit_cost < Decimal("0.00"):
            raise ValidationError({"unit_cost": "unit_cost cannot be negative"})

    @property
    def line_total(self) -> Decimal:
        return _money(Decimal(str(self.quantity)) * Decimal(str(self.unit_cost)))

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} x {self.quantity}"


class SupplierPayment(models.Model):
    """
    Supplier payment settling Accounts Payable.

    - Optional link to invoice (can pay a specific invoice)
    - Immutable; its journal entry is attached in the same transaction
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        related_name="payments",
    )
    invoice = models.ForeignKey(
        PurchaseInvoice,
        on_delete=models.PROTECT,
        related_name="payments",
        null=True,
        blank=True,
        help_text="Optional: payment for a specific invoice",
    )

    payment_date = models.DateField(default=timezone.localdate)
    amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    METHOD_CASH = "CASH"
    METHOD_TRANSFER = "TRANSFER"
    METHOD_DEBIT = "DEBIT"
    METHOD_CHECK = "CHECK"
    METHOD_CARD = "CARD"

    METHODS = [
        (METHOD_CASH, "Cash"),
        (METHOD_TRANSFER, "Bank transfer"),
        (METHOD_DEBIT, "Debit card"),
        (METHOD_CHECK, "Check"),
        (METHOD_CARD, "Credit card"),
    ]

    payment_method = models.CharField(max_length=20, choices=METHODS, default=METHOD_CASH)
    reference = models.CharField(max_length=100, blank=True, default="")
    narration = models.CharField(max_length=255, blank=True, default="")

    journal_entry = models.OneToOneField(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="supplier_payment",
    )

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="supplier_payments_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=Decimal("0.00")),
                name="supplier_payment_amount_gt_zero",
            ),
        ]
        indexes = [
            models.Index(fields=["supplier", "created_at"]),
            models.Index(fields=["invoice", "created_at"]),
        ]

    def clean(self):
        if self.amount is not None and self.amount <= Decimal("0.00"):
            raise ValidationError({"amount": "amount must be > 0"})

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Supplier payments are immutable")
        if self.narration is not None:
            self.narration = self.narration.strip()
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        inv = f" ({self.invoice.invoice_number})" if self.invoice else ""
        return f"{self.supplier.name}{inv} - {self.amount}"
