# products/models/stock_movement.py

"""
CANONICAL INVENTORY LEDGER

Immutable record of one signed change to a product's on-hand quantity.

GUARANTEES:
- Append-only (no updates, no deletes)
- quantity is signed: positive = inbound, negative = outbound, never zero
- direction must agree with movement_type (TRANSFER may go either way)
- stock_after == stock_before + quantity
- stock_after >= 0 unless the product allows negative stock
- total_cost == |quantity| * unit_cost
- journal_entry can be linked exactly once, after the fact
  (products.services.stock_ledger.link_to_entry)
"""

import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from .product import Product


class StockMovement(models.Model):
    class MovementType(models.TextChoices):
        PURCHASE = "PURCHASE", "Purchase"
        SALE = "SALE", "Sale"
        ADJUSTMENT_POSITIVE = "ADJUSTMENT_POSITIVE", "Positive adjustment"
        ADJUSTMENT_NEGATIVE = "ADJUSTMENT_NEGATIVE", "Negative adjustment"
        CUSTOMER_RETURN = "CUSTOMER_RETURN", "Customer return"
        SUPPLIER_RETURN = "SUPPLIER_RETURN", "Supplier return"
        TRANSFER = "TRANSFER", "Transfer"

    INBOUND = "IN"
    OUTBOUND = "OUT"

    TYPE_DIRECTION = {
        MovementType.PURCHASE: INBOUND,
        MovementType.ADJUSTMENT_POSITIVE: INBOUND,
        MovementType.CUSTOMER_RETURN: INBOUND,
        MovementType.SALE: OUTBOUND,
        MovementType.ADJUSTMENT_NEGATIVE: OUTBOUND,
        MovementType.SUPPLIER_RETURN: OUTBOUND,
        MovementType.TRANSFER: None,
    }

    # Inbound types whose unit cost counts as an acquisition cost
    ACQUISITION_TYPES = (MovementType.PURCHASE, MovementType.ADJUSTMENT_POSITIVE)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="stock_movements"
    )

    movement_type = models.CharField(max_length=24, choices=MovementType.choices)

    quantity = models.IntegerField(help_text="Signed: positive inbound, negative outbound")

    unit_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_cost = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal("0.00"))

    stock_before = models.IntegerField()
    stock_after = models.IntegerField()

    reference = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    invoice = models.ForeignKey(
        "sales.Invoice",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    journal_entry = models.ForeignKey(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["product", "created_at"]),
            models.Index(fields=["movement_type"]),
            models.Index(fields=["invoice"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(quantity=0),
                name="chk_movement_quantity_non_zero",
            ),
            models.CheckConstraint(
                condition=Q(stock_after=F("stock_before") + F("quantity")),
                name="chk_movement_stock_arithmetic",
            ),
        ]

    def __str__(self):
        return f"{self.movement_type} {self.quantity:+d} {self.product_id}"

    def clean(self):
        if self.quantity is None or self.quantity == 0:
            raise ValidationError("quantity must be a non-zero integer")

        direction = self.TYPE_DIRECTION.get(self.movement_type)
        if direction == self.INBOUND and self.quantity < 0:
            raise ValidationError(f"{self.movement_type} requires a positive quantity")
        if direction == self.OUTBOUND and self.quantity > 0:
            raise ValidationError(f"{self.movement_type} requires a negative quantity")

        if self.stock_after != self.stock_before + self.quantity:
            raise ValidationError("stock_after must equal stock_before + quantity")

        if self.stock_after < 0 and not self.product.allow_negative_stock:
            raise ValidationError(
                f"Movement would leave {self.product.name} with negative stock ({self.stock_after})"
            )

        if self.unit_cost is None or self.unit_cost < 0:
            raise ValidationError("unit_cost cannot be negative")

        self.total_cost = (Decimal(abs(self.quantity)) * Decimal(self.unit_cost)).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )

        if self.movement_type == self.MovementType.SALE and not self.invoice_id:
            raise ValidationError("SALE movements must reference an invoice")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockMovement records are immutable")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("StockMovement records cannot be deleted")
