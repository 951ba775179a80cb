# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


class Product(models.Model):
    """
    Represents a stocked, sellable product.

    STOCK MODEL (IMPORTANT):
    - stock_quantity is the on-hand integer quantity
    - it is service-managed only: products.services.stock_ledger moves it with
      guarded updates and writes one immutable StockMovement per change
    - stock_quantity >= 0 unless allow_negative_stock is set
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sku = models.CharField(max_length=128, unique=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)

    stock_quantity = models.IntegerField(default=0)
    min_stock = models.PositiveIntegerField(default=0)
    allow_negative_stock = models.BooleanField(default=False)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["sku"]),
            models.Index(fields=["name"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(allow_negative_stock=True) | Q(stock_quantity__gte=0),
                name="chk_product_stock_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def clean(self):
        self.sku = (self.sku or "").strip()
        self.name = (self.name or "").strip()
        if not self.sku:
            raise ValidationError("SKU is required")
        if not self.name:
            raise ValidationError("Product name is required")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= int(self.min_stock or 0)

    def current_price(self, price_type: str, *, at=None):
        """Currently valid price record of the given type, or None."""
        at = at or timezone.now()
        return (
            self.prices.filter(price_type=price_type, valid_from__lte=at)
            .filter(Q(valid_until__isnull=True) | Q(valid_until__gte=at))
            .order_by("-valid_from")
            .first()
        )


class ProductPrice(models.Model):
    """
    Dated price record. COST prices are the Cost Resolver's fallback when a
    product has no acquisition movement yet.
    """

    class PriceType(models.TextChoices):
        COST = "COST", "Cost"
        SALE = "SALE", "Sale"

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="prices")
    price_type = models.CharField(max_length=8, choices=PriceType.choices)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    currency = models.CharField(max_length=3, default="ARS")

    valid_from = models.DateTimeField(default=timezone.now)
    valid_until = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["product_id", "price_type", "-valid_from"]
        indexes = [models.Index(fields=["product", "price_type", "valid_from"])]

    def __str__(self):
        return f"{self.product.sku} {self.price_type} {self.amount}"

    def clean(self):
        if self.amount is None or Decimal(self.amount) < 0:
            raise ValidationError("Price amount cannot be negative")
        if self.valid_until and self.valid_from and self.valid_until < self.valid_from:
            raise ValidationError("valid_until cannot be before valid_from")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
