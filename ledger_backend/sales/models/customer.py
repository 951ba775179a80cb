# sales/models/customer.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class Customer(models.Model):
    """
    Invoiced counterparty.

    balance is what the customer owes us. It only moves through the
    invoice orchestrator (up) and the receipt service (down), both with
    guarded F() updates.
    """

    name = models.CharField(max_length=255)
    tax_id = models.CharField(max_length=32, blank=True, default="")
    email = models.EmailField(blank=True, default="")

    balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    def clean(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError("Customer name is required")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
