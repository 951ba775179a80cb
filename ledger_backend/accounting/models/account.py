# accounting/models/account.py

"""
ACCOUNT MODEL (HIERARCHICAL CHART)

Guarantees:
- Codes are dot-segmented digits ("1.1.03.001") and unique
- level == number of code segments (root = 1)
- parent is the account whose code is this code minus its last segment
- a child's account_type always matches its parent's
- only postable (leaf) accounts may appear in journal lines
- never deleted; deactivate() instead
- debit_balance / credit_balance only move through posted lines
  (accounting.services.account_registry.apply_posting)
"""

from __future__ import annotations

import re
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

ACCOUNT_CODE_RE = re.compile(r"^\d+(\.\d+)*$")


def code_level(code: str) -> int:
    return len(code.split("."))


def parent_code_of(code: str) -> str | None:
    parts = code.split(".")
    if len(parts) <= 1:
        return None
    return ".".join(parts[:-1])


class Account(models.Model):
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"

    ACCOUNT_TYPES = [
        (ASSET, "Asset"),
        (LIABILITY, "Liability"),
        (EQUITY, "Equity"),
        (INCOME, "Income"),
        (EXPENSE, "Expense"),
    ]

    DEBIT_NATURE_TYPES = (ASSET, EXPENSE)

    code = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=150)

    account_type = models.CharField(max_length=20, choices=ACCOUNT_TYPES)

    parent = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="children",
    )

    level = models.PositiveSmallIntegerField(default=1, editable=False)

    is_postable = models.BooleanField(
        default=True,
        help_text="Leaf account that may appear directly in journal lines",
    )
    is_active = models.BooleanField(default=True)

    debit_balance = models.DecimalField(
        max_digits=16, decimal_places=2, default=Decimal("0.00")
    )
    credit_balance = models.DecimalField(
        max_digits=16, decimal_places=2, default=Decimal("0.00")
    )

    description = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        verbose_name = "Account"
        verbose_name_plural = "Accounts"
        indexes = [
            models.Index(fields=["account_type"]),
            models.Index(fields=["is_active", "is_postable"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_account_code_not_blank",
            ),
            models.CheckConstraint(
                condition=Q(debit_balance__gte=0) & Q(credit_balance__gte=0),
                name="chk_account_running_sums_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    @property
    def balance(self) -> Decimal:
        """Signed balance in the account's natural direction."""
        if self.account_type in self.DEBIT_NATURE_TYPES:
            return self.debit_balance - self.credit_balance
        return self.credit_balance - self.debit_balance

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip()

        if not self.code:
            raise ValidationError("Account code is required")
        if not ACCOUNT_CODE_RE.match(self.code):
            raise ValidationError(
                {"code": f"Invalid account code {self.code!r}: use digits separated by dots"}
            )
        if not self.name:
            raise ValidationError("Account name is required")

        self.level = code_level(self.code)
        expected_parent = parent_code_of(self.code)

        if expected_parent is None:
            if self.parent_id is not None:
                raise ValidationError("Root accounts cannot have a parent")
            return

        if self.parent is None:
            raise ValidationError(
                {"parent": f"Account {self.code} requires parent {expected_parent}"}
            )
        if self.parent.code != expected_parent:
            raise ValidationError(
                {"parent": f"Parent of {self.code} must be {expected_parent}, got {self.parent.code}"}
            )
        if self.parent.account_type != self.account_type:
            raise ValidationError(
                {
                    "account_type": (
                        f"Account type {self.account_type} does not match "
                        f"parent {self.parent.code} ({self.parent.account_type})"
                    )
                }
            )
        if self.parent.is_postable:
            raise ValidationError(
                {"parent": f"Parent {self.parent.code} is a posting account and cannot have children"}
            )

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Accounts are never deleted; deactivate them instead")

    def deactivate(self) -> None:
        if not self.is_active:
            return
        self.is_active = False
        self.save(update_fields=["is_active", "updated_at"])
