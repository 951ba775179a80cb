# accounting/models/template.py

"""
JOURNAL ENTRY TEMPLATES

A template is a reusable, activatable recipe keyed by a trigger type.
Its ordered TemplateLines each name a target account, a side and an
amount rule; the template engine turns (template, source document) into a
balanced journal entry.

Templates are versioned by deactivation: editing the lines of an active
template only affects postings made after the edit.
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models

from accounting.models.account import Account


class TriggerType(models.TextChoices):
    SALE_INVOICE = "SALE_INVOICE", "Sale invoice"
    PURCHASE_INVOICE = "PURCHASE_INVOICE", "Purchase invoice"
    CUSTOMER_PAYMENT = "CUSTOMER_PAYMENT", "Customer payment"
    SUPPLIER_PAYMENT = "SUPPLIER_PAYMENT", "Supplier payment"
    EXPENSE = "EXPENSE", "Expense"
    SALARY_PAYMENT = "SALARY_PAYMENT", "Salary payment"
    LOAN_DISBURSEMENT = "LOAN_DISBURSEMENT", "Loan disbursement"
    LOAN_PAYMENT = "LOAN_PAYMENT", "Loan payment"
    STOCK_ADJUSTMENT = "STOCK_ADJUSTMENT", "Stock adjustment"


class JournalEntryTemplate(models.Model):
    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=150)
    trigger_type = models.CharField(max_length=30, choices=TriggerType.choices)
    description = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        indexes = [models.Index(fields=["trigger_type", "is_active"])]

    def __str__(self):
        return f"{self.code} ({self.trigger_type})"

    def clean(self):
        self.code = (self.code or "").strip().upper()
        self.name = (self.name or "").strip()
        if not self.code:
            raise ValidationError("Template code is required")
        if not self.name:
            raise ValidationError("Template name is required")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class TemplateLine(models.Model):
    class Side(models.TextChoices):
        DEBIT = "DEBIT", "Debit"
        CREDIT = "CREDIT", "Credit"

    class AmountType(models.TextChoices):
        TOTAL = "TOTAL", "Document total"
        SUBTOTAL = "SUBTOTAL", "Subtotal (net of tax)"
        TAX = "TAX", "Total tax"
        TAX_AT_RATE_A = "TAX_AT_RATE_A", "Tax at standard rate"
        TAX_AT_RATE_B = "TAX_AT_RATE_B", "Tax at reduced rate"
        PERCEPTION_SUM = "PERCEPTION_SUM", "Sum of perceptions"
        RETENTION = "RETENTION", "Retention"
        NET_PAYMENT = "NET_PAYMENT", "Net payment"
        PRINCIPAL = "PRINCIPAL", "Loan principal"
        INTEREST = "INTEREST", "Loan interest"
        FIXED = "FIXED", "Fixed amount"
        PERCENTAGE = "PERCENTAGE", "Percentage of total"
        CUSTOM = "CUSTOM", "Named custom figure"

    template = models.ForeignKey(
        JournalEntryTemplate,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    line_number = models.PositiveSmallIntegerField()

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="template_lines",
    )
    side = models.CharField(max_length=6, choices=Side.choices)
    amount_type = models.CharField(max_length=20, choices=AmountType.choices)

    fixed_amount = models.DecimalField(
        max_digits=14, decimal_places=2, null=True, blank=True
    )
    percentage = models.DecimalField(
        max_digits=7, decimal_places=4, null=True, blank=True
    )
    custom_field = models.CharField(max_length=50, blank=True, default="")

    description = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["template_id", "line_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["template", "line_number"],
                name="uniq_template_line_number",
            ),
        ]

    def __str__(self):
        return f"{self.template.code}#{self.line_number} {self.side} {self.amount_type}"

    @property
    def amount_rule(self):
        # Lazy import: models must not import services at module import time.
        from accounting.services.amount_rules import rule_from_line

        return rule_from_line(self)
