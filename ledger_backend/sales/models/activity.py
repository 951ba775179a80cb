# sales/models/activity.py

from django.conf import settings
from django.db import models


class Activity(models.Model):
    """
    Business activity log (audit trail for documents, not for journal lines).
    """

    class Type(models.TextChoices):
        INVOICE_CREATED = "INVOICE_CREATED", "Invoice created"
        RECEIPT_REGISTERED = "RECEIPT_REGISTERED", "Customer receipt registered"

    activity_type = models.CharField(max_length=32, choices=Type.choices)
    description = models.CharField(max_length=255)

    invoice = models.ForeignKey(
        "sales.Invoice",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="activities",
    )
    metadata = models.JSONField(default=dict, blank=True)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="activities",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "activities"

    def __str__(self):
        return f"{self.activity_type}: {self.description}"
