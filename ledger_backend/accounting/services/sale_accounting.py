# accounting/services/sale_accounting.py

"""
SALE INVOICE POSTING (TEMPLATE-DRIVEN)

Maps an invoice onto a SourceDocument and applies the template for its
document sub-type:

- A (tax-discriminating)             -> SALE_INVOICE_A
- B, C, E (tax not discriminated)    -> SALE_INVOICE_B
"""

from __future__ import annotations

import logging
from decimal import Decimal

from accounting.models.template import TriggerType
from accounting.services.amount_rules import Origin, SourceDocument
from accounting.services.exceptions import TemplateConfigurationError
from accounting.services.journal_entry_service import AppliedEntry
from accounting.services.template_engine import apply_template, validate_template
from accounting.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

SALE_TEMPLATE_BY_INVOICE_TYPE = {
    "A": "SALE_INVOICE_A",
    "B": "SALE_INVOICE_B",
    "C": "SALE_INVOICE_B",
    "E": "SALE_INVOICE_B",
}


def template_code_for_invoice_type(invoice_type: str) -> str:
    code = SALE_TEMPLATE_BY_INVOICE_TYPE.get((invoice_type or "").strip().upper())
    if code is None:
        raise TemplateConfigurationError(f"No sale template for invoice type {invoice_type!r}")
    return code


def source_document_for_invoice(invoice) -> SourceDocument:
    customer_name = getattr(invoice.customer, "name", "") if invoice.customer_id else ""
    tax = invoice.tax_amount or Decimal("0.00")
    return SourceDocument(
        id=invoice.number,
        trigger_type=TriggerType.SALE_INVOICE,
        date=invoice.issue_date,
        description=f"Invoice {invoice.invoice_type} {invoice.number} - {customer_name}".strip(" -"),
        total=invoice.total,
        subtotal=invoice.subtotal,
        tax=tax,
        tax_rate_a=invoice.tax_rate_a_amount or Decimal("0.00"),
        tax_rate_b=invoice.tax_rate_b_amount or Decimal("0.00"),
        currency=invoice.currency,
        origin=Origin(kind="INVOICE", id=str(invoice.pk)),
    )


def post_sale_invoice(invoice, *, user=None, uow: UnitOfWork | None = None) -> AppliedEntry:
    template_code = template_code_for_invoice_type(invoice.invoice_type)
    applied = apply_template(
        template_code,
        source_document_for_invoice(invoice),
        user=user,
        auto_post=True,
        validate_balance=True,
        uow=uow,
    )
    logger.info(
        "Sale invoice posted",
        extra={
            "invoice": invoice.number,
            "template_code": template_code,
            "entry_number": applied.entry.entry_number,
        },
    )
    return applied


def validate_sale_templates() -> dict:
    """Validation result per distinct sale template code."""
    return {
        code: validate_template(code)
        for code in sorted(set(SALE_TEMPLATE_BY_INVOICE_TYPE.values()))
    }
