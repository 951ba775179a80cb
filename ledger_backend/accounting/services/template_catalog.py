# accounting/services/template_catalog.py

"""
DEFAULT JOURNAL TEMPLATES

Template set for the default chart (chart_provisioning.DEFAULT_CHART).
provision_templates() is idempotent: existing codes are left alone, new
ones are created and validated.
"""

from __future__ import annotations

import logging

from accounting.models.template import JournalEntryTemplate, TriggerType
from accounting.services.template_engine import create_template, validate_template
from accounting.services.unit_of_work import UnitOfWork, unit_of_work

logger = logging.getLogger(__name__)


def _line(account_code: str, side: str, amount_type: str, description: str = "", **extra) -> dict:
    return {
        "account_code": account_code,
        "side": side,
        "amount_type": amount_type,
        "description": description,
        **extra,
    }


DEFAULT_TEMPLATES: list[dict] = [
    {
        "code": "SALE_INVOICE_A",
        "name": "Sale invoice A (tax discriminated)",
        "trigger_type": TriggerType.SALE_INVOICE,
        "lines": [
            _line("1.1.03.001", "DEBIT", "TOTAL", "Accounts receivable"),
            _line("4.1.01", "CREDIT", "SUBTOTAL", "Sales"),
            _line("2.1.02.001", "CREDIT", "TAX", "VAT payable"),
        ],
    },
    {
        "code": "SALE_INVOICE_B",
        "name": "Sale invoice B/C/E (tax included)",
        "trigger_type": TriggerType.SALE_INVOICE,
        "lines": [
            _line("1.1.03.001", "DEBIT", "TOTAL", "Accounts receivable"),
            _line("4.1.01", "CREDIT", "TOTAL", "Sales"),
        ],
    },
    {
        "code": "PURCHASE_INVOICE_A",
        "name": "Purchase invoice A",
        "trigger_type": TriggerType.PURCHASE_INVOICE,
        "lines": [
            _line("1.1.05.001", "DEBIT", "SUBTOTAL", "Merchandise"),
            _line("1.1.04.001", "DEBIT", "TAX", "VAT credit"),
            _line("1.1.04.002", "DEBIT", "PERCEPTION_SUM", "Perceptions"),
            _line("2.1.01.001", "CREDIT", "TOTAL", "Accounts payable"),
        ],
    },
    {
        "code": "CUSTOMER_PAYMENT_CASH",
        "name": "Customer payment in cash",
        "trigger_type": TriggerType.CUSTOMER_PAYMENT,
        "lines": [
            _line("1.1.01.001", "DEBIT", "TOTAL", "Cash"),
            _line("1.1.03.001", "CREDIT", "TOTAL", "Accounts receivable"),
        ],
    },
    {
        "code": "CUSTOMER_PAYMENT_TRANSFER",
        "name": "Customer payment by transfer",
        "trigger_type": TriggerType.CUSTOMER_PAYMENT,
        "lines": [
            _line("1.1.01.003", "DEBIT", "TOTAL", "Bank"),
            _line("1.1.03.001", "CREDIT", "TOTAL", "Accounts receivable"),
        ],
    },
    {
        "code": "SUPPLIER_PAYMENT_CASH",
        "name": "Supplier payment in cash",
        "trigger_type": TriggerType.SUPPLIER_PAYMENT,
        "lines": [
            _line("2.1.01.001", "DEBIT", "TOTAL", "Accounts payable"),
            _line("1.1.01.001", "CREDIT", "TOTAL", "Cash"),
        ],
    },
    {
        "code": "SUPPLIER_PAYMENT_TRANSFER",
        "name": "Supplier payment by transfer",
        "trigger_type": TriggerType.SUPPLIER_PAYMENT,
        "lines": [
            _line("2.1.01.001", "DEBIT", "TOTAL", "Accounts payable"),
            _line("1.1.01.003", "CREDIT", "TOTAL", "Bank"),
        ],
    },
    {
        "code": "SALARY_PAYMENT",
        "name": "Salary payment",
        "trigger_type": TriggerType.SALARY_PAYMENT,
        "lines": [
            _line("5.2.01", "DEBIT", "TOTAL", "Gross salaries"),
            _line("2.1.02.003", "CREDIT", "RETENTION", "Withholdings to deposit"),
            _line("1.1.01.003", "CREDIT", "NET_PAYMENT", "Net paid"),
        ],
    },
    {
        "code": "LOAN_DISBURSEMENT",
        "name": "Loan disbursement",
        "trigger_type": TriggerType.LOAN_DISBURSEMENT,
        "lines": [
            _line("1.1.01.003", "DEBIT", "TOTAL", "Bank"),
            _line("2.1.04.001", "CREDIT", "TOTAL", "Bank loans"),
        ],
    },
    {
        "code": "LOAN_PAYMENT",
        "name": "Loan installment payment",
        "trigger_type": TriggerType.LOAN_PAYMENT,
        "lines": [
            _line("2.1.04.001", "DEBIT", "PRINCIPAL", "Principal"),
            _line("5.4.01", "DEBIT", "INTEREST", "Interest"),
            _line("1.1.01.003", "CREDIT", "TOTAL", "Bank"),
        ],
    },
    {
        "code": "EXPENSE_BANK_CHARGES",
        "name": "Bank charges",
        "trigger_type": TriggerType.EXPENSE,
        "lines": [
            _line("5.4.02", "DEBIT", "TOTAL", "Bank charges"),
            _line("1.1.01.003", "CREDIT", "TOTAL", "Bank"),
        ],
    },
]


def provision_templates(
    definitions: list[dict] | None = None, *, uow: UnitOfWork | None = None
) -> dict:
    definitions = DEFAULT_TEMPLATES if definitions is None else definitions
    created: list[str] = []
    existing: list[str] = []

    with unit_of_work(uow, label="provision_templates") as active:
        for definition in definitions:
            if JournalEntryTemplate.objects.filter(code=definition["code"]).exists():
                existing.append(definition["code"])
                continue
            create_template(
                code=definition["code"],
                name=definition["name"],
                trigger_type=definition["trigger_type"],
                lines=definition["lines"],
                description=definition.get("description", ""),
                uow=active,
            )
            created.append(definition["code"])

    invalid = {}
    for code in created:
        result = validate_template(code)
        if not result.valid:
            invalid[code] = result.errors
    if invalid:
        logger.error("Provisioned templates failed validation", extra={"invalid": invalid})

    return {"created": created, "existing": existing, "invalid": invalid}
