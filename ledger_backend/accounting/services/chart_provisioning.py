# accounting/services/chart_provisioning.py

"""
CHART OF ACCOUNTS PROVISIONING

Bulk, hierarchy-respecting loader. Rows are created in strict level order
(parents before children) because each account's parent is resolved by
looking up the already-created account whose code is the child's code minus
its last segment.

Idempotent: codes that already exist are left untouched.
"""

from __future__ import annotations

import logging
from typing import Iterable, NamedTuple

from accounting.models.account import Account, code_level, parent_code_of
from accounting.services.exceptions import AccountResolutionError
from accounting.services.unit_of_work import UnitOfWork, unit_of_work

logger = logging.getLogger(__name__)


class ChartRow(NamedTuple):
    code: str
    name: str
    account_type: str
    is_postable: bool


A, L, E, I, X = (
    Account.ASSET,
    Account.LIABILITY,
    Account.EQUITY,
    Account.INCOME,
    Account.EXPENSE,
)

# Grouping levels 1-3 are non-postable; leaves post.
DEFAULT_CHART: list[ChartRow] = [
    ChartRow("1", "Assets", A, False),
    ChartRow("1.1", "Current Assets", A, False),
    ChartRow("1.1.01", "Cash and Banks", A, False),
    ChartRow("1.1.01.001", "Cash", A, True),
    ChartRow("1.1.01.002", "Petty Cash", A, True),
    ChartRow("1.1.01.003", "Bank Current Account", A, True),
    ChartRow("1.1.01.005", "Checks in Hand", A, True),
    ChartRow("1.1.03", "Trade Receivables", A, False),
    ChartRow("1.1.03.001", "Accounts Receivable", A, True),
    ChartRow("1.1.03.003", "Card Settlements Receivable", A, True),
    ChartRow("1.1.04", "Tax Credits", A, False),
    ChartRow("1.1.04.001", "VAT Credit", A, True),
    ChartRow("1.1.04.002", "Perceptions Receivable", A, True),
    ChartRow("1.1.05", "Inventories", A, False),
    ChartRow("1.1.05.001", "Merchandise Inventory", A, True),
    ChartRow("1.2", "Non-current Assets", A, False),
    ChartRow("1.2.01", "Property and Equipment", A, False),
    ChartRow("1.2.01.001", "Furniture and Equipment", A, True),
    ChartRow("2", "Liabilities", L, False),
    ChartRow("2.1", "Current Liabilities", L, False),
    ChartRow("2.1.01", "Trade Payables", L, False),
    ChartRow("2.1.01.001", "Accounts Payable", L, True),
    ChartRow("2.1.02", "Taxes Payable", L, False),
    ChartRow("2.1.02.001", "VAT Payable", L, True),
    ChartRow("2.1.02.003", "Withholdings Payable", L, True),
    ChartRow("2.1.03", "Payroll Liabilities", L, False),
    ChartRow("2.1.03.001", "Salaries Payable", L, True),
    ChartRow("2.1.04", "Financial Debt", L, False),
    ChartRow("2.1.04.001", "Bank Loans", L, True),
    ChartRow("3", "Equity", E, False),
    ChartRow("3.1", "Capital", E, False),
    ChartRow("3.1.01", "Paid-in Capital", E, True),
    ChartRow("3.2", "Retained Earnings", E, False),
    ChartRow("3.2.01", "Retained Earnings", E, True),
    ChartRow("4", "Income", I, False),
    ChartRow("4.1", "Operating Income", I, False),
    ChartRow("4.1.01", "Sales", I, True),
    ChartRow("4.1.02", "Services", I, True),
    ChartRow("4.2", "Other Income", I, False),
    ChartRow("4.2.01", "Interest Earned", I, True),
    ChartRow("5", "Expenses", X, False),
    ChartRow("5.1", "Cost of Sales", X, False),
    ChartRow("5.1.01", "Cost of Goods Sold", X, True),
    ChartRow("5.2", "Payroll Expenses", X, False),
    ChartRow("5.2.01", "Salaries and Wages", X, True),
    ChartRow("5.3", "Administrative Expenses", X, False),
    ChartRow("5.3.01", "Rent", X, True),
    ChartRow("5.3.02", "Utilities", X, True),
    ChartRow("5.4", "Financial Expenses", X, False),
    ChartRow("5.4.01", "Interest Expense", X, True),
    ChartRow("5.4.02", "Bank Charges", X, True),
]


def provision_chart(rows: Iterable[ChartRow], *, uow: UnitOfWork | None = None) -> dict:
    """
    Create the given accounts, parents first.

    Returns {"created": n, "existing": m}.
    """
    ordered = sorted(rows, key=lambda r: (code_level(r.code), r.code))
    created = 0
    existing = 0

    with unit_of_work(uow, label="provision_chart"):
        by_code = {a.code: a for a in Account.objects.filter(code__in=[r.code for r in ordered])}

        for row in ordered:
            if row.code in by_code:
                existing += 1
                continue

            parent = None
            parent_code = parent_code_of(row.code)
            if parent_code is not None:
                parent = by_code.get(parent_code)
                if parent is None:
                    parent = Account.objects.filter(code=parent_code).first()
                if parent is None:
                    raise AccountResolutionError(
                        f"Parent account {parent_code} of {row.code} does not exist"
                    )
                by_code[parent_code] = parent

            by_code[row.code] = Account.objects.create(
                code=row.code,
                name=row.name,
                account_type=row.account_type,
                is_postable=row.is_postable,
                parent=parent,
            )
            created += 1

    logger.info(
        "Chart of accounts provisioned",
        extra={"accounts_created": created, "accounts_existing": existing},
    )
    return {"created": created, "existing": existing}
