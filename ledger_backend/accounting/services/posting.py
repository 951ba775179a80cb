# accounting/services/posting.py

"""
======================================================
PATH: accounting/services/posting.py
======================================================
DIRECT TWO-LINE POSTINGS

Events whose accounting is always exactly two lines skip the template
engine and post here: debit one account, credit the other, same amount.

- Cost of goods sold for an invoice:   Dr COGS         / Cr Inventory
- Supplier payment:                    Dr Payables     / Cr settlement account
- Customer receipt:                    Dr settlement   / Cr Receivables

The settlement account comes from the payment method
(account_registry.settlement_account_for_method).

All functions run inside the caller's unit of work when one is given.
"""

from __future__ import annotations

from datetime import date as date_type
from decimal import ROUND_HALF_UP, Decimal

from accounting.models.account import Account
from accounting.models.template import TriggerType
from accounting.services import account_registry
from accounting.services.amount_rules import NO_ORIGIN, Origin
from accounting.services.exceptions import JournalEntryCreationError
from accounting.services.journal_entry_service import AppliedEntry, create_journal_entry
from accounting.services.unit_of_work import UnitOfWork

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def _money(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def post_two_line(
    *,
    debit_account: Account,
    credit_account: Account,
    amount,
    description: str,
    date: date_type | None = None,
    user=None,
    reference: str = "",
    trigger_type: str = "",
    origin: Origin = NO_ORIGIN,
    uow: UnitOfWork | None = None,
) -> AppliedEntry:
    amt = _money(amount)
    if amt <= ZERO:
        raise JournalEntryCreationError("Posting amount must be > 0")

    postings = [
        {"account": debit_account, "debit": amt, "credit": ZERO, "description": description},
        {"account": credit_account, "debit": ZERO, "credit": amt, "description": description},
    ]

    return create_journal_entry(
        description=description,
        postings=postings,
        date=date,
        user=user,
        reference=reference,
        trigger_type=trigger_type,
        origin=origin,
        uow=uow,
    )


# ============================================================
# COST OF GOODS SOLD
# ============================================================


def post_cogs_for_invoice(
    *,
    invoice_id,
    invoice_number: str,
    amount,
    date: date_type | None = None,
    user=None,
    uow: UnitOfWork | None = None,
) -> AppliedEntry:
    return post_two_line(
        debit_account=account_registry.resolve_semantic(account_registry.COGS),
        credit_account=account_registry.resolve_semantic(account_registry.INVENTORY),
        amount=amount,
        description=f"Cost of goods sold - Invoice {invoice_number}",
        date=date,
        user=user,
        reference=invoice_number,
        trigger_type=TriggerType.SALE_INVOICE,
        origin=Origin(kind="INVOICE", id=str(invoice_id)),
        uow=uow,
    )


# ============================================================
# SUPPLIER PAYMENTS (SETTLE ACCOUNTS PAYABLE)
# ============================================================


def post_supplier_payment(
    *,
    payment_id,
    method: str,
    amount,
    supplier_name: str = "",
    invoice_number: str = "",
    date: date_type | None = None,
    user=None,
    reference: str = "",
    uow: UnitOfWork | None = None,
) -> AppliedEntry:
    suffix = f" - {supplier_name}" if supplier_name else ""
    if invoice_number:
        suffix += f" ({invoice_number})"

    return post_two_line(
        debit_account=account_registry.resolve_semantic(account_registry.ACCOUNTS_PAYABLE),
        credit_account=account_registry.settlement_account_for_method(method),
        amount=amount,
        description=f"Supplier payment{suffix}",
        date=date,
        user=user,
        reference=reference or invoice_number,
        trigger_type=TriggerType.SUPPLIER_PAYMENT,
        origin=Origin(kind="PAYMENT", id=str(payment_id)),
        uow=uow,
    )


# ============================================================
# CUSTOMER RECEIPTS (SETTLE ACCOUNTS RECEIVABLE)
# ============================================================


def post_customer_receipt(
    *,
    receipt_id,
    method: str,
    amount,
    customer_name: str = "",
    invoice_number: str = "",
    date: date_type | None = None,
    user=None,
    reference: str = "",
    uow: UnitOfWork | None = None,
) -> AppliedEntry:
    suffix = f" - {customer_name}" if customer_name else ""
    if invoice_number:
        suffix += f" ({invoice_number})"

    return post_two_line(
        debit_account=account_registry.settlement_account_for_method(method),
        credit_account=account_registry.resolve_semantic(account_registry.ACCOUNTS_RECEIVABLE),
        amount=amount,
        description=f"Customer receipt{suffix}",
        date=date,
        user=user,
        reference=reference or invoice_number,
        trigger_type=TriggerType.CUSTOMER_PAYMENT,
        origin=Origin(kind="RECEIPT", id=str(receipt_id)),
        uow=uow,
    )


# ============================================================
# STOCK ADJUSTMENTS (COUNT DIFFERENCES)
# ============================================================


def post_stock_adjustment(
    *,
    movement_id,
    product_name: str,
    amount,
    increases_stock: bool,
    date: date_type | None = None,
    user=None,
    reference: str = "",
    uow: UnitOfWork | None = None,
) -> AppliedEntry:
    """
    Count differences are valued at cost and booked against COGS:
    surplus Dr Inventory / Cr COGS, shrinkage Dr COGS / Cr Inventory.
    """
    inventory = account_registry.resolve_semantic(account_registry.INVENTORY)
    cogs = account_registry.resolve_semantic(account_registry.COGS)

    return post_two_line(
        debit_account=inventory if increases_stock else cogs,
        credit_account=cogs if increases_stock else inventory,
        amount=amount,
        description=f"Stock adjustment - {product_name}",
        date=date,
        user=user,
        reference=reference,
        trigger_type=TriggerType.STOCK_ADJUSTMENT,
        origin=Origin(kind="ADJUSTMENT", id=str(movement_id)),
        uow=uow,
    )
