# accounting/services/balance_service.py

"""
BALANCE & REPORTING SERVICE

Read-only helpers over the chart and posted journal lines.

RULES:
- READ-ONLY: no writes, ever
- Only POSTED entries count
- Balances have no sign, only a nature: DEBIT (debits exceed credits) or
  CREDIT. ASSET and EXPENSE accounts are debit-natured; a balance on the
  other side is "abnormal" (is_normal=False).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from accounting.models.account import Account
from accounting.models.journal import JournalEntry, JournalEntryLine

TWOPLACES = Decimal("0.01")
DEBIT = "DEBIT"
CREDIT = "CREDIT"


def _q2(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class NaturedBalance:
    amount: Decimal
    nature: str
    is_normal: bool = True


def natured_balance(account_type: str, debit, credit) -> NaturedBalance:
    difference = _q2(debit) - _q2(credit)
    nature = DEBIT if difference >= 0 else CREDIT
    debit_natured = account_type in Account.DEBIT_NATURE_TYPES
    return NaturedBalance(
        amount=abs(difference),
        nature=nature,
        is_normal=(nature == DEBIT) if debit_natured else (nature == CREDIT),
    )


def running_balance(current: NaturedBalance, debit, credit) -> NaturedBalance:
    signed = current.amount if current.nature == DEBIT else -current.amount
    signed += _q2(debit) - _q2(credit)
    return NaturedBalance(amount=abs(signed), nature=DEBIT if signed >= 0 else CREDIT)


def account_balance(account: Account) -> NaturedBalance:
    return natured_balance(account.account_type, account.debit_balance, account.credit_balance)


def trial_balance(*, include_zero: bool = False) -> list[dict]:
    """From the stored running sums of every postable account."""
    rows = []
    for acc in Account.objects.filter(is_postable=True).order_by("code"):
        if not include_zero and acc.debit_balance == 0 and acc.credit_balance == 0:
            continue
        bal = account_balance(acc)
        rows.append(
            {
                "account_id": acc.id,
                "code": acc.code,
                "name": acc.name,
                "account_type": acc.account_type,
                "debit_total": _q2(acc.debit_balance),
                "credit_total": _q2(acc.credit_balance),
                "balance": bal.amount,
                "nature": bal.nature,
                "is_normal": bal.is_normal,
            }
        )
    return rows


def account_statement(
    account: Account,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict:
    """
    Posted movements of one account with a running balance.

    The opening balance covers every posted line dated before date_from.
    """
    qs = JournalEntryLine.objects.filter(
        account=account, entry__status=JournalEntry.Status.POSTED
    ).select_related("entry")

    opening = NaturedBalance(amount=_q2(0), nature=DEBIT)
    if date_from is not None:
        for debit, credit in qs.filter(entry__date__lt=date_from).values_list("debit", "credit"):
            opening = running_balance(opening, debit, credit)
        qs = qs.filter(entry__date__gte=date_from)
    if date_to is not None:
        qs = qs.filter(entry__date__lte=date_to)

    current = opening
    movements = []
    for line in qs.order_by("entry__date", "entry__entry_number", "line_number"):
        current = running_balance(current, line.debit, line.credit)
        movements.append(
            {
                "entry_number": line.entry.entry_number,
                "date": line.entry.date,
                "description": line.description or line.entry.description,
                "debit": _q2(line.debit),
                "credit": _q2(line.credit),
                "balance": current.amount,
                "nature": current.nature,
            }
        )

    return {
        "account": account.code,
        "opening_balance": opening.amount,
        "opening_nature": opening.nature,
        "movements": movements,
        "closing_balance": current.amount,
        "closing_nature": current.nature,
    }
