# accounting/services/account_registry.py

"""
PATH: accounting/services/account_registry.py

ACCOUNT REGISTRY (AUTHORITATIVE)

Answers two questions:
- "Which account is this?"  (by chart code, or by semantic key)
- "May this account take a posting?"  (leaf + active)

and owns the ONLY write path to Account.debit_balance / credit_balance:
apply_posting() adds to the running sums with an F-expression update.
It never subtracts; corrections are new postings.

Design goals:
- deterministic
- hard-fail on missing setup (so we don't post to wrong accounts)
- semantic keys mapped through settings.LEDGER["ACCOUNT_CODES"]
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.conf import settings
from django.db.models import F

from accounting.models.account import Account
from accounting.services.exceptions import (
    AccountNotPostableError,
    AccountResolutionError,
    ConcurrencyConflictError,
    JournalEntryCreationError,
    PaymentValidationError,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

# ------------------------------------------------------------
# SEMANTIC KEYS
# ------------------------------------------------------------

CASH = "CASH"
BANK = "BANK"
CHECKS_IN_HAND = "CHECKS_IN_HAND"
ACCOUNTS_RECEIVABLE = "ACCOUNTS_RECEIVABLE"
INVENTORY = "INVENTORY"
ACCOUNTS_PAYABLE = "ACCOUNTS_PAYABLE"
VAT_PAYABLE = "VAT_PAYABLE"
VAT_CREDIT = "VAT_CREDIT"
SALES_REVENUE = "SALES_REVENUE"
COGS = "COGS"

# Payment method -> settlement account (semantic key)
METHOD_SETTLEMENT_MAP = {
    "CASH": CASH,
    "TRANSFER": BANK,
    "DEBIT": BANK,
    "CHECK": CHECKS_IN_HAND,
    "CARD": BANK,
}

PAYMENT_METHODS = tuple(METHOD_SETTLEMENT_MAP.keys())


def _account_codes() -> dict:
    return getattr(settings, "LEDGER", {}).get("ACCOUNT_CODES", {})


# ------------------------------------------------------------
# RESOLUTION
# ------------------------------------------------------------


def resolve(code: str) -> Account:
    code = (code or "").strip()
    if not code:
        raise AccountResolutionError("Account code is required")

    try:
        return Account.objects.get(code=code)
    except Account.DoesNotExist as exc:
        logger.error("Account resolution failed", extra={"account_code": code})
        raise AccountResolutionError(
            f"Account with code={code} not found. "
            "Run seed_chart_of_accounts (or add the account manually)."
        ) from exc


def code_for(semantic_key: str) -> str:
    key = (semantic_key or "").strip().upper()
    code = (_account_codes().get(key) or "").strip()
    if not code:
        raise AccountResolutionError(
            f"Missing mapping for semantic key '{key}'. Update LEDGER['ACCOUNT_CODES']."
        )
    return code


def resolve_semantic(semantic_key: str) -> Account:
    account = resolve(code_for(semantic_key))
    require_postable(account)
    return account


def settlement_account_for_method(method: str) -> Account:
    m = (method or "").strip().upper()
    key = METHOD_SETTLEMENT_MAP.get(m)
    if key is None:
        raise PaymentValidationError(
            f"Invalid payment method {method!r}. Use one of: {', '.join(PAYMENT_METHODS)}"
        )
    return resolve_semantic(key)


# ------------------------------------------------------------
# POSTABILITY
# ------------------------------------------------------------


def is_postable(account: Account) -> bool:
    return bool(account.is_postable and account.is_active)


def require_postable(account: Account) -> Account:
    if not account.is_active:
        raise AccountNotPostableError(f"Account {account.code} ({account.name}) is inactive")
    if not account.is_postable:
        raise AccountNotPostableError(
            f"Account {account.code} ({account.name}) is a grouping account and does not accept entries"
        )
    return account


# ------------------------------------------------------------
# BALANCES (single write path)
# ------------------------------------------------------------


def apply_posting(account_id, debit_delta: Decimal, credit_delta: Decimal) -> None:
    debit_delta = debit_delta or ZERO
    credit_delta = credit_delta or ZERO

    if debit_delta < 0 or credit_delta < 0:
        raise JournalEntryCreationError(
            "Balance deltas cannot be negative; post a correcting entry instead"
        )
    if debit_delta == 0 and credit_delta == 0:
        return

    updated = Account.objects.filter(pk=account_id).update(
        debit_balance=F("debit_balance") + debit_delta,
        credit_balance=F("credit_balance") + credit_delta,
    )
    if updated != 1:
        raise ConcurrencyConflictError(
            f"Balance update for account id={account_id} affected {updated} rows"
        )
