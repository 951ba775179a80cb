# accounting/services/exceptions.py

"""
LEDGER SERVICE ERRORS

Centralized domain errors for the ledger core (accounting, stock, costing,
payments). Three families:

- LedgerConfigurationError: setup mistakes (template, account). Loud, not retryable.
- LedgerValidationError: expected, caller-recoverable problems. Carry structured data.
- ConcurrencyConflictError: a guarded write lost a race. Safe to retry.

Every one of them aborts the enclosing unit of work.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal


class LedgerServiceError(Exception):
    """Base exception for all ledger service failures."""

    code = "ledger_error"

    def as_dict(self) -> dict:
        return {"code": self.code, "message": str(self)}


# ------------------------------------------------------------
# CONFIGURATION
# ------------------------------------------------------------


class LedgerConfigurationError(LedgerServiceError):
    code = "configuration_error"


class TemplateNotFoundError(LedgerConfigurationError):
    code = "template_not_found"


class TemplateConfigurationError(LedgerConfigurationError):
    """Inactive template, or an amount rule missing its fixed amount / percentage."""

    code = "template_misconfigured"


class AccountResolutionError(LedgerConfigurationError):
    """Raised when an expected account cannot be resolved."""

    code = "account_not_found"


class AccountNotPostableError(LedgerConfigurationError):
    code = "account_not_postable"


# ------------------------------------------------------------
# VALIDATION
# ------------------------------------------------------------


class LedgerValidationError(LedgerServiceError):
    code = "validation_error"


class JournalEntryCreationError(LedgerValidationError):
    """Raised when a journal entry cannot be created from the given lines."""

    code = "journal_entry_invalid"


class UnbalancedEntryError(JournalEntryCreationError):
    code = "unbalanced_entry"

    def __init__(self, *, total_debit: Decimal, total_credit: Decimal):
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.difference = abs(total_debit - total_credit)
        super().__init__(
            f"Entry is not balanced: debit={total_debit} credit={total_credit} "
            f"difference={self.difference}"
        )

    def as_dict(self) -> dict:
        return {
            **super().as_dict(),
            "total_debit": str(self.total_debit),
            "total_credit": str(self.total_credit),
            "difference": str(self.difference),
        }


@dataclass(frozen=True)
class StockShortfall:
    product_id: object
    product_name: str
    available: int
    required: int
    message: str


class InsufficientStockError(LedgerValidationError):
    code = "insufficient_stock"

    def __init__(self, shortfalls: list[StockShortfall]):
        self.shortfalls = list(shortfalls)
        super().__init__("; ".join(s.message for s in self.shortfalls) or "Insufficient stock")

    def as_dict(self) -> dict:
        return {
            **super().as_dict(),
            "errors": [
                {**asdict(s), "product_id": str(s.product_id)} for s in self.shortfalls
            ],
        }


class MissingCostError(LedgerValidationError):
    code = "missing_cost"

    def __init__(self, *, product_id, product_name: str = ""):
        self.product_id = product_id
        self.product_name = product_name
        label = product_name or str(product_id)
        super().__init__(f"No cost defined for product {label}")

    def as_dict(self) -> dict:
        return {**super().as_dict(), "product_id": str(self.product_id)}


class StockMovementError(LedgerValidationError):
    code = "stock_movement_invalid"


class PaymentValidationError(LedgerValidationError):
    """Overpayment, cancelled invoice, non-positive amount, unknown counterparty."""

    code = "payment_invalid"


class InvoiceValidationError(LedgerValidationError):
    """Malformed invoice input: no items, bad quantity or price, duplicate number."""

    code = "invoice_invalid"


# ------------------------------------------------------------
# CONCURRENCY
# ------------------------------------------------------------


class ConcurrencyConflictError(LedgerServiceError):
    """A conditional write affected zero rows; the state moved underneath us."""

    code = "concurrency_conflict"
