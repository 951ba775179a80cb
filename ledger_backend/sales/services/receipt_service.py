# sales/services/receipt_service.py

"""
CUSTOMER RECEIPTS

register_customer_receipt() records money received from a customer:
- lowers the customer's balance
- with an invoice: rejects amounts above the invoice balance, lowers it and
  moves payment_status to PARTIAL / PAID
- posts Dr settlement account (by method) / Cr Accounts Receivable

All of it in one unit of work; balance changes are guarded F() updates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db.models import F
from django.utils import timezone

from accounting.models.journal import JournalEntry
from accounting.services import account_registry
from accounting.services.exceptions import ConcurrencyConflictError, PaymentValidationError
from accounting.services.posting import post_customer_receipt
from accounting.services.unit_of_work import UnitOfWork, unit_of_work
from sales.models import Activity, Customer, CustomerReceipt, Invoice

logger = logging.getLogger("payments")

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
PAID_THRESHOLD = Decimal("0.01")


def _money(v) -> Decimal:
    try:
        return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise PaymentValidationError(f"Invalid amount: {v!r}") from exc


@dataclass(frozen=True)
class ReceiptResult:
    receipt: CustomerReceipt
    journal_entry: JournalEntry
    invoice: Invoice | None = None


def register_customer_receipt(
    *,
    customer_id,
    amount,
    method: str,
    invoice_id=None,
    date=None,
    reference: str = "",
    user=None,
    uow: UnitOfWork | None = None,
) -> ReceiptResult:
    amt = _money(amount)
    if amt <= ZERO:
        raise PaymentValidationError("Amount must be > 0")

    method = (method or "").strip().upper()
    if method not in account_registry.PAYMENT_METHODS:
        raise PaymentValidationError(
            f"Invalid payment method {method!r}. Use one of: {', '.join(account_registry.PAYMENT_METHODS)}"
        )

    with unit_of_work(uow, label="customer_receipt") as active:
        try:
            customer = Customer.objects.select_for_update().get(pk=customer_id)
        except Customer.DoesNotExist as exc:
            raise PaymentValidationError("Customer not found") from exc

        invoice = None
        if invoice_id:
            try:
                invoice = Invoice.objects.select_for_update().get(pk=invoice_id, customer=customer)
            except Invoice.DoesNotExist as exc:
                raise PaymentValidationError("Invoice not found for customer") from exc

            if invoice.status == Invoice.Status.CANCELLED:
                raise PaymentValidationError("Cannot collect a cancelled invoice")
            if amt > invoice.balance:
                logger.warning(
                    "Receipt exceeds invoice balance",
                    extra={"invoice": invoice.number, "amount": str(amt), "balance": str(invoice.balance)},
                )
                raise PaymentValidationError(
                    f"Amount {amt} exceeds invoice balance {invoice.balance}"
                )

        receipt = CustomerReceipt.objects.create(
            customer=customer,
            invoice=invoice,
            amount=amt,
            method=method,
            date=date or timezone.localdate(),
            reference=reference or "",
            user=user,
        )

        if invoice is not None:
            new_balance = invoice.balance - amt
            payment_status = (
                Invoice.PaymentStatus.PAID
                if new_balance <= PAID_THRESHOLD
                else Invoice.PaymentStatus.PARTIAL
            )
            updated = Invoice.objects.filter(pk=invoice.pk, balance__gte=amt).update(
                balance=F("balance") - amt, payment_status=payment_status
            )
            if updated != 1:
                raise ConcurrencyConflictError(f"Invoice {invoice.number} balance changed concurrently")
            invoice.refresh_from_db(fields=["balance", "payment_status"])

        updated = Customer.objects.filter(pk=customer.pk).update(balance=F("balance") - amt)
        if updated != 1:
            raise ConcurrencyConflictError("Customer balance update failed")

        entry = post_customer_receipt(
            receipt_id=receipt.pk,
            method=method,
            amount=amt,
            customer_name=customer.name,
            invoice_number=invoice.number if invoice else "",
            date=receipt.date,
            user=user,
            reference=reference,
            uow=active,
        ).entry
        CustomerReceipt.objects.filter(pk=receipt.pk).update(journal_entry=entry)
        receipt.journal_entry = entry

        Activity.objects.create(
            activity_type=Activity.Type.RECEIPT_REGISTERED,
            description=f"Receipt of {amt} from {customer.name}",
            invoice=invoice,
            user=user,
            metadata={"method": method, "amount": str(amt), "entry_number": entry.entry_number},
        )

    logger.info(
        "Customer receipt registered",
        extra={
            "receipt_id": str(receipt.pk),
            "customer_id": customer.pk,
            "amount": str(amt),
            "entry_number": entry.entry_number,
        },
    )
    return ReceiptResult(receipt=receipt, journal_entry=entry, invoice=invoice)
