# purchases/services/payment_service.py

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
import logging
from dataclasses import dataclass

from django.db.models import F
from django.utils import timezone

from accounting.models.journal import JournalEntry
from accounting.services import account_registry
from accounting.services.exceptions import ConcurrencyConflictError, PaymentValidationError
from accounting.services.posting import post_supplier_payment
from accounting.services.unit_of_work import UnitOfWork, unit_of_work
from purchases.models import PurchaseInvoice, Supplier, SupplierPayment


logger = logging.getLogger("payments")


TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
PAID_THRESHOLD = Decimal("0.01")


def _money(v) -> Decimal:
    try:
        return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise PaymentValidationError(f"Invalid amount: {v!r}") from exc


def _normalize_method(method: str) -> str:
    m = (method or "").strip().upper()
    if m not in account_registry.PAYMENT_METHODS:
        logger.error("Invalid payment method provided", extra={"payment_method": method})
        raise PaymentValidationError(
            f"Invalid payment method {method!r}. Use one of: {', '.join(account_registry.PAYMENT_METHODS)}"
        )
    return m


@dataclass(frozen=True)
class PaymentResult:
    payment: SupplierPayment
    journal_entry: JournalEntry
    invoice: PurchaseInvoice | None = None


def _lower_supplier_balance(supplier: Supplier, amount: Decimal) -> None:
    updated = Supplier.objects.filter(pk=supplier.pk).update(balance=F("balance") - amount)
    if updated != 1:
        raise ConcurrencyConflictError("Supplier balance update failed")


def _post_and_attach(*, payment: SupplierPayment, supplier: Supplier, invoice, user, uow) -> JournalEntry:
    entry = post_supplier_payment(
        payment_id=payment.pk,
        method=payment.payment_method,
        amount=payment.amount,
        supplier_name=supplier.name,
        invoice_number=invoice.invoice_number if invoice else "",
        date=payment.payment_date,
        user=user,
        reference=payment.reference,
        uow=uow,
    ).entry
    SupplierPayment.objects.filter(pk=payment.pk).update(journal_entry=entry)
    payment.journal_entry = entry
    return entry


def register_purchase_payment(
    *,
    invoice_id,
    amount,
    payment_method: str,
    payment_date=None,
    reference: str = "",
    narration: str = "",
    user=None,
    uow: UnitOfWork | None = None,
) -> PaymentResult:
    """
    Pay (part of) a purchase invoice.

    Rejects a cancelled invoice, a non-positive amount and an amount above
    the invoice balance. A remaining balance <= 0.01 marks the invoice
    PAID / COMPLETED, anything else PARTIAL.
    """
    logger.info(
        "Initiating purchase invoice payment",
        extra={"invoice_id": str(invoice_id), "amount": str(amount), "payment_method": payment_method},
    )

    amt = _money(amount)
    if amt <= ZERO:
        logger.error("Invalid payment amount", extra={"amount": str(amount)})
        raise PaymentValidationError("Amount must be > 0")

    method = _normalize_method(payment_method)

    with unit_of_work(uow, label="purchase_payment") as active:
        try:
            invoice = (
                PurchaseInvoice.objects.select_for_update()
                .select_related("supplier")
                .get(pk=invoice_id)
            )
        except PurchaseInvoice.DoesNotExist as exc:
            logger.error("Purchase invoice not found", extra={"invoice_id": str(invoice_id)})
            raise PaymentValidationError("Invoice not found") from exc

        if invoice.status == PurchaseInvoice.STATUS_CANCELLED:
            raise PaymentValidationError("Cannot pay a cancelled invoice")

        if amt > invoice.balance:
            logger.warning(
                "Payment exceeds invoice balance",
                extra={"invoice": invoice.invoice_number, "amount": str(amt), "balance": str(invoice.balance)},
            )
            raise PaymentValidationError(
                f"Amount {amt} exceeds the pending balance {invoice.balance}"
            )

        supplier = invoice.supplier
        payment = SupplierPayment.objects.create(
            supplier=supplier,
            invoice=invoice,
            payment_date=payment_date or timezone.localdate(),
            amount=amt,
            payment_method=method,
            reference=reference or "",
            narration=narration or "",
            created_by=user,
        )

        is_paid = invoice.balance - amt <= PAID_THRESHOLD
        updated = PurchaseInvoice.objects.filter(pk=invoice.pk, balance__gte=amt).update(
            balance=F("balance") - amt,
            status=PurchaseInvoice.STATUS_PAID if is_paid else invoice.status,
            payment_status=(
                PurchaseInvoice.PAYMENT_COMPLETED if is_paid else PurchaseInvoice.PAYMENT_PARTIAL
            ),
        )
        if updated != 1:
            raise ConcurrencyConflictError(
                f"Invoice {invoice.invoice_number} balance changed concurrently"
            )
        invoice.refresh_from_db(fields=["balance", "status", "payment_status"])

        _lower_supplier_balance(supplier, amt)
        entry = _post_and_attach(payment=payment, supplier=supplier, invoice=invoice, user=user, uow=active)

    logger.info(
        "Purchase payment completed successfully",
        extra={
            "payment_id": str(payment.pk),
            "invoice": invoice.invoice_number,
            "entry_number": entry.entry_number,
        },
    )
    return PaymentResult(payment=payment, journal_entry=entry, invoice=invoice)


def register_supplier_payment(
    *,
    supplier_id,
    amount,
    payment_method: str,
    payment_date=None,
    reference: str = "",
    narration: str = "",
    user=None,
    uow: UnitOfWork | None = None,
) -> PaymentResult:
    """
    On-account payment with no invoice reference. Lowers the supplier
    balance and posts Dr Accounts Payable / Cr settlement account.
    """
    logger.info(
        "Initiating supplier payment",
        extra={"supplier_id": str(supplier_id), "amount": str(amount), "payment_method": payment_method},
    )

    amt = _money(amount)
    if amt <= ZERO:
        logger.error("Invalid payment amount", extra={"amount": str(amount)})
        raise PaymentValidationError("Amount must be > 0")

    method = _normalize_method(payment_method)

    with unit_of_work(uow, label="supplier_payment") as active:
        try:
            supplier = Supplier.objects.select_for_update().get(pk=supplier_id, is_active=True)
        except Supplier.DoesNotExist as exc:
            logger.error("Supplier not found during payment", extra={"supplier_id": str(supplier_id)})
            raise PaymentValidationError("Supplier not found") from exc

        payment = SupplierPayment.objects.create(
            supplier=supplier,
            payment_date=payment_date or timezone.localdate(),
            amount=amt,
            payment_method=method,
            reference=reference or "",
            narration=narration or "",
            created_by=user,
        )

        _lower_supplier_balance(supplier, amt)
        entry = _post_and_attach(payment=payment, supplier=supplier, invoice=None, user=user, uow=active)

    logger.info(
        "Supplier payment completed successfully",
        extra={"payment_id": str(payment.pk), "entry_number": entry.entry_number},
    )
    return PaymentResult(payment=payment, journal_entry=entry)


def supplier_account_statement(supplier: Supplier) -> dict:
    """
    Invoices (charges) and payments (credits) in date order with a running
    balance of what is owed.
    """
    rows = []
    for inv in supplier.invoices.exclude(status=PurchaseInvoice.STATUS_CANCELLED):
        rows.append(
            {
                "date": inv.invoice_date,
                "created_at": inv.created_at,
                "kind": "INVOICE",
                "document": inv.invoice_number,
                "charge": _money(inv.total_amount),
                "payment": ZERO,
            }
        )
    for pay in supplier.payments.select_related("invoice"):
        rows.append(
            {
                "date": pay.payment_date,
                "created_at": pay.created_at,
                "kind": "PAYMENT",
                "document": pay.invoice.invoice_number if pay.invoice else pay.reference,
                "charge": ZERO,
                "payment": _money(pay.amount),
            }
        )

    rows.sort(key=lambda r: (r["date"], r["created_at"]))

    running = ZERO
    for row in rows:
        running += row["charge"] - row["payment"]
        row["balance"] = running
        del row["created_at"]

    return {
        "supplier_id": str(supplier.pk),
        "supplier_name": supplier.name,
        "movements": rows,
        "total_charged": sum((r["charge"] for r in rows), ZERO),
        "total_paid": sum((r["payment"] for r in rows), ZERO),
        "balance": running,
    }
