# purchases/services/purchase_invoice_service.py

"""
PURCHASE INVOICE RECEIVING (ATOMIC)

receive_purchase_invoice() books a supplier invoice in one unit of work:

1) creates PurchaseInvoice + items (balance = total, PENDING)
2) records one PURCHASE stock movement per item at the invoiced unit cost
   (this becomes the product's latest acquisition cost)
3) raises the supplier's balance
4) applies PURCHASE_INVOICE_A:
     Dr Inventory (subtotal) + Dr VAT credit (tax) + Dr Perceptions
     Cr Accounts Payable (total)
5) links the movements and the invoice to that entry

Any failure rolls all of it back.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db.models import F
from django.utils import timezone

from accounting.models.template import TriggerType
from accounting.services.amount_rules import Origin, SourceDocument
from accounting.services.exceptions import (
    ConcurrencyConflictError,
    InvoiceValidationError,
    PaymentValidationError,
)
from accounting.services.template_engine import apply_template
from accounting.services.unit_of_work import UnitOfWork, unit_of_work
from products.models import StockMovement
from products.services.stock_ledger import (
    link_to_entry,
    lock_products,
    product_key,
    record_movement,
)
from purchases.models import PurchaseInvoice, PurchaseInvoiceItem, Supplier

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

PURCHASE_TEMPLATE = "PURCHASE_INVOICE_A"
DEFAULT_TAX_RATE = Decimal("21.00")


def _money(v) -> Decimal:
    try:
        return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise InvoiceValidationError(f"Invalid amount: {v!r}") from exc


def _parse_items(items) -> list[dict]:
    if not items:
        raise InvoiceValidationError("Purchase invoice must contain at least one item")

    parsed = []
    for raw in items:
        key = product_key(raw.get("product_id"))
        if key is None:
            raise InvoiceValidationError(f"Invalid product_id {raw.get('product_id')!r}")

        qty = raw.get("quantity")
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise InvoiceValidationError("quantity must be a positive integer")

        unit_cost = _money(raw.get("unit_cost"))
        if unit_cost < ZERO:
            raise InvoiceValidationError("unit_cost cannot be negative")

        tax_rate = raw.get("tax_rate")
        parsed.append(
            {
                "product_id": key,
                "quantity": qty,
                "unit_cost": unit_cost,
                "tax_rate": _money(DEFAULT_TAX_RATE if tax_rate is None else tax_rate),
            }
        )
    return parsed


def receive_purchase_invoice(
    *,
    supplier_id,
    invoice_number: str,
    items,
    invoice_type: str = "A",
    invoice_date=None,
    due_date=None,
    perceptions=(),
    user=None,
    uow: UnitOfWork | None = None,
) -> PurchaseInvoice:
    """
    items: [{product_id, quantity, unit_cost, tax_rate}]
    perceptions: amounts withheld in advance by the supplier (tax perceptions)
    """
    parsed = _parse_items(items)
    perception_amounts = tuple(_money(p) for p in perceptions or ())
    if any(p < ZERO for p in perception_amounts):
        raise InvoiceValidationError("Perceptions cannot be negative")

    logger.info(
        "Receiving purchase invoice",
        extra={"supplier_id": str(supplier_id), "invoice_number": invoice_number, "items": len(parsed)},
    )

    with unit_of_work(uow, label="purchase_invoice") as active:
        try:
            supplier = Supplier.objects.select_for_update().get(pk=supplier_id, is_active=True)
        except Supplier.DoesNotExist as exc:
            raise PaymentValidationError("Supplier not found") from exc

        # pk order, same as the sale path
        products = lock_products([i["product_id"] for i in parsed])
        for item in parsed:
            if item["product_id"] not in products:
                raise InvoiceValidationError(f"Product {item['product_id']} not found")

        subtotal = ZERO
        tax = ZERO
        for item in parsed:
            line_subtotal = _money(item["unit_cost"] * item["quantity"])
            subtotal += line_subtotal
            tax += _money(line_subtotal * item["tax_rate"] / HUNDRED)
        perceptions_total = sum(perception_amounts, ZERO)
        total = subtotal + tax + perceptions_total

        if PurchaseInvoice.objects.filter(supplier=supplier, invoice_number=(invoice_number or "").strip()).exists():
            raise InvoiceValidationError(
                f"Invoice {invoice_number} already registered for {supplier.name}"
            )

        invoice = PurchaseInvoice.objects.create(
            supplier=supplier,
            invoice_number=invoice_number,
            invoice_type=(invoice_type or "A").strip().upper(),
            invoice_date=invoice_date or timezone.localdate(),
            due_date=due_date,
            subtotal_amount=subtotal,
            tax_amount=tax,
            perceptions_amount=perceptions_total,
            total_amount=total,
            balance=total,
            created_by=user,
        )

        movements = []
        for item in parsed:
            product = products[item["product_id"]]
            PurchaseInvoiceItem.objects.create(
                invoice=invoice,
                product=product,
                quantity=item["quantity"],
                unit_cost=item["unit_cost"],
            )
            movements.append(
                record_movement(
                    product=product,
                    movement_type=StockMovement.MovementType.PURCHASE,
                    quantity=item["quantity"],
                    unit_cost=item["unit_cost"],
                    reference=invoice.invoice_number,
                    notes=f"Purchase from {supplier.name}",
                    user=user,
                    uow=active,
                )
            )

        updated = Supplier.objects.filter(pk=supplier.pk).update(balance=F("balance") + total)
        if updated != 1:
            raise ConcurrencyConflictError("Supplier balance update failed")

        source = SourceDocument(
            id=invoice.invoice_number,
            trigger_type=TriggerType.PURCHASE_INVOICE,
            date=invoice.invoice_date,
            description=f"Purchase invoice {invoice.invoice_type} {invoice.invoice_number} - {supplier.name}",
            total=total,
            subtotal=subtotal,
            tax=tax,
            perceptions=perception_amounts,
            origin=Origin(kind="PURCHASE", id=str(invoice.pk)),
        )
        entry = apply_template(PURCHASE_TEMPLATE, source, user=user, uow=active).entry

        link_to_entry(movements, entry)
        PurchaseInvoice.objects.filter(pk=invoice.pk).update(journal_entry=entry)
        invoice.journal_entry = entry

    logger.info(
        "Purchase invoice received",
        extra={
            "invoice_id": str(invoice.pk),
            "total": str(total),
            "entry_number": entry.entry_number,
        },
    )
    return invoice
