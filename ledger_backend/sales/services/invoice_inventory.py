# sales/services/invoice_inventory.py

"""
INVOICE-INVENTORY ORCHESTRATOR (APPLICATION SERVICE)

Purpose:
- Turn a validated invoice request into an AUTHORIZED invoice, its SALE
  stock movements and the cost-of-goods-sold entry, in ONE transaction.
- Optionally post the template-driven revenue entry and raise the
  customer's balance (settings.LEDGER["POST_SALE_REVENUE"]).

Order inside the unit of work:
  lock products (pk order) -> validate stock -> compute cost -> invoice + items
  -> SALE movements -> one COGS entry (Dr COGS / Cr Inventory)
  -> link movements -> revenue entry + customer balance -> Activity

Hard rules:
- Quantities are integer units.
- Money is computed server-side and quantized to 2dp (ROUND_HALF_UP).
- Any failure rolls everything back: no invoice, no movement, no entry.

preview_invoice_inventory() and validate_invoice_for_inventory() are
read-only companions for the UI.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings
from django.db.models import F
from django.utils import timezone

from accounting.models.journal import JournalEntry
from accounting.services.exceptions import (
    ConcurrencyConflictError,
    InsufficientStockError,
    InvoiceValidationError,
    MissingCostError,
)
from accounting.services.journal_entry_service import next_sequence_value
from accounting.services.posting import post_cogs_for_invoice
from accounting.services.sale_accounting import post_sale_invoice
from accounting.services.unit_of_work import UnitOfWork, unit_of_work
from products.models import Product, StockMovement
from products.services.cost_resolver import total_cost, unit_cost
from products.services.stock_ledger import (
    link_to_entry,
    lock_products,
    product_key,
    record_movement,
    validate_availability,
)
from sales.models import Activity, Customer, Invoice, InvoiceItem

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

GENERAL_TAX_RATE = Decimal("21.00")
REDUCED_TAX_RATE = Decimal("10.50")


def _money(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class InvoiceLine:
    product_id: str
    quantity: int
    unit_price: Decimal
    tax_rate: Decimal

    @property
    def subtotal(self) -> Decimal:
        return _money(self.unit_price * self.quantity)

    @property
    def tax_amount(self) -> Decimal:
        return _money(self.subtotal * self.tax_rate / HUNDRED)


@dataclass
class InvoiceResult:
    invoice: Invoice
    movements: list[StockMovement] = field(default_factory=list)
    cogs_entry: JournalEntry | None = None
    revenue_entry: JournalEntry | None = None
    cogs_amount: Decimal = ZERO


# ============================================================
# INPUT
# ============================================================


def _to_int_qty(value) -> int:
    if isinstance(value, bool):
        raise InvoiceValidationError("quantity must be a whole integer unit")
    if isinstance(value, int):
        qty = value
    elif isinstance(value, str) and value.strip().isdigit():
        qty = int(value.strip())
    else:
        raise InvoiceValidationError("quantity must be a whole integer unit")

    if qty <= 0:
        raise InvoiceValidationError("quantity must be > 0")
    return qty


def _to_decimal(value, label: str) -> Decimal:
    try:
        amount = _money(value)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvoiceValidationError(f"{label} must be a number") from exc
    if amount < ZERO:
        raise InvoiceValidationError(f"{label} cannot be negative")
    return amount


def parse_items(items, *, require_price: bool = True) -> list[InvoiceLine]:
    if not items:
        raise InvoiceValidationError("Invoice must contain at least one item")

    lines = []
    for raw in items:
        product_id = raw.get("product_id")
        if not product_id:
            raise InvoiceValidationError("Each item needs a product_id")
        key = product_key(product_id)
        if key is None:
            raise InvoiceValidationError(f"Invalid product_id {product_id!r}")

        if require_price and raw.get("unit_price") in (None, ""):
            raise InvoiceValidationError("Each item needs a unit_price")

        tax_rate = raw.get("tax_rate")
        lines.append(
            InvoiceLine(
                product_id=key,
                quantity=_to_int_qty(raw.get("quantity")),
                unit_price=_to_decimal(raw.get("unit_price"), "unit_price"),
                tax_rate=_to_decimal(GENERAL_TAX_RATE if tax_rate is None else tax_rate, "tax_rate"),
            )
        )
    return lines


def _required_per_product(lines: list[InvoiceLine]) -> dict[str, int]:
    required: dict[str, int] = {}
    for line in lines:
        required[line.product_id] = required.get(line.product_id, 0) + line.quantity
    return required


def compute_totals(lines: list[InvoiceLine]) -> dict:
    subtotal = sum((ln.subtotal for ln in lines), ZERO)
    tax = sum((ln.tax_amount for ln in lines), ZERO)
    rate_a = sum((ln.tax_amount for ln in lines if ln.tax_rate == GENERAL_TAX_RATE), ZERO)
    rate_b = sum((ln.tax_amount for ln in lines if ln.tax_rate == REDUCED_TAX_RATE), ZERO)
    return {
        "subtotal": _money(subtotal),
        "tax_amount": _money(tax),
        "tax_rate_a_amount": _money(rate_a),
        "tax_rate_b_amount": _money(rate_b),
        "total": _money(subtotal + tax),
    }


def _post_revenue_default() -> bool:
    return bool(getattr(settings, "LEDGER", {}).get("POST_SALE_REVENUE", True))


def _next_invoice_number(invoice_type: str) -> str:
    return f"{invoice_type}-{next_sequence_value(f'invoice_{invoice_type}'):08d}"


# ============================================================
# CREATE
# ============================================================


def create_invoice_with_inventory(
    data: dict,
    *,
    user=None,
    uow: UnitOfWork | None = None,
) -> InvoiceResult:
    """
    data:
      invoice_type   "A" | "B" | "C" | "E"
      customer_id    optional
      number         optional, allocated per type when missing
      issue_date, due_date, currency, notes, post_revenue (optional)
      items          [{product_id, quantity, unit_price, tax_rate}]
    """
    invoice_type = (data.get("invoice_type") or "").strip().upper()
    if invoice_type not in Invoice.InvoiceType.values:
        raise InvoiceValidationError(f"Unknown invoice type {invoice_type!r}")

    lines = parse_items(data.get("items"))
    post_revenue = data.get("post_revenue")
    if post_revenue is None:
        post_revenue = _post_revenue_default()

    with unit_of_work(uow, label="invoice_with_inventory") as active:
        locked = lock_products(ln.product_id for ln in lines)

        availability = validate_availability(_required_per_product(lines).items())
        if not availability.ok:
            logger.warning(
                "Invoice rejected: insufficient stock",
                extra={"shortfalls": [s.message for s in availability.errors]},
            )
            raise InsufficientStockError(availability.errors)

        currency = data.get("currency") or "ARS"
        costs = total_cost(
            [(locked[ln.product_id], ln.quantity) for ln in lines],
            currency=currency,
        )

        customer = None
        if data.get("customer_id"):
            try:
                customer = Customer.objects.get(pk=data["customer_id"], is_active=True)
            except Customer.DoesNotExist as exc:
                raise InvoiceValidationError("Customer not found") from exc

        number = (data.get("number") or "").strip() or _next_invoice_number(invoice_type)
        if Invoice.objects.filter(number=number).exists():
            raise InvoiceValidationError(f"Invoice number {number} already exists")

        totals = compute_totals(lines)
        invoice = Invoice.objects.create(
            number=number,
            invoice_type=invoice_type,
            customer=customer,
            currency=currency,
            issue_date=data.get("issue_date") or timezone.localdate(),
            due_date=data.get("due_date"),
            notes=data.get("notes") or "",
            status=Invoice.Status.AUTHORIZED,
            payment_status=Invoice.PaymentStatus.PENDING,
            balance=totals["total"],
            created_by=user,
            **totals,
        )

        movements = []
        for line, cost in zip(lines, costs.per_item):
            InvoiceItem.objects.create(
                invoice=invoice,
                product=locked[line.product_id],
                quantity=line.quantity,
                unit_price=line.unit_price,
                tax_rate=line.tax_rate,
                subtotal=line.subtotal,
                tax_amount=line.tax_amount,
                unit_cost=cost.unit_cost,
            )
            movements.append(
                record_movement(
                    product=locked[line.product_id],
                    movement_type=StockMovement.MovementType.SALE,
                    quantity=-line.quantity,
                    unit_cost=cost.unit_cost,
                    reference=invoice.number,
                    invoice=invoice,
                    user=user,
                    uow=active,
                )
            )

        cogs_entry = None
        if costs.total > ZERO:
            cogs_entry = post_cogs_for_invoice(
                invoice_id=invoice.pk,
                invoice_number=invoice.number,
                amount=costs.total,
                date=invoice.issue_date,
                user=user,
                uow=active,
            ).entry
            link_to_entry(movements, cogs_entry)
            for movement in movements:
                movement.journal_entry = cogs_entry

        revenue_entry = None
        if post_revenue:
            revenue_entry = post_sale_invoice(invoice, user=user, uow=active).entry
            if customer is not None:
                updated = Customer.objects.filter(pk=customer.pk).update(
                    balance=F("balance") + invoice.total
                )
                if updated != 1:
                    raise ConcurrencyConflictError("Customer balance update failed")

        Activity.objects.create(
            activity_type=Activity.Type.INVOICE_CREATED,
            description=f"Invoice {invoice.invoice_type} {invoice.number} created",
            invoice=invoice,
            user=user,
            metadata={
                "cogs_amount": str(costs.total),
                "item_count": len(lines),
                "cogs_entry_number": cogs_entry.entry_number if cogs_entry else None,
                "revenue_entry_number": revenue_entry.entry_number if revenue_entry else None,
            },
        )

    logger.info(
        "Invoice created with inventory",
        extra={
            "invoice": invoice.number,
            "items": len(lines),
            "cogs_amount": str(costs.total),
            "cogs_entry_number": cogs_entry.entry_number if cogs_entry else None,
        },
    )
    return InvoiceResult(
        invoice=invoice,
        movements=movements,
        cogs_entry=cogs_entry,
        revenue_entry=revenue_entry,
        cogs_amount=costs.total,
    )


# ============================================================
# READ-ONLY COMPANIONS
# ============================================================


def preview_invoice_inventory(items) -> dict:
    """
    What creating the invoice would do to stock and cost, without writing.
    """
    lines = parse_items(items, require_price=False)
    required = _required_per_product(lines)
    products = {str(p.pk): p for p in Product.objects.filter(pk__in=list(required))}

    availability = validate_availability(required.items())
    rows = []
    total = ZERO
    for product_id, qty in required.items():
        product = products.get(product_id)
        if product is None:
            continue

        try:
            cost = unit_cost(product)
        except MissingCostError:
            cost = None

        line_cost = _money(cost * qty) if cost is not None else None
        if line_cost is not None:
            total += line_cost

        remaining = int(product.stock_quantity) - qty
        rows.append(
            {
                "product_id": product_id,
                "product_name": product.name,
                "current_stock": int(product.stock_quantity),
                "requested": qty,
                "remaining": remaining,
                "unit_cost": cost,
                "total_cost": line_cost,
                "has_cost": cost is not None,
                "low_stock_after": remaining <= int(product.min_stock),
            }
        )

    return {
        "valid": availability.ok and all(r["has_cost"] for r in rows),
        "items": rows,
        "total_cost": _money(total),
        "shortfalls": availability.errors,
    }


def validate_invoice_for_inventory(items) -> dict:
    preview = preview_invoice_inventory(items)

    errors = [s.message for s in preview["shortfalls"]]
    warnings = []
    for row in preview["items"]:
        if not row["has_cost"]:
            errors.append(f"No cost defined for product {row['product_name']}")
        elif row["low_stock_after"] and row["remaining"] >= 0:
            warnings.append(
                f"{row['product_name']} will be at or below minimum stock ({row['remaining']} left)"
            )

    return {"valid": not errors, "errors": errors, "warnings": warnings}
