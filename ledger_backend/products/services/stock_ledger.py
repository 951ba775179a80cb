# products/services/stock_ledger.py

"""
STOCK LEDGER SERVICE

The only code path that changes Product.stock_quantity.

Every change:
- runs inside a unit of work
- locks the product row (select_for_update)
- moves stock_quantity with a guarded UPDATE (affected rows must be 1)
- appends exactly one immutable StockMovement with before/after snapshots

validate_availability() is read-only and reports EVERY shortfall, not just
the first one, so callers can show all problems at once.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from django.core.exceptions import ValidationError
from django.db.models import F, Sum

from accounting.services.exceptions import (
    ConcurrencyConflictError,
    StockMovementError,
    StockShortfall,
)
from accounting.services.posting import post_stock_adjustment
from accounting.services.unit_of_work import UnitOfWork, unit_of_work
from products.models import Product, StockMovement
from products.services.cost_resolver import unit_cost as resolve_unit_cost

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

MovementType = StockMovement.MovementType


@dataclass(frozen=True)
class AvailabilityResult:
    ok: bool
    errors: list[StockShortfall] = field(default_factory=list)


def _to_int(value, label: str = "quantity") -> int:
    if value is None or value == "" or isinstance(value, bool):
        raise StockMovementError(f"{label} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise StockMovementError(f"{label} must be an integer")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


# ============================================================
# AVAILABILITY (READ-ONLY)
# ============================================================


def product_key(product_id) -> str | None:
    """Canonical product id (lower-case hyphenated UUID), or None when it is not one."""
    try:
        return str(uuid.UUID(str(product_id)))
    except (TypeError, ValueError):
        return None


def validate_availability(items: Iterable[tuple]) -> AvailabilityResult:
    """
    items: (product_id, required_quantity) pairs.

    Unknown or inactive products count as available = 0. Products that
    allow negative stock never fall short.
    """
    required: dict = {}
    for product_id, qty in items:
        key = product_key(product_id) or str(product_id)
        required[key] = required.get(key, 0) + _to_int(qty)

    valid_keys = [k for k in required if product_key(k)]
    products = {str(p.pk): p for p in Product.objects.filter(pk__in=valid_keys)}

    errors: list[StockShortfall] = []
    for product_id, qty in required.items():
        product = products.get(product_id)

        if product is None or not product.is_active:
            name = product.name if product else product_id
            errors.append(
                StockShortfall(
                    product_id=product_id,
                    product_name=name,
                    available=0,
                    required=qty,
                    message=f"Product {name} is not available (required {qty})",
                )
            )
            continue

        if product.allow_negative_stock:
            continue

        available = int(product.stock_quantity)
        if available < qty:
            errors.append(
                StockShortfall(
                    product_id=product.pk,
                    product_name=product.name,
                    available=available,
                    required=qty,
                    message=(
                        f"Insufficient stock for {product.name}: "
                        f"available {available}, required {qty}"
                    ),
                )
            )

    return AvailabilityResult(ok=not errors, errors=errors)


# ============================================================
# MOVEMENTS
# ============================================================


def lock_products(product_ids: Iterable) -> dict:
    """
    Lock product rows in primary-key order. Callers that lock several
    products must go through here so two units of work never deadlock.
    """
    ids = sorted({product_key(pid) for pid in product_ids} - {None})
    locked = Product.objects.select_for_update().filter(pk__in=ids).order_by("pk")
    return {str(p.pk): p for p in locked}


def record_movement(
    *,
    product: Product,
    movement_type: str,
    quantity: int,
    unit_cost=ZERO,
    reference: str = "",
    notes: str = "",
    invoice=None,
    user=None,
    uow: UnitOfWork | None = None,
) -> StockMovement:
    """
    Apply one signed stock change and append its movement.

    quantity is signed: positive adds stock, negative removes it. The sign
    must agree with movement_type.
    """
    qty = _to_int(quantity)
    if qty == 0:
        raise StockMovementError("quantity cannot be 0")

    if movement_type not in MovementType.values:
        raise StockMovementError(f"Unknown movement type {movement_type!r}")

    direction = StockMovement.TYPE_DIRECTION.get(movement_type)
    if direction == StockMovement.INBOUND and qty < 0:
        raise StockMovementError(f"{movement_type} requires a positive quantity")
    if direction == StockMovement.OUTBOUND and qty > 0:
        raise StockMovementError(f"{movement_type} requires a negative quantity")

    cost = _money(unit_cost)
    if cost < ZERO:
        raise StockMovementError("unit_cost cannot be negative")

    with unit_of_work(uow, label="stock_movement"):
        locked = Product.objects.select_for_update().get(pk=product.pk)

        if not locked.is_active:
            raise StockMovementError(f"Product {locked.name} is inactive")

        before = int(locked.stock_quantity)
        after = before + qty

        if after < 0 and not locked.allow_negative_stock:
            raise StockMovementError(
                f"Insufficient stock for {locked.name}: available {before}, required {-qty}"
            )

        guarded = Product.objects.filter(pk=locked.pk, stock_quantity=before)
        if qty < 0 and not locked.allow_negative_stock:
            guarded = guarded.filter(stock_quantity__gte=-qty)

        updated = guarded.update(stock_quantity=F("stock_quantity") + qty)
        if updated != 1:
            raise ConcurrencyConflictError(
                f"Stock of {locked.name} changed concurrently; movement not applied"
            )

        try:
            movement = StockMovement.objects.create(
                product=locked,
                movement_type=movement_type,
                quantity=qty,
                unit_cost=cost,
                stock_before=before,
                stock_after=after,
                reference=reference or "",
                notes=notes or "",
                invoice=invoice,
                user=user,
            )
        except ValidationError as exc:
            raise StockMovementError("; ".join(exc.messages)) from exc

    # keep the caller's instance in step with the row
    product.stock_quantity = after

    logger.info(
        "Stock movement recorded",
        extra={
            "product_id": str(locked.pk),
            "movement_type": movement_type,
            "quantity": qty,
            "stock_before": before,
            "stock_after": after,
        },
    )
    return movement


def adjust_to_quantity(
    *,
    product: Product,
    target: int,
    reason: str = "",
    unit_cost=None,
    post_to_ledger: bool = False,
    user=None,
    uow: UnitOfWork | None = None,
):
    """
    Bring on-hand stock to a physical count.

    Returns (movement, entry). entry is None unless post_to_ledger is set
    and the difference has a cost.
    """

    counted = _to_int(target, "target")
    if counted < 0:
        raise StockMovementError("target quantity cannot be negative")

    with unit_of_work(uow, label="stock_adjustment") as active:
        current = int(Product.objects.select_for_update().get(pk=product.pk).stock_quantity)
        delta = counted - current
        if delta == 0:
            raise StockMovementError(
                f"Stock of {product.name} is already {counted}; nothing to adjust"
            )

        cost = _money(unit_cost) if unit_cost is not None else resolve_unit_cost(product)
        movement = record_movement(
            product=product,
            movement_type=MovementType.ADJUSTMENT_POSITIVE if delta > 0 else MovementType.ADJUSTMENT_NEGATIVE,
            quantity=delta,
            unit_cost=cost,
            reference="COUNT",
            notes=reason,
            user=user,
            uow=active,
        )

        entry = None
        if post_to_ledger and movement.total_cost > ZERO:
            entry = post_stock_adjustment(
                movement_id=movement.pk,
                product_name=product.name,
                amount=movement.total_cost,
                increases_stock=delta > 0,
                user=user,
                reference=movement.reference,
                uow=active,
            ).entry
            link_to_entry([movement], entry)
            movement.journal_entry = entry

    return movement, entry


def link_to_entry(movements: Iterable[StockMovement], entry) -> int:
    """
    Attach the journal entry that accounts for these movements. A movement
    can be linked once; relinking raises.
    """
    ids = [m.pk for m in movements]
    if not ids:
        return 0

    updated = StockMovement.objects.filter(pk__in=ids, journal_entry__isnull=True).update(
        journal_entry=entry
    )
    if updated != len(ids):
        raise ConcurrencyConflictError("Stock movement already linked to a journal entry")
    return updated


# ============================================================
# QUERIES
# ============================================================


def current_stock_from_movements(product: Product) -> int:
    """Sum of signed movement quantities; equals stock_quantity for products created at zero."""
    total = StockMovement.objects.filter(product=product).aggregate(total=Sum("quantity"))["total"]
    return int(total or 0)


def stock_history(
    product: Product,
    *,
    movement_type: str | None = None,
    date_from=None,
    date_to=None,
    limit: int | None = None,
):
    qs = StockMovement.objects.filter(product=product).order_by("-created_at")
    if movement_type:
        qs = qs.filter(movement_type=movement_type)
    if date_from:
        qs = qs.filter(created_at__date__gte=date_from)
    if date_to:
        qs = qs.filter(created_at__date__lte=date_to)
    if limit:
        qs = qs[:limit]
    return qs
