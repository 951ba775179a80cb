# products/services/cost_resolver.py

"""
COST RESOLVER (READ-ONLY)

unit_cost(product) answers "what does one unit of this product cost us
right now?" through a fallback chain:

1. acquisition cost from stock movements, by strategy:
   - last_acquisition: unit cost of the newest PURCHASE / ADJUSTMENT_POSITIVE,
     taken as recorded even when it is zero
   - weighted_average: sum(qty * unit cost) / sum(qty) over those movements
2. the currently valid COST price record
3. MissingCostError naming the product (never a silent zero)

The default strategy is settings.LEDGER["COST_STRATEGY"].

Call it inside the same unit of work as the movements it prices so the
cost cannot drift between validation and commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from django.conf import settings
from django.db.models import DecimalField, ExpressionWrapper, F, Sum

from accounting.services.exceptions import MissingCostError
from products.models import Product, ProductPrice, StockMovement

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

LAST_ACQUISITION = "last_acquisition"
WEIGHTED_AVERAGE = "weighted_average"
STRATEGIES = (LAST_ACQUISITION, WEIGHTED_AVERAGE)


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def default_strategy() -> str:
    return getattr(settings, "LEDGER", {}).get("COST_STRATEGY", LAST_ACQUISITION)


@dataclass(frozen=True)
class ItemCost:
    product_id: object
    product_name: str
    quantity: int
    unit_cost: Decimal
    total_cost: Decimal


@dataclass(frozen=True)
class CostBreakdown:
    total: Decimal
    currency: str
    per_item: list[ItemCost] = field(default_factory=list)


def _acquisitions(product: Product):
    return StockMovement.objects.filter(
        product=product,
        movement_type__in=StockMovement.ACQUISITION_TYPES,
    )


def _last_acquisition_cost(product: Product) -> Decimal | None:
    last = _acquisitions(product).order_by("-created_at").values_list("unit_cost", flat=True).first()
    return None if last is None else _money(last)


def _weighted_average_cost(product: Product) -> Decimal | None:
    agg = _acquisitions(product).aggregate(
        qty=Sum("quantity"),
        value=Sum(
            ExpressionWrapper(
                F("quantity") * F("unit_cost"),
                output_field=DecimalField(max_digits=20, decimal_places=2),
            )
        ),
    )
    qty = agg["qty"] or 0
    if qty <= 0:
        return None
    return _money(Decimal(agg["value"] or 0) / Decimal(qty))


def _cost_price(product: Product) -> Decimal | None:
    price = product.current_price(ProductPrice.PriceType.COST)
    return None if price is None else _money(price.amount)


def unit_cost(product: Product, *, strategy: str | None = None) -> Decimal:
    strategy = strategy or default_strategy()
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown cost strategy {strategy!r}. Use one of: {', '.join(STRATEGIES)}")

    if strategy == WEIGHTED_AVERAGE:
        cost = _weighted_average_cost(product)
    else:
        cost = _last_acquisition_cost(product)

    if cost is None:
        cost = _cost_price(product)

    if cost is None:
        logger.warning(
            "No cost defined for product",
            extra={"product_id": str(product.pk), "sku": product.sku},
        )
        raise MissingCostError(product_id=product.pk, product_name=product.name)

    return cost


def total_cost(
    items: Iterable[tuple[Product, int]],
    *,
    strategy: str | None = None,
    currency: str = "ARS",
) -> CostBreakdown:
    """
    items: (product, quantity) pairs. Any product without a cost aborts the
    whole calculation.
    """
    per_item: list[ItemCost] = []
    total = ZERO

    for product, quantity in items:
        cost = unit_cost(product, strategy=strategy)
        line_total = _money(cost * Decimal(int(quantity)))
        per_item.append(
            ItemCost(
                product_id=product.pk,
                product_name=product.name,
                quantity=int(quantity),
                unit_cost=cost,
                total_cost=line_total,
            )
        )
        total += line_total

    return CostBreakdown(total=_money(total), currency=currency, per_item=per_item)


def validate_products_cost(product_ids: Iterable, *, strategy: str | None = None) -> list[Product]:
    """Products (of the given ids) that have no resolvable cost."""
    missing = []
    for product in Product.objects.filter(pk__in=list(product_ids)).order_by("pk"):
        try:
            unit_cost(product, strategy=strategy)
        except MissingCostError:
            missing.append(product)
    return missing
