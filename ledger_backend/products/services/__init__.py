from .cost_resolver import total_cost, unit_cost, validate_products_cost
from .stock_ledger import (
    adjust_to_quantity,
    link_to_entry,
    record_movement,
    validate_availability,
)

__all__ = [
    "unit_cost",
    "total_cost",
    "validate_products_cost",
    "validate_availability",
    "record_movement",
    "adjust_to_quantity",
    "link_to_entry",
]
