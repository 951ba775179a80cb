# accounting/tests/helpers.py

"""
Shared fixtures for ledger tests: default chart + templates, a user, and
products with opening stock at a known cost.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model

from accounting.services.chart_provisioning import DEFAULT_CHART, provision_chart
from accounting.services.template_catalog import provision_templates
from products.models import Product, StockMovement
from products.services.stock_ledger import record_movement

User = get_user_model()


def provision_ledger():
    provision_chart(DEFAULT_CHART)
    provision_templates()


def make_user(username="ledger_admin"):
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="password123",
    )


def make_product(sku, name, *, stock=0, unit_cost=None, **fields):
    """Opening stock without a unit cost comes in as a customer return, not an acquisition."""
    product = Product.objects.create(sku=sku, name=name, **fields)
    if stock:
        record_movement(
            product=product,
            movement_type=(
                StockMovement.MovementType.CUSTOMER_RETURN
                if unit_cost is None
                else StockMovement.MovementType.PURCHASE
            ),
            quantity=stock,
            unit_cost=Decimal(unit_cost or "0.00"),
            reference="OPENING",
        )
    return product
