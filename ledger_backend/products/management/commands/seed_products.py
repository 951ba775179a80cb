# products/management/commands/seed_products.py

import random
from decimal import Decimal

from django.core.management.base import BaseCommand

from products.models import Product, ProductPrice, StockMovement
from products.services.stock_ledger import record_movement


class Command(BaseCommand):
    help = "Seed demo products with opening stock (PURCHASE movements) and sale prices"

    def handle(self, *args, **options):
        self.stdout.write(self.style.WARNING("Seeding products and stock..."))

        # -------------------------------
        # PRODUCTS (sku, name, unit cost, sale price)
        # -------------------------------
        products_data = [
            ("AMOX-500", "Amoxicillin 500mg", "820.00", "1200.00"),
            ("PARA-500", "Paracetamol 500mg", "180.00", "300.00"),
            ("VITA-C", "Vitamin C 1000mg", "510.00", "800.00"),
            ("FLU-STOP", "Flu Stop Syrup", "990.00", "1500.00"),
            ("GAUZE-10", "Sterile Gauze 10x10", "95.00", "160.00"),
        ]

        created = 0
        for sku, name, cost, price in products_data:
            product, is_new = Product.objects.get_or_create(
                sku=sku,
                defaults={"name": name, "min_stock": 5},
            )
            if not is_new:
                continue

            ProductPrice.objects.create(
                product=product,
                price_type=ProductPrice.PriceType.SALE,
                amount=Decimal(price),
            )

            # -------------------------------
            # OPENING STOCK
            # -------------------------------
            record_movement(
                product=product,
                movement_type=StockMovement.MovementType.PURCHASE,
                quantity=random.randint(20, 50),
                unit_cost=Decimal(cost),
                reference="OPENING",
                notes="Opening stock",
            )
            created += 1

        self.stdout.write(
            self.style.SUCCESS(f"✅ Products and stock seeded ({created} new products).")
        )
