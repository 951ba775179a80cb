# sales/tests/test_invoice_inventory.py

from __future__ import annotations

import threading
from decimal import Decimal

from django.db import connection
from django.test import TestCase, TransactionTestCase, skipUnlessDBFeature

from accounting.models import Account, JournalEntry, LedgerSequence
from accounting.services.exceptions import (
    InsufficientStockError,
    InvoiceValidationError,
    MissingCostError,
    TemplateConfigurationError,
)
from accounting.services.template_engine import deactivate_template
from accounting.tests.helpers import make_product, make_user, provision_ledger
from products.models import Product, StockMovement
from sales.models import Activity, Customer, Invoice
from sales.services.invoice_inventory import (
    create_invoice_with_inventory,
    preview_invoice_inventory,
    validate_invoice_for_inventory,
)


class InvoiceInventoryTests(TestCase):
    """
    GUARANTEES:
    - invoice, SALE movements and the COGS entry commit together or not at all
    - every shortfall is reported before anything is written
    - revenue entry and customer balance follow the invoice total
    """

    def setUp(self):
        provision_ledger()
        self.user = make_user()
        self.customer = Customer.objects.create(name="Farmacia Central", tax_id="30-71234567-8")
        self.aspirin = make_product("ASP-100", "Aspirin 100", stock=10, unit_cost="60.00")
        self.gauze = make_product("GAU-10", "Sterile gauze", stock=3, unit_cost="40.00")

    def _data(self, *items, **extra):
        data = {"invoice_type": "A", "customer_id": self.customer.pk, "items": list(items)}
        data.update(extra)
        return data

    def _item(self, product, quantity, unit_price="100.00", tax_rate="21.00"):
        return {
            "product_id": str(product.pk),
            "quantity": quantity,
            "unit_price": Decimal(unit_price),
            "tax_rate": Decimal(tax_rate),
        }

    def _snapshot(self):
        return (
            Invoice.objects.count(),
            JournalEntry.objects.count(),
            StockMovement.objects.count(),
            Product.objects.get(pk=self.aspirin.pk).stock_quantity,
            Product.objects.get(pk=self.gauze.pk).stock_quantity,
        )

    def test_invoice_moves_stock_and_posts_cogs_and_revenue(self):
        result = create_invoice_with_inventory(
            self._data(
                self._item(self.aspirin, 2),
                self._item(self.gauze, 1, unit_price="50.00", tax_rate="10.50"),
            ),
            user=self.user,
        )
        invoice = result.invoice

        self.assertEqual(invoice.number, "A-00000001")
        self.assertEqual(invoice.status, Invoice.Status.AUTHORIZED)
        self.assertEqual(invoice.subtotal, Decimal("250.00"))
        self.assertEqual(invoice.tax_amount, Decimal("47.25"))
        self.assertEqual(invoice.tax_rate_a_amount, Decimal("42.00"))
        self.assertEqual(invoice.tax_rate_b_amount, Decimal("5.25"))
        self.assertEqual(invoice.total, Decimal("297.25"))
        self.assertEqual(invoice.balance, invoice.total)

        self.aspirin.refresh_from_db()
        self.gauze.refresh_from_db()
        self.assertEqual(self.aspirin.stock_quantity, 8)
        self.assertEqual(self.gauze.stock_quantity, 2)

        self.assertEqual(result.cogs_amount, Decimal("160.00"))
        cogs = result.cogs_entry
        self.assertEqual(cogs.origin_type, JournalEntry.Origin.INVOICE)
        self.assertEqual(cogs.origin_id, str(invoice.pk))
        self.assertEqual(cogs.lines.get(account__code="5.1.01").debit, Decimal("160.00"))
        self.assertEqual(cogs.lines.get(account__code="1.1.05.001").credit, Decimal("160.00"))

        movements = StockMovement.objects.filter(invoice=invoice)
        self.assertEqual(movements.count(), 2)
        for movement in movements:
            self.assertEqual(movement.movement_type, StockMovement.MovementType.SALE)
            self.assertEqual(movement.reference, invoice.number)
            self.assertEqual(movement.journal_entry_id, cogs.pk)
        self.assertEqual(
            sorted(m.quantity for m in movements),
            [-2, -1],
        )

        revenue = result.revenue_entry
        self.assertEqual(revenue.template_code, "SALE_INVOICE_A")
        self.assertEqual(revenue.lines.get(account__code="1.1.03.001").debit, Decimal("297.25"))
        self.assertEqual(revenue.lines.get(account__code="4.1.01").credit, Decimal("250.00"))
        self.assertEqual(revenue.lines.get(account__code="2.1.02.001").credit, Decimal("47.25"))
        self.assertGreater(revenue.entry_number, cogs.entry_number)

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.balance, Decimal("297.25"))

        item = invoice.items.get(product=self.aspirin)
        self.assertEqual(item.unit_cost, Decimal("60.00"))

        activity = Activity.objects.get(invoice=invoice)
        self.assertEqual(activity.activity_type, Activity.Type.INVOICE_CREATED)
        self.assertEqual(activity.metadata["cogs_amount"], "160.00")
        self.assertEqual(activity.metadata["item_count"], 2)

    def test_insufficient_stock_writes_nothing(self):
        before = self._snapshot()

        with self.assertRaises(InsufficientStockError) as ctx:
            create_invoice_with_inventory(
                self._data(self._item(self.aspirin, 1), self._item(self.gauze, 5))
            )

        shortfalls = ctx.exception.shortfalls
        self.assertEqual(len(shortfalls), 1)
        self.assertEqual((shortfalls[0].available, shortfalls[0].required), (3, 5))
        self.assertEqual(
            shortfalls[0].message, "Insufficient stock for Sterile gauze: available 3, required 5"
        )
        self.assertEqual(self._snapshot(), before)

    def test_quantities_of_repeated_product_are_added(self):
        with self.assertRaises(InsufficientStockError):
            create_invoice_with_inventory(
                self._data(self._item(self.aspirin, 6), self._item(self.aspirin, 5))
            )

    def test_second_sale_of_three_against_five_is_rejected(self):
        cream = make_product("CRM-50", "Zinc cream", stock=5, unit_cost="10.00")

        create_invoice_with_inventory(self._data(self._item(cream, 3)))
        before = self._snapshot()

        with self.assertRaises(InsufficientStockError) as ctx:
            create_invoice_with_inventory(self._data(self._item(cream, 3)))

        self.assertEqual(self._snapshot(), before)
        self.assertEqual(Product.objects.get(pk=cream.pk).stock_quantity, 2)
        shortfall = ctx.exception.shortfalls[0]
        self.assertEqual((shortfall.available, shortfall.required), (2, 3))

    def test_non_canonical_product_ids_are_accepted(self):
        item = self._item(self.aspirin, 2)
        item["product_id"] = str(self.aspirin.pk).upper()
        other = self._item(self.aspirin, 1)
        other["product_id"] = self.aspirin.pk.hex

        result = create_invoice_with_inventory(self._data(item, other))

        self.assertEqual(len(result.movements), 2)
        self.assertEqual(Product.objects.get(pk=self.aspirin.pk).stock_quantity, 7)

        item["product_id"] = "not-a-uuid"
        with self.assertRaises(InvoiceValidationError):
            create_invoice_with_inventory(self._data(item))

    def test_missing_cost_writes_nothing(self):
        uncosted = make_product("NEW-1", "Uncosted cream", stock=5)
        before = self._snapshot()

        with self.assertRaises(MissingCostError):
            create_invoice_with_inventory(self._data(self._item(uncosted, 1)))

        self.assertEqual(self._snapshot(), before)
        self.assertEqual(Product.objects.get(pk=uncosted.pk).stock_quantity, 5)

    def test_failure_after_cogs_rolls_everything_back(self):
        deactivate_template("SALE_INVOICE_A")
        before = self._snapshot()

        with self.assertRaises(TemplateConfigurationError):
            create_invoice_with_inventory(self._data(self._item(self.aspirin, 2)))

        self.assertEqual(self._snapshot(), before)
        self.assertEqual(Account.objects.get(code="5.1.01").debit_balance, Decimal("0.00"))
        self.assertFalse(LedgerSequence.objects.filter(name="invoice_A").exists())

    def test_revenue_posting_can_be_skipped(self):
        result = create_invoice_with_inventory(
            self._data(self._item(self.aspirin, 1), post_revenue=False)
        )
        self.assertIsNone(result.revenue_entry)
        self.assertIsNotNone(result.cogs_entry)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.balance, Decimal("0.00"))

    def test_type_b_uses_tax_included_template(self):
        result = create_invoice_with_inventory(
            self._data(self._item(self.aspirin, 1), invoice_type="B", customer_id=None)
        )
        self.assertEqual(result.invoice.number, "B-00000001")
        self.assertIsNone(result.invoice.customer)
        revenue = result.revenue_entry
        self.assertEqual(revenue.template_code, "SALE_INVOICE_B")
        self.assertEqual(revenue.lines.get(account__code="4.1.01").credit, Decimal("121.00"))

    def test_numbers_are_sequential_per_type(self):
        first = create_invoice_with_inventory(self._data(self._item(self.aspirin, 1))).invoice
        second = create_invoice_with_inventory(self._data(self._item(self.aspirin, 1))).invoice
        self.assertEqual((first.number, second.number), ("A-00000001", "A-00000002"))

    def test_duplicate_number_is_rejected(self):
        create_invoice_with_inventory(self._data(self._item(self.aspirin, 1), number="0001-00000042"))
        with self.assertRaises(InvoiceValidationError):
            create_invoice_with_inventory(
                self._data(self._item(self.aspirin, 1), number="0001-00000042")
            )
        self.assertEqual(Product.objects.get(pk=self.aspirin.pk).stock_quantity, 9)

    def test_input_validation(self):
        with self.assertRaises(InvoiceValidationError):
            create_invoice_with_inventory(self._data())
        with self.assertRaises(InvoiceValidationError):
            create_invoice_with_inventory(self._data(self._item(self.aspirin, 0)))
        with self.assertRaises(InvoiceValidationError):
            create_invoice_with_inventory(self._data(self._item(self.aspirin, 1), invoice_type="Z"))


class InvoicePreviewTests(TestCase):
    def setUp(self):
        provision_ledger()
        self.aspirin = make_product("ASP-100", "Aspirin 100", stock=10, unit_cost="60.00", min_stock=5)

    def test_preview_reports_stock_and_cost(self):
        preview = preview_invoice_inventory([{"product_id": str(self.aspirin.pk), "quantity": 6}])

        self.assertTrue(preview["valid"])
        row = preview["items"][0]
        self.assertEqual(row["remaining"], 4)
        self.assertEqual(row["total_cost"], Decimal("360.00"))
        self.assertTrue(row["low_stock_after"])
        self.assertEqual(preview["total_cost"], Decimal("360.00"))

    def test_validate_separates_errors_and_warnings(self):
        ok = validate_invoice_for_inventory([{"product_id": str(self.aspirin.pk), "quantity": 6}])
        self.assertTrue(ok["valid"])
        self.assertEqual(len(ok["warnings"]), 1)

        short = validate_invoice_for_inventory([{"product_id": str(self.aspirin.pk), "quantity": 11}])
        self.assertFalse(short["valid"])
        self.assertIn("available 10, required 11", short["errors"][0])

    def test_preview_writes_nothing(self):
        preview_invoice_inventory([{"product_id": str(self.aspirin.pk), "quantity": 2}])
        self.assertEqual(Product.objects.get(pk=self.aspirin.pk).stock_quantity, 10)
        self.assertEqual(JournalEntry.objects.count(), 0)


@skipUnlessDBFeature("has_select_for_update")
class InvoiceConcurrencyTests(TransactionTestCase):
    """Runs against a database with row locks (set TEST_DATABASE_URL to Postgres)."""

    def setUp(self):
        provision_ledger()
        self.product = make_product("ASP-100", "Aspirin 100", stock=5, unit_cost="10.00")

    def test_concurrent_invoices_never_oversell(self):
        outcomes = []
        barrier = threading.Barrier(2)

        def sell():
            try:
                barrier.wait()
                create_invoice_with_inventory(
                    {
                        "invoice_type": "B",
                        "items": [
                            {
                                "product_id": str(self.product.pk),
                                "quantity": 3,
                                "unit_price": Decimal("20.00"),
                            }
                        ],
                    }
                )
                outcomes.append("ok")
            except InsufficientStockError:
                outcomes.append("short")
            finally:
                connection.close()

        threads = [threading.Thread(target=sell) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(sorted(outcomes), ["ok", "short"])
        self.assertEqual(Product.objects.get(pk=self.product.pk).stock_quantity, 2)
        self.assertEqual(Invoice.objects.count(), 1)
