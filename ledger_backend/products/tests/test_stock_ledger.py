# products/tests/test_stock_ledger.py

from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.test import TestCase

from accounting.models import Account, JournalEntry
from accounting.services.exceptions import (
    ConcurrencyConflictError,
    StockMovementError,
)
from accounting.tests.helpers import make_product, make_user, provision_ledger
from products.models import Product, StockMovement
from products.services.stock_ledger import (
    adjust_to_quantity,
    current_stock_from_movements,
    link_to_entry,
    lock_products,
    record_movement,
    stock_history,
    validate_availability,
)


class StockLedgerTests(TestCase):
    """
    GUARANTEES:
    - stock only changes through movements
    - stock_after == stock_before + quantity on every movement
    - stock never goes negative unless the product allows it
    - movements are append-only
    """

    def setUp(self):
        provision_ledger()
        self.user = make_user()
        self.product = make_product("PCM-500", "Paracetamol 500mg", stock=10, unit_cost="50.00")

    def test_movement_snapshots_and_stock(self):
        movement = record_movement(
            product=self.product,
            movement_type=StockMovement.MovementType.SUPPLIER_RETURN,
            quantity=-4,
            unit_cost=Decimal("50.00"),
            user=self.user,
        )

        self.assertEqual((movement.stock_before, movement.stock_after), (10, 6))
        self.assertEqual(movement.total_cost, Decimal("200.00"))
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 6)
        self.assertEqual(current_stock_from_movements(self.product), 6)

    def test_outbound_beyond_stock_is_rejected(self):
        with self.assertRaises(StockMovementError) as ctx:
            record_movement(
                product=self.product,
                movement_type=StockMovement.MovementType.ADJUSTMENT_NEGATIVE,
                quantity=-11,
            )
        self.assertIn("available 10, required 11", str(ctx.exception))
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 10)
        self.assertEqual(StockMovement.objects.filter(product=self.product).count(), 1)

    def test_negative_stock_allowed_when_enabled(self):
        product = make_product("SVC-1", "Backorder item", allow_negative_stock=True)
        movement = record_movement(
            product=product,
            movement_type=StockMovement.MovementType.ADJUSTMENT_NEGATIVE,
            quantity=-3,
        )
        self.assertEqual(movement.stock_after, -3)

    def test_direction_must_match_type(self):
        with self.assertRaises(StockMovementError):
            record_movement(
                product=self.product,
                movement_type=StockMovement.MovementType.PURCHASE,
                quantity=-1,
            )
        with self.assertRaises(StockMovementError):
            record_movement(
                product=self.product,
                movement_type=StockMovement.MovementType.CUSTOMER_RETURN,
                quantity=0,
            )

    def test_sale_movement_requires_invoice(self):
        with self.assertRaises(StockMovementError):
            record_movement(
                product=self.product,
                movement_type=StockMovement.MovementType.SALE,
                quantity=-1,
            )
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 10)

    def test_movements_are_immutable(self):
        movement = StockMovement.objects.get(product=self.product)
        movement.notes = "edited"
        with self.assertRaises(ValidationError):
            movement.save()
        with self.assertRaises(ValidationError):
            movement.delete()

    def test_availability_reports_every_shortfall(self):
        other = make_product("AMX-500", "Amoxicillin 500", stock=2, unit_cost="10.00")
        inactive = make_product("OLD-1", "Discontinued", is_active=False)

        result = validate_availability(
            [(self.product.pk, 4), (self.product.pk, 4), (other.pk, 3), (inactive.pk, 1)]
        )

        self.assertFalse(result.ok)
        self.assertEqual(len(result.errors), 2)
        shortage = next(e for e in result.errors if e.product_name == "Amoxicillin 500")
        self.assertEqual((shortage.available, shortage.required), (2, 3))
        self.assertEqual(
            shortage.message, "Insufficient stock for Amoxicillin 500: available 2, required 3"
        )

    def test_stale_snapshot_is_a_concurrency_conflict(self):
        stale = Product.objects.get(pk=self.product.pk)
        # another unit of work sells 3 after our snapshot was taken
        Product.objects.filter(pk=self.product.pk).update(stock_quantity=7)

        locked_read = mock.Mock()
        locked_read.get.return_value = stale
        with mock.patch.object(Product.objects, "select_for_update", return_value=locked_read):
            with self.assertRaises(ConcurrencyConflictError):
                record_movement(
                    product=self.product,
                    movement_type=StockMovement.MovementType.ADJUSTMENT_NEGATIVE,
                    quantity=-2,
                )

        self.assertEqual(Product.objects.get(pk=self.product.pk).stock_quantity, 7)
        self.assertEqual(StockMovement.objects.filter(product=self.product).count(), 1)

    def test_non_canonical_ids_match_the_same_product(self):
        upper = str(self.product.pk).upper()
        bare = self.product.pk.hex

        result = validate_availability([(upper, 6), (bare, 4)])
        self.assertTrue(result.ok)

        result = validate_availability([(upper, 6), (bare, 5)])
        self.assertEqual(len(result.errors), 1)
        self.assertEqual((result.errors[0].available, result.errors[0].required), (10, 11))

        self.assertEqual(list(lock_products([upper, bare])), [str(self.product.pk)])

    def test_malformed_id_is_a_shortfall(self):
        result = validate_availability([("not-a-uuid", 1)])
        self.assertFalse(result.ok)
        self.assertEqual(result.errors[0].available, 0)

    def test_availability_ok(self):
        result = validate_availability([(self.product.pk, 10)])
        self.assertTrue(result.ok)
        self.assertEqual(result.errors, [])

    def test_link_to_entry_only_once(self):
        movement = StockMovement.objects.get(product=self.product)
        _, entry = adjust_to_quantity(
            product=self.product, target=8, post_to_ledger=True, user=self.user
        )

        self.assertEqual(link_to_entry([movement], entry), 1)
        with self.assertRaises(ConcurrencyConflictError):
            link_to_entry([movement], entry)

    def test_history_filters(self):
        record_movement(
            product=self.product,
            movement_type=StockMovement.MovementType.PURCHASE,
            quantity=5,
            unit_cost=Decimal("55.00"),
        )
        self.assertEqual(stock_history(self.product).count(), 2)
        self.assertEqual(
            stock_history(self.product, movement_type=StockMovement.MovementType.PURCHASE).count(), 2
        )
        self.assertEqual(len(stock_history(self.product, limit=1)), 1)


class StockAdjustmentTests(TestCase):
    def setUp(self):
        provision_ledger()
        self.user = make_user()
        self.product = make_product("PCM-500", "Paracetamol 500mg", stock=10, unit_cost="50.00")

    def test_shrinkage_posts_cogs_against_inventory(self):
        movement, entry = adjust_to_quantity(
            product=self.product,
            target=7,
            reason="Broken blister",
            post_to_ledger=True,
            user=self.user,
        )

        self.assertEqual(movement.movement_type, StockMovement.MovementType.ADJUSTMENT_NEGATIVE)
        self.assertEqual(movement.quantity, -3)
        self.assertEqual(movement.total_cost, Decimal("150.00"))
        self.assertEqual(movement.reference, "COUNT")

        self.assertEqual(entry.origin_type, JournalEntry.Origin.ADJUSTMENT)
        self.assertEqual(entry.lines.get(account__code="5.1.01").debit, Decimal("150.00"))
        self.assertEqual(entry.lines.get(account__code="1.1.05.001").credit, Decimal("150.00"))

        movement.refresh_from_db()
        self.assertEqual(movement.journal_entry_id, entry.pk)

    def test_surplus_uses_given_cost_without_posting(self):
        movement, entry = adjust_to_quantity(
            product=self.product, target=12, unit_cost=Decimal("60.00")
        )
        self.assertEqual(movement.movement_type, StockMovement.MovementType.ADJUSTMENT_POSITIVE)
        self.assertEqual(movement.total_cost, Decimal("120.00"))
        self.assertIsNone(entry)
        self.assertEqual(Account.objects.get(code="1.1.05.001").debit_balance, Decimal("0.00"))

    def test_no_difference_raises(self):
        with self.assertRaises(StockMovementError):
            adjust_to_quantity(product=self.product, target=10)

    def test_negative_target_raises(self):
        with self.assertRaises(StockMovementError):
            adjust_to_quantity(product=self.product, target=-1)
        self.assertEqual(Product.objects.get(pk=self.product.pk).stock_quantity, 10)
