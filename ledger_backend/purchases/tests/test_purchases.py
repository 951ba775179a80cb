# purchases/tests/test_purchases.py

from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from accounting.models import Account, JournalEntry
from accounting.services.exceptions import InvoiceValidationError, PaymentValidationError
from accounting.tests.helpers import make_product, make_user, provision_ledger
from products.models import StockMovement
from products.services.cost_resolver import unit_cost
from purchases.models import PurchaseInvoice, Supplier, SupplierPayment
from purchases.services.payment_service import (
    register_purchase_payment,
    register_supplier_payment,
    supplier_account_statement,
)
from products.services.stock_ledger import lock_products
from purchases.services import purchase_invoice_service
from purchases.services.purchase_invoice_service import receive_purchase_invoice


class PurchaseTestMixin:
    def setUp(self):
        provision_ledger()
        self.user = make_user()
        self.supplier = Supplier.objects.create(name="Droguería del Sur", tax_id="30-70000000-1")
        self.product = make_product("ASP-100", "Aspirin 100")

    def _receive(self, number="0003-00001234"):
        # 10 x 400 = 4000 + 840 VAT + 160 perceptions = 5000
        return receive_purchase_invoice(
            supplier_id=self.supplier.pk,
            invoice_number=number,
            items=[{"product_id": str(self.product.pk), "quantity": 10, "unit_cost": "400.00"}],
            perceptions=[Decimal("160.00")],
            user=self.user,
        )


class PurchaseInvoiceReceivingTests(PurchaseTestMixin, TestCase):
    def test_receiving_books_stock_payable_and_entry(self):
        invoice = self._receive()

        self.assertEqual(invoice.subtotal_amount, Decimal("4000.00"))
        self.assertEqual(invoice.tax_amount, Decimal("840.00"))
        self.assertEqual(invoice.perceptions_amount, Decimal("160.00"))
        self.assertEqual(invoice.total_amount, Decimal("5000.00"))
        self.assertEqual(invoice.balance, Decimal("5000.00"))

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 10)
        self.assertEqual(unit_cost(self.product), Decimal("400.00"))

        self.supplier.refresh_from_db()
        self.assertEqual(self.supplier.balance, Decimal("5000.00"))

        entry = invoice.journal_entry
        self.assertEqual(entry.template_code, "PURCHASE_INVOICE_A")
        self.assertEqual(entry.origin_type, JournalEntry.Origin.PURCHASE)
        self.assertEqual(entry.lines.get(account__code="1.1.05.001").debit, Decimal("4000.00"))
        self.assertEqual(entry.lines.get(account__code="1.1.04.001").debit, Decimal("840.00"))
        self.assertEqual(entry.lines.get(account__code="1.1.04.002").debit, Decimal("160.00"))
        self.assertEqual(entry.lines.get(account__code="2.1.01.001").credit, Decimal("5000.00"))

        movement = StockMovement.objects.get(product=self.product)
        self.assertEqual(movement.movement_type, StockMovement.MovementType.PURCHASE)
        self.assertEqual(movement.journal_entry_id, entry.pk)

    def test_duplicate_supplier_invoice_is_rejected(self):
        self._receive()
        with self.assertRaises(InvoiceValidationError):
            self._receive()

        self.assertEqual(PurchaseInvoice.objects.count(), 1)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 10)

    def test_products_are_locked_together_before_any_movement(self):
        other = make_product("GAU-10", "Gauze 10x10")
        with mock.patch.object(
            purchase_invoice_service, "lock_products", wraps=lock_products
        ) as locker:
            receive_purchase_invoice(
                supplier_id=self.supplier.pk,
                invoice_number="0003-00009999",
                # listed in reverse pk order on purpose
                items=sorted(
                    [
                        {"product_id": str(self.product.pk), "quantity": 1, "unit_cost": "10.00"},
                        {"product_id": str(other.pk), "quantity": 2, "unit_cost": "5.00"},
                    ],
                    key=lambda i: i["product_id"],
                    reverse=True,
                ),
            )

        locker.assert_called_once()
        self.assertEqual(
            sorted(locker.call_args.args[0]), sorted([str(self.product.pk), str(other.pk)])
        )
        self.assertEqual(StockMovement.objects.filter(reference="0003-00009999").count(), 2)

    def test_non_canonical_product_id_is_accepted(self):
        invoice = receive_purchase_invoice(
            supplier_id=self.supplier.pk,
            invoice_number="0003-00000077",
            items=[{"product_id": self.product.pk.hex.upper(), "quantity": 3, "unit_cost": "10.00"}],
        )
        self.assertEqual(invoice.items.get().product_id, self.product.pk)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 3)

    def test_unknown_and_malformed_product_ids_are_rejected(self):
        for product_id in ("not-a-uuid", "00000000-0000-0000-0000-000000000000"):
            with self.assertRaises(InvoiceValidationError):
                receive_purchase_invoice(
                    supplier_id=self.supplier.pk,
                    invoice_number=f"BAD-{product_id[:3]}",
                    items=[{"product_id": product_id, "quantity": 1, "unit_cost": "10"}],
                )
        self.assertEqual(PurchaseInvoice.objects.count(), 0)

    def test_fractional_quantity_is_rejected(self):
        with self.assertRaises(InvoiceValidationError):
            receive_purchase_invoice(
                supplier_id=self.supplier.pk,
                invoice_number="X-1",
                items=[{"product_id": str(self.product.pk), "quantity": 1.5, "unit_cost": "10"}],
            )


class SupplierPaymentTests(PurchaseTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.invoice = self._receive()

    def test_partial_cash_payment(self):
        result = register_purchase_payment(
            invoice_id=self.invoice.pk,
            amount=Decimal("1500.00"),
            payment_method="CASH",
            reference="REC-1",
            user=self.user,
        )

        invoice = result.invoice
        self.assertEqual(invoice.balance, Decimal("3500.00"))
        self.assertEqual(invoice.status, PurchaseInvoice.STATUS_PENDING)
        self.assertEqual(invoice.payment_status, PurchaseInvoice.PAYMENT_PARTIAL)

        entry = result.journal_entry
        self.assertEqual(entry.origin_type, JournalEntry.Origin.PAYMENT)
        self.assertEqual(entry.lines.get(account__code="2.1.01.001").debit, Decimal("1500.00"))
        self.assertEqual(entry.lines.get(account__code="1.1.01.001").credit, Decimal("1500.00"))
        self.assertEqual(SupplierPayment.objects.get(pk=result.payment.pk).journal_entry_id, entry.pk)

        self.supplier.refresh_from_db()
        self.assertEqual(self.supplier.balance, Decimal("3500.00"))
        self.assertEqual(Account.objects.get(code="2.1.01.001").balance, Decimal("3500.00"))

    def test_full_payment_marks_invoice_paid(self):
        result = register_purchase_payment(
            invoice_id=self.invoice.pk, amount="5000", payment_method="transfer"
        )
        self.assertEqual(result.invoice.balance, Decimal("0.00"))
        self.assertEqual(result.invoice.status, PurchaseInvoice.STATUS_PAID)
        self.assertEqual(result.invoice.payment_status, PurchaseInvoice.PAYMENT_COMPLETED)
        self.assertTrue(result.journal_entry.lines.filter(account__code="1.1.01.003").exists())

    def test_overpayment_is_rejected(self):
        with self.assertRaises(PaymentValidationError):
            register_purchase_payment(
                invoice_id=self.invoice.pk, amount="5000.01", payment_method="CASH"
            )
        self.assertEqual(SupplierPayment.objects.count(), 0)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.balance, Decimal("5000.00"))

    def test_cancelled_invoice_cannot_be_paid(self):
        PurchaseInvoice.objects.filter(pk=self.invoice.pk).update(
            status=PurchaseInvoice.STATUS_CANCELLED
        )
        with self.assertRaises(PaymentValidationError):
            register_purchase_payment(invoice_id=self.invoice.pk, amount="10", payment_method="CASH")

    def test_invalid_amount_and_method(self):
        with self.assertRaises(PaymentValidationError):
            register_purchase_payment(invoice_id=self.invoice.pk, amount="-1", payment_method="CASH")
        with self.assertRaises(PaymentValidationError):
            register_purchase_payment(invoice_id=self.invoice.pk, amount="1", payment_method="IOU")

    def test_on_account_payment_and_statement(self):
        register_purchase_payment(invoice_id=self.invoice.pk, amount="1500", payment_method="CASH")
        register_supplier_payment(supplier_id=self.supplier.pk, amount="500", payment_method="CHECK")

        statement = supplier_account_statement(self.supplier)

        self.assertEqual(statement["total_charged"], Decimal("5000.00"))
        self.assertEqual(statement["total_paid"], Decimal("2000.00"))
        self.assertEqual(statement["balance"], Decimal("3000.00"))
        self.assertEqual([row["kind"] for row in statement["movements"]][0], "INVOICE")

        self.supplier.refresh_from_db()
        self.assertEqual(self.supplier.balance, Decimal("3000.00"))

    def test_payments_are_immutable(self):
        payment = register_purchase_payment(
            invoice_id=self.invoice.pk, amount="10", payment_method="CASH"
        ).payment
        payment.narration = "edited"
        with self.assertRaises(ValidationError):
            payment.save()


class PurchasesApiTests(PurchaseTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

    def test_receive_and_pay_through_api(self):
        res = self.client.post(
            "/api/purchases/invoices/",
            {
                "supplier_id": str(self.supplier.pk),
                "invoice_number": "0003-00000001",
                "items": [{"product_id": str(self.product.pk), "quantity": 2, "unit_cost": "100.00"}],
            },
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["total_amount"], "242.00")

        pay = self.client.post(
            "/api/purchases/payments/",
            {"invoice_id": res.data["id"], "amount": "300.00", "payment_method": "CASH"},
            format="json",
        )
        self.assertEqual(pay.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(pay.data["code"], "payment_invalid")

        pay = self.client.post(
            "/api/purchases/payments/",
            {"invoice_id": res.data["id"], "amount": "42.00", "payment_method": "CASH"},
            format="json",
        )
        self.assertEqual(pay.status_code, status.HTTP_201_CREATED)
        self.assertIsNotNone(pay.data["journal_entry_number"])

    def test_payment_needs_a_target(self):
        res = self.client.post(
            "/api/purchases/payments/", {"amount": "1.00", "payment_method": "CASH"}, format="json"
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
