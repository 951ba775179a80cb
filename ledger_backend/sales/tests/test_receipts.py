# sales/tests/test_receipts.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from accounting.models import Account
from accounting.services.exceptions import PaymentValidationError
from accounting.tests.helpers import make_product, make_user, provision_ledger
from sales.models import Activity, Customer, CustomerReceipt, Invoice
from sales.services.invoice_inventory import create_invoice_with_inventory
from sales.services.receipt_service import register_customer_receipt


class CustomerReceiptTests(TestCase):
    def setUp(self):
        provision_ledger()
        self.user = make_user()
        self.customer = Customer.objects.create(name="Farmacia Central")
        product = make_product("ASP-100", "Aspirin 100", stock=10, unit_cost="60.00")
        # total 1210.00
        self.invoice = create_invoice_with_inventory(
            {
                "invoice_type": "A",
                "customer_id": self.customer.pk,
                "items": [
                    {"product_id": str(product.pk), "quantity": 10, "unit_price": Decimal("100.00")}
                ],
            }
        ).invoice

    def test_partial_then_full_collection(self):
        first = register_customer_receipt(
            customer_id=self.customer.pk,
            invoice_id=self.invoice.pk,
            amount=Decimal("210.00"),
            method="CASH",
            user=self.user,
        )

        self.assertEqual(first.invoice.balance, Decimal("1000.00"))
        self.assertEqual(first.invoice.payment_status, Invoice.PaymentStatus.PARTIAL)
        entry = first.journal_entry
        self.assertEqual(entry.lines.get(account__code="1.1.01.001").debit, Decimal("210.00"))
        self.assertEqual(entry.lines.get(account__code="1.1.03.001").credit, Decimal("210.00"))
        self.assertEqual(CustomerReceipt.objects.get(pk=first.receipt.pk).journal_entry_id, entry.pk)

        second = register_customer_receipt(
            customer_id=self.customer.pk,
            invoice_id=self.invoice.pk,
            amount="1000.00",
            method="transfer",
        )

        self.assertEqual(second.invoice.balance, Decimal("0.00"))
        self.assertEqual(second.invoice.payment_status, Invoice.PaymentStatus.PAID)
        self.assertTrue(second.journal_entry.lines.filter(account__code="1.1.01.003").exists())

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.balance, Decimal("0.00"))
        self.assertEqual(Account.objects.get(code="1.1.03.001").balance, Decimal("0.00"))
        self.assertEqual(
            Activity.objects.filter(activity_type=Activity.Type.RECEIPT_REGISTERED).count(), 2
        )

    def test_overpayment_is_rejected(self):
        with self.assertRaises(PaymentValidationError):
            register_customer_receipt(
                customer_id=self.customer.pk,
                invoice_id=self.invoice.pk,
                amount=Decimal("1210.01"),
                method="CASH",
            )
        self.assertEqual(CustomerReceipt.objects.count(), 0)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.balance, Decimal("1210.00"))

    def test_amount_and_method_are_validated(self):
        with self.assertRaises(PaymentValidationError):
            register_customer_receipt(customer_id=self.customer.pk, amount=0, method="CASH")
        with self.assertRaises(PaymentValidationError):
            register_customer_receipt(customer_id=self.customer.pk, amount=10, method="BARTER")

    def test_cancelled_invoice_cannot_be_collected(self):
        Invoice.objects.filter(pk=self.invoice.pk).update(status=Invoice.Status.CANCELLED)
        with self.assertRaises(PaymentValidationError):
            register_customer_receipt(
                customer_id=self.customer.pk,
                invoice_id=self.invoice.pk,
                amount=10,
                method="CASH",
            )

    def test_invoice_of_another_customer_is_rejected(self):
        other = Customer.objects.create(name="Other")
        with self.assertRaises(PaymentValidationError):
            register_customer_receipt(
                customer_id=other.pk, invoice_id=self.invoice.pk, amount=10, method="CASH"
            )

    def test_on_account_receipt_lowers_customer_balance(self):
        result = register_customer_receipt(customer_id=self.customer.pk, amount="500", method="CHECK")

        self.assertIsNone(result.invoice)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.balance, Decimal("710.00"))
        self.assertTrue(result.journal_entry.lines.filter(account__code="1.1.01.005").exists())

    def test_receipts_are_immutable(self):
        receipt = register_customer_receipt(
            customer_id=self.customer.pk, amount="5", method="CASH"
        ).receipt
        receipt.reference = "edited"
        with self.assertRaises(ValidationError):
            receipt.save()
