# sales/tests/test_api.py

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from accounting.tests.helpers import make_product, make_user, provision_ledger
from sales.models import Customer, Invoice


class SalesApiTests(TestCase):
    def setUp(self):
        provision_ledger()
        self.client = APIClient()
        self.client.force_authenticate(user=make_user())
        self.customer = Customer.objects.create(name="Farmacia Central")
        self.product = make_product("ASP-100", "Aspirin 100", stock=3, unit_cost="60.00")

    def _invoice(self, quantity):
        return self.client.post(
            "/api/sales/invoices/",
            {
                "invoice_type": "A",
                "customer_id": self.customer.pk,
                "items": [
                    {"product_id": str(self.product.pk), "quantity": quantity, "unit_price": "100.00"}
                ],
            },
            format="json",
        )

    def test_create_invoice(self):
        res = self._invoice(2)
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["cogs_amount"], "120.00")
        self.assertEqual(res.data["invoice"]["total"], "242.00")
        self.assertIsNotNone(res.data["cogs_entry_number"])

    def test_insufficient_stock_is_400_with_every_shortfall(self):
        res = self._invoice(5)
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "insufficient_stock")
        self.assertEqual(res.data["errors"][0]["available"], 3)
        self.assertEqual(res.data["errors"][0]["required"], 5)
        self.assertEqual(Invoice.objects.count(), 0)

    def test_missing_price_is_400(self):
        res = self.client.post(
            "/api/sales/invoices/",
            {"invoice_type": "A", "items": [{"product_id": str(self.product.pk), "quantity": 1}]},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_receipt_endpoint(self):
        invoice_id = self._invoice(1).data["invoice"]["id"]
        res = self.client.post(
            "/api/sales/receipts/",
            {"customer_id": self.customer.pk, "invoice_id": invoice_id, "amount": "21.00", "method": "CASH"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertIsNotNone(res.data["journal_entry_number"])

        invoice = self.client.get(f"/api/sales/invoices/{invoice_id}/")
        self.assertEqual(invoice.data["balance"], "100.00")
        self.assertEqual(invoice.data["payment_status"], "PARTIAL")

    def test_preview_endpoint(self):
        res = self.client.post(
            "/api/sales/invoices/preview/",
            {"items": [{"product_id": str(self.product.pk), "quantity": 4}]},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertFalse(res.data["valid"])
        self.assertEqual(len(res.data["shortfalls"]), 1)
