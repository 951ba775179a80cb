# products/tests/test_api.py

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from accounting.tests.helpers import make_product, make_user, provision_ledger


class ProductApiTests(TestCase):
    def setUp(self):
        provision_ledger()
        self.client = APIClient()
        self.client.force_authenticate(user=make_user())
        self.product = make_product("PCM-500", "Paracetamol 500mg", stock=10, unit_cost="50.00")

    def test_stock_is_read_only(self):
        res = self.client.patch(
            f"/api/products/products/{self.product.pk}/",
            {"stock_quantity": 999, "min_stock": 3},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["stock_quantity"], 10)
        self.assertEqual(res.data["min_stock"], 3)

    def test_cost_endpoint(self):
        res = self.client.get(f"/api/products/products/{self.product.pk}/cost/")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertTrue(res.data["has_cost"])

    def test_availability_endpoint(self):
        res = self.client.post(
            "/api/products/stock/availability/",
            {"items": [{"product_id": str(self.product.pk), "quantity": 12}]},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertFalse(res.data["ok"])
        self.assertEqual(res.data["errors"][0]["available"], 10)

    def test_adjust_endpoint(self):
        res = self.client.post(
            f"/api/products/products/{self.product.pk}/adjust/",
            {"target": 8, "reason": "count", "post_to_ledger": True},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["movement"]["quantity"], -2)
        self.assertIsNotNone(res.data["journal_entry_number"])

    def test_adjust_without_difference_is_400(self):
        res = self.client.post(
            f"/api/products/products/{self.product.pk}/adjust/", {"target": 10}, format="json"
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "stock_movement_invalid")
