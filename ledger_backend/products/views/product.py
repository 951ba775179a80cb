# products/views/product.py

"""
PRODUCT VIEWSET

Purpose:
- Product master data (CRUD; stock_quantity is read-only)
- Stock history per product
- Count adjustments (adjust_to_quantity, optionally posted to the ledger)
- Availability check for a set of items (read-only)
"""

from dataclasses import asdict

from django.utils.dateparse import parse_date
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from products.models import Product
from products.serializers.product import (
    AdjustStockSerializer,
    AvailabilityRequestSerializer,
    ProductPriceSerializer,
    ProductSerializer,
    StockMovementSerializer,
)
from products.services.cost_resolver import unit_cost
from products.services.stock_ledger import adjust_to_quantity, stock_history, validate_availability
from accounting.services.exceptions import MissingCostError


class ProductViewSet(viewsets.ModelViewSet):
    serializer_class = ProductSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ("is_active", "allow_negative_stock")
    http_method_names = ["get", "post", "patch", "head", "options"]

    queryset = Product.objects.all().order_by("name")

    @extend_schema(
        parameters=[
            OpenApiParameter(name="movement_type", type=str, required=False),
            OpenApiParameter(name="date_from", type=str, required=False, description="YYYY-MM-DD"),
            OpenApiParameter(name="date_to", type=str, required=False, description="YYYY-MM-DD"),
        ],
        responses=StockMovementSerializer(many=True),
    )
    @action(detail=True, methods=["get"])
    def history(self, request, pk=None):
        product = self.get_object()
        qp = request.query_params
        qs = stock_history(
            product,
            movement_type=qp.get("movement_type") or None,
            date_from=parse_date(qp.get("date_from") or "") if qp.get("date_from") else None,
            date_to=parse_date(qp.get("date_to") or "") if qp.get("date_to") else None,
        ).select_related("journal_entry")
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(StockMovementSerializer(page, many=True).data)
        return Response(StockMovementSerializer(qs, many=True).data)

    @extend_schema(responses={200: dict})
    @action(detail=True, methods=["get"])
    def cost(self, request, pk=None):
        product = self.get_object()
        try:
            cost = unit_cost(product)
        except MissingCostError:
            cost = None
        return Response({"product_id": str(product.pk), "unit_cost": cost, "has_cost": cost is not None})

    @extend_schema(request=ProductPriceSerializer, responses=ProductPriceSerializer)
    @action(detail=True, methods=["post"])
    def prices(self, request, pk=None):
        product = self.get_object()
        ser = ProductPriceSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        price = ser.save(product=product)
        return Response(ProductPriceSerializer(price).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=AdjustStockSerializer, responses={200: dict})
    @action(detail=True, methods=["post"])
    def adjust(self, request, pk=None):
        product = self.get_object()
        ser = AdjustStockSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        movement, entry = adjust_to_quantity(
            product=product,
            target=data["target"],
            reason=data["reason"],
            unit_cost=data["unit_cost"],
            post_to_ledger=data["post_to_ledger"],
            user=request.user,
        )
        return Response(
            {
                "movement": StockMovementSerializer(movement).data,
                "journal_entry_number": entry.entry_number if entry else None,
            }
        )


class StockAvailabilityView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["products"], request=AvailabilityRequestSerializer, responses={200: dict})
    def post(self, request):
        ser = AvailabilityRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        result = validate_availability(
            (item["product_id"], item["quantity"]) for item in ser.validated_data["items"]
        )
        return Response(
            {
                "ok": result.ok,
                "errors": [{**asdict(e), "product_id": str(e.product_id)} for e in result.errors],
            }
        )
