# accounting/api/views/accounts.py

"""
PATH: accounting/api/views/accounts.py

CHART OF ACCOUNTS API (READ-ONLY)

GET /api/accounting/accounts/                       chart with running balances
GET /api/accounting/accounts/<code>/statement/      posted movements + running balance
GET /api/accounting/trial-balance/                  from stored running sums
"""

from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.serializers.accounts import AccountListSerializer
from accounting.models.account import Account
from accounting.services.balance_service import account_statement, trial_balance


@extend_schema(tags=["accounting"])
class AccountListView(ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = AccountListSerializer
    filterset_fields = ("account_type", "is_postable", "is_active", "level")
    pagination_class = None

    queryset = Account.objects.select_related("parent").order_by("code")


def _date_param(request, name):
    raw = request.query_params.get(name)
    if not raw:
        return None, None
    value = parse_date(raw.strip())
    if value is None:
        return None, Response(
            {"detail": f"Invalid {name} (expected YYYY-MM-DD)"},
            status=status.HTTP_400_BAD_REQUEST,
        )
    return value, None


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(name="date_from", type=str, required=False, description="YYYY-MM-DD"),
        OpenApiParameter(name="date_to", type=str, required=False, description="YYYY-MM-DD"),
    ],
    responses={200: dict},
)
class AccountStatementView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, code):
        account = get_object_or_404(Account, code=code)

        date_from, error = _date_param(request, "date_from")
        if error:
            return error
        date_to, error = _date_param(request, "date_to")
        if error:
            return error

        return Response(account_statement(account, date_from=date_from, date_to=date_to))


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(
            name="include_zero",
            type=bool,
            required=False,
            description="Include accounts without movements.",
        ),
    ],
    responses={200: dict},
)
class TrialBalanceView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        include_zero = (request.query_params.get("include_zero") or "").lower() in ("1", "true", "yes")
        rows = trial_balance(include_zero=include_zero)
        return Response(
            {
                "rows": rows,
                "total_debit": sum((r["debit_total"] for r in rows), 0),
                "total_credit": sum((r["credit_total"] for r in rows), 0),
            }
        )
