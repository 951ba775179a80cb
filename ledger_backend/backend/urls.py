# backend/urls.py
"""
LEDGER BACKEND URLS

/api/                 index of the ledger modules
/api/health/          database + ledger provisioning probe
/api/auth/jwt/        token create / refresh
/api/accounting/      chart, journal entries, templates, trial balance
/api/products/        products, prices, stock movements, costing
/api/sales/           customers, invoices with inventory, receipts
/api/purchases/       suppliers, purchase invoices, supplier payments

The admin mounts at settings.ADMIN_PATH (default "admin/").
"""

from __future__ import annotations

from django.conf import settings
from django.contrib import admin
from django.db.utils import OperationalError
from django.urls import include, path
from django.views.generic import RedirectView
from drf_spectacular.utils import extend_schema
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from accounting.models import Account, JournalEntryTemplate

LEDGER_MODULES = {
    "accounting": "/api/accounting/",
    "products": "/api/products/",
    "sales": "/api/sales/",
    "purchases": "/api/purchases/",
}


# ------------------ API INDEX (PUBLIC) ------------------
@extend_schema(
    responses={
        200: {
            "type": "object",
            "properties": {
                "service": {"type": "string"},
                "auth": {"type": "object"},
                "docs": {"type": "object"},
                "modules": {"type": "object"},
            },
        }
    },
)
@api_view(["GET"])
@permission_classes([AllowAny])
def api_root(request):
    return Response(
        {
            "service": "ledger-backend",
            "auth": {
                "jwt_create": "/api/auth/jwt/create/",
                "jwt_refresh": "/api/auth/jwt/refresh/",
            },
            "docs": {"swagger": "/api/docs/", "schema": "/api/schema/"},
            "modules": LEDGER_MODULES,
        }
    )


# ------------------ HEALTH (PUBLIC) ------------------
@extend_schema(
    responses={
        200: {
            "type": "object",
            "properties": {
                "status": {"type": "string"},
                "db": {"type": "string"},
                "accounts": {"type": "integer"},
                "active_templates": {"type": "integer"},
            },
        },
        503: {
            "type": "object",
            "properties": {
                "status": {"type": "string"},
                "db": {"type": "string"},
                "error": {"type": "string"},
            },
        },
    },
)
@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """
    "ok" once the chart of accounts and the journal templates are seeded,
    "unprovisioned" while either is empty, 503 when the database is down.
    """
    try:
        accounts = Account.objects.count()
        templates = JournalEntryTemplate.objects.filter(is_active=True).count()
    except OperationalError as e:
        return Response({"status": "degraded", "db": "down", "error": str(e)}, status=503)

    return Response(
        {
            "status": "ok" if accounts and templates else "unprovisioned",
            "db": "ok",
            "accounts": accounts,
            "active_templates": templates,
        }
    )


ADMIN_PATH = getattr(settings, "ADMIN_PATH", "admin/")
if not ADMIN_PATH.endswith("/"):
    ADMIN_PATH = f"{ADMIN_PATH}/"


# ------------------ API ROUTES ------------------
api_urlpatterns = [
    path("", api_root, name="api-root"),
    path("health/", health_check, name="health-check"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("auth/jwt/create/", TokenObtainPairView.as_view(), name="jwt-create"),
    path("auth/jwt/refresh/", TokenRefreshView.as_view(), name="jwt-refresh"),
    path("accounting/", include("accounting.api.urls")),
    path("products/", include("products.urls")),
    path("sales/", include("sales.api.urls")),
    path("purchases/", include("purchases.api.urls")),
]

urlpatterns = [
    path(ADMIN_PATH, admin.site.urls),
    path("", RedirectView.as_view(url="/api/docs/", permanent=False), name="root"),
    path("api/", include(api_urlpatterns)),
]
