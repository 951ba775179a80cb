# accounting/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from accounting.api.views.accounts import AccountListView, AccountStatementView, TrialBalanceView
from accounting.api.views.journal_entries import JournalEntryViewSet
from accounting.api.views.templates import JournalEntryTemplateViewSet

router = DefaultRouter()
router.register("journal-entries", JournalEntryViewSet, basename="journal-entry")
router.register("templates", JournalEntryTemplateViewSet, basename="journal-template")

urlpatterns = [
    # Router endpoints
    path("", include(router.urls)),
    # Reports
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    # Master data (read-only)
    path("accounts/", AccountListView.as_view(), name="accounts"),
    path(
        "accounts/<str:code>/statement/",
        AccountStatementView.as_view(),
        name="account-statement",
    ),
]
