# accounting/tests/test_account_registry.py

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from accounting.models import Account
from accounting.services import account_registry
from accounting.services.balance_service import account_statement, trial_balance
from accounting.services.chart_provisioning import DEFAULT_CHART, ChartRow, provision_chart
from accounting.services.exceptions import (
    AccountNotPostableError,
    AccountResolutionError,
    PaymentValidationError,
)
from accounting.services.journal_entry_service import create_journal_entry
from accounting.tests.helpers import provision_ledger


class ChartProvisioningTests(TestCase):
    def test_hierarchy_is_built_parents_first(self):
        # rows deliberately out of order
        rows = list(reversed(DEFAULT_CHART))
        result = provision_chart(rows)

        self.assertEqual(result["created"], len(DEFAULT_CHART))
        cash = Account.objects.get(code="1.1.01.001")
        self.assertEqual(cash.level, 4)
        self.assertEqual(cash.parent.code, "1.1.01")
        self.assertEqual(cash.parent.parent.code, "1.1")

    def test_provisioning_is_idempotent(self):
        provision_chart(DEFAULT_CHART)
        result = provision_chart(DEFAULT_CHART)
        self.assertEqual(result["created"], 0)
        self.assertEqual(result["existing"], len(DEFAULT_CHART))

    def test_provisioning_logs_counts_at_info(self):
        with self.assertLogs("accounting.services.chart_provisioning", level="INFO") as logs:
            provision_chart(DEFAULT_CHART)

        record = logs.records[-1]
        self.assertEqual(record.getMessage(), "Chart of accounts provisioned")
        self.assertEqual(record.accounts_created, len(DEFAULT_CHART))
        self.assertEqual(record.accounts_existing, 0)

    def test_missing_parent_raises(self):
        with self.assertRaises(AccountResolutionError):
            provision_chart([ChartRow("9.1.01", "Orphan", Account.ASSET, True)])

    def test_child_type_must_match_parent(self):
        provision_chart(DEFAULT_CHART)
        with self.assertRaises(ValidationError):
            Account.objects.create(
                code="1.1.01.009",
                name="Wrong type",
                account_type=Account.LIABILITY,
                parent=Account.objects.get(code="1.1.01"),
            )

    def test_accounts_are_never_deleted(self):
        provision_chart(DEFAULT_CHART)
        with self.assertRaises(ValidationError):
            Account.objects.get(code="1.1.01.002").delete()


class AccountRegistryTests(TestCase):
    def setUp(self):
        provision_ledger()

    def test_resolves_by_code_and_semantic_key(self):
        self.assertEqual(account_registry.resolve("4.1.01").name, "Sales")
        self.assertEqual(
            account_registry.resolve_semantic(account_registry.ACCOUNTS_RECEIVABLE).code,
            "1.1.03.001",
        )

    def test_unknown_code_raises(self):
        with self.assertRaises(AccountResolutionError):
            account_registry.resolve("8.8.8")

    def test_unmapped_semantic_key_raises(self):
        with self.assertRaises(AccountResolutionError):
            account_registry.code_for("NOT_A_KEY")

    @override_settings(LEDGER={"ACCOUNT_CODES": {"COGS": "5.1"}})
    def test_semantic_key_mapped_to_group_is_not_postable(self):
        with self.assertRaises(AccountNotPostableError):
            account_registry.resolve_semantic(account_registry.COGS)

    def test_settlement_account_per_method(self):
        self.assertEqual(account_registry.settlement_account_for_method("cash").code, "1.1.01.001")
        self.assertEqual(account_registry.settlement_account_for_method("TRANSFER").code, "1.1.01.003")
        self.assertEqual(account_registry.settlement_account_for_method("CHECK").code, "1.1.01.005")
        with self.assertRaises(PaymentValidationError):
            account_registry.settlement_account_for_method("BARTER")

    def test_inactive_account_is_not_postable(self):
        rent = Account.objects.get(code="5.3.01")
        rent.deactivate()
        self.assertFalse(account_registry.is_postable(rent))
        with self.assertRaises(AccountNotPostableError):
            account_registry.require_postable(rent)


class BalanceReportingTests(TestCase):
    def setUp(self):
        provision_ledger()
        self.cash = Account.objects.get(code="1.1.01.001")
        self.capital = Account.objects.get(code="3.1.01")
        self.rent = Account.objects.get(code="5.3.01")

        create_journal_entry(
            description="Capital",
            date=date(2026, 1, 5),
            postings=[
                {"account": self.cash, "debit": Decimal("1000"), "credit": 0},
                {"account": self.capital, "debit": 0, "credit": Decimal("1000")},
            ],
        )
        create_journal_entry(
            description="Rent",
            date=date(2026, 2, 1),
            postings=[
                {"account": self.rent, "debit": Decimal("300"), "credit": 0},
                {"account": self.cash, "debit": 0, "credit": Decimal("300")},
            ],
        )

    def test_trial_balance_totals_match(self):
        rows = trial_balance()
        self.assertEqual({r["code"] for r in rows}, {"1.1.01.001", "3.1.01", "5.3.01"})

        total_debit = sum(r["debit_total"] for r in rows)
        total_credit = sum(r["credit_total"] for r in rows)
        self.assertEqual(total_debit, total_credit)

        cash_row = next(r for r in rows if r["code"] == "1.1.01.001")
        self.assertEqual(cash_row["balance"], Decimal("700.00"))
        self.assertEqual(cash_row["nature"], "DEBIT")
        self.assertTrue(cash_row["is_normal"])

    def test_statement_opening_and_running_balance(self):
        statement = account_statement(self.cash, date_from=date(2026, 2, 1))

        self.assertEqual(statement["opening_balance"], Decimal("1000.00"))
        self.assertEqual(len(statement["movements"]), 1)
        self.assertEqual(statement["closing_balance"], Decimal("700.00"))
        self.assertEqual(statement["closing_nature"], "DEBIT")

    def test_draft_entries_are_not_reported(self):
        create_journal_entry(
            description="Draft rent",
            postings=[
                {"account": self.rent, "debit": Decimal("50"), "credit": 0},
                {"account": self.cash, "debit": 0, "credit": Decimal("50")},
            ],
            post=False,
        )
        statement = account_statement(self.cash)
        self.assertEqual(statement["closing_balance"], Decimal("700.00"))
