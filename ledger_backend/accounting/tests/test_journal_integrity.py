# accounting/tests/test_journal_integrity.py

from __future__ import annotations

import threading
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import connection
from django.test import TestCase, TransactionTestCase, skipUnlessDBFeature

from accounting.models import Account, JournalEntry
from accounting.services.exceptions import (
    AccountNotPostableError,
    JournalEntryCreationError,
    UnbalancedEntryError,
)
from accounting.services.journal_entry_service import (
    create_journal_entry,
    post_entry,
    reverse_entry,
)
from accounting.tests.helpers import make_user, provision_ledger


class JournalIntegrityTests(TestCase):
    """
    GUARANTEES:
    - debit == credit (within tolerance) for every posted entry
    - entry numbers strictly increase
    - posted entries and their lines never change
    - account running sums move only when an entry is posted
    """

    def setUp(self):
        provision_ledger()
        self.user = make_user()
        self.cash = Account.objects.get(code="1.1.01.001")
        self.capital = Account.objects.get(code="3.1.01")

    def _postings(self, debit="100.00", credit="100.00"):
        return [
            {"account": self.cash, "debit": Decimal(debit), "credit": Decimal("0")},
            {"account": self.capital, "debit": Decimal("0"), "credit": Decimal(credit)},
        ]

    def test_balanced_entry_is_posted_and_moves_balances(self):
        applied = create_journal_entry(
            description="Owner contribution",
            postings=self._postings(),
            user=self.user,
        )

        entry = applied.entry
        self.assertEqual(entry.status, JournalEntry.Status.POSTED)
        self.assertIsNotNone(entry.posted_at)
        self.assertEqual(entry.totals(), (Decimal("100.00"), Decimal("100.00")))

        self.cash.refresh_from_db()
        self.capital.refresh_from_db()
        self.assertEqual(self.cash.debit_balance, Decimal("100.00"))
        self.assertEqual(self.cash.balance, Decimal("100.00"))
        self.assertEqual(self.capital.balance, Decimal("100.00"))

    def test_unbalanced_entry_is_rejected_and_nothing_is_written(self):
        with self.assertRaises(UnbalancedEntryError) as ctx:
            create_journal_entry(
                description="Broken",
                postings=self._postings(debit="100.00", credit="90.00"),
            )

        self.assertEqual(ctx.exception.difference, Decimal("10.00"))
        self.assertEqual(JournalEntry.objects.count(), 0)
        self.cash.refresh_from_db()
        self.assertEqual(self.cash.debit_balance, Decimal("0.00"))

    def test_difference_within_tolerance_is_accepted(self):
        applied = create_journal_entry(
            description="Rounding",
            postings=self._postings(debit="100.00", credit="100.01"),
        )
        self.assertTrue(applied.entry.is_posted)

    def test_grouping_account_cannot_take_postings(self):
        group = Account.objects.get(code="1.1.01")
        with self.assertRaises(AccountNotPostableError):
            create_journal_entry(
                description="Into a group",
                postings=[
                    {"account": group, "debit": Decimal("10"), "credit": Decimal("0")},
                    {"account": self.capital, "debit": Decimal("0"), "credit": Decimal("10")},
                ],
            )

    def test_line_with_both_sides_is_rejected(self):
        with self.assertRaises(JournalEntryCreationError):
            create_journal_entry(
                description="Both sides",
                postings=[
                    {"account": self.cash, "debit": Decimal("10"), "credit": Decimal("10")},
                    {"account": self.capital, "debit": Decimal("0"), "credit": Decimal("10")},
                ],
            )

    def test_posted_entry_requires_balance_check(self):
        with self.assertRaises(JournalEntryCreationError):
            create_journal_entry(
                description="Unchecked",
                postings=self._postings(),
                post=True,
                validate_balance=False,
            )

    def test_entry_numbers_strictly_increase(self):
        numbers = [
            create_journal_entry(description=f"Entry {i}", postings=self._postings()).entry.entry_number
            for i in range(4)
        ]
        self.assertEqual(numbers, sorted(numbers))
        self.assertEqual(len(set(numbers)), 4)

    def test_posted_entry_is_immutable(self):
        entry = create_journal_entry(description="Locked", postings=self._postings()).entry

        entry.description = "Edited"
        with self.assertRaises(ValidationError):
            entry.save()
        with self.assertRaises(ValidationError):
            entry.delete()

        line = entry.lines.first()
        line.description = "Edited"
        with self.assertRaises(ValidationError):
            line.save()

    def test_draft_moves_balances_only_when_posted(self):
        draft = create_journal_entry(
            description="Draft", postings=self._postings(), post=False
        ).entry
        self.assertEqual(draft.status, JournalEntry.Status.DRAFT)

        self.cash.refresh_from_db()
        self.assertEqual(self.cash.debit_balance, Decimal("0.00"))

        post_entry(draft.pk)

        draft.refresh_from_db()
        self.cash.refresh_from_db()
        self.assertEqual(draft.status, JournalEntry.Status.POSTED)
        self.assertEqual(self.cash.debit_balance, Decimal("100.00"))

        with self.assertRaises(JournalEntryCreationError):
            post_entry(draft.pk)

    def test_unbalanced_draft_cannot_be_posted(self):
        draft = create_journal_entry(
            description="Loose draft",
            postings=self._postings(debit="100.00", credit="80.00"),
            post=False,
            validate_balance=False,
        ).entry

        with self.assertRaises(UnbalancedEntryError):
            post_entry(draft.pk)

        draft.refresh_from_db()
        self.assertEqual(draft.status, JournalEntry.Status.DRAFT)

    def test_reversal_offsets_original_once(self):
        original = create_journal_entry(description="To reverse", postings=self._postings()).entry

        reversal = reverse_entry(original.pk, user=self.user).entry

        self.assertEqual(reversal.reverses_id, original.pk)
        self.assertGreater(reversal.entry_number, original.entry_number)
        cash_line = reversal.lines.get(account=self.cash)
        self.assertEqual(cash_line.credit, Decimal("100.00"))

        self.cash.refresh_from_db()
        self.assertEqual(self.cash.balance, Decimal("0.00"))
        self.assertEqual(self.cash.debit_balance, Decimal("100.00"))
        self.assertEqual(self.cash.credit_balance, Decimal("100.00"))

        with self.assertRaises(JournalEntryCreationError):
            reverse_entry(original.pk)

    def test_draft_cannot_be_reversed(self):
        draft = create_journal_entry(
            description="Draft", postings=self._postings(), post=False
        ).entry
        with self.assertRaises(JournalEntryCreationError):
            reverse_entry(draft.pk)


@skipUnlessDBFeature("has_select_for_update")
class EntryNumberingConcurrencyTests(TransactionTestCase):
    """Runs against a database with row locks (set TEST_DATABASE_URL to Postgres)."""

    WORKERS = 8

    def setUp(self):
        provision_ledger()

    def test_concurrent_postings_get_unique_consecutive_numbers(self):
        cash = Account.objects.get(code="1.1.01.001")
        capital = Account.objects.get(code="3.1.01")
        numbers = []
        failures = []
        barrier = threading.Barrier(self.WORKERS)

        def post(i):
            try:
                barrier.wait()
                entry = create_journal_entry(
                    description=f"Contribution {i}",
                    postings=[
                        {"account": cash, "debit": Decimal("10.00"), "credit": Decimal("0")},
                        {"account": capital, "debit": Decimal("0"), "credit": Decimal("10.00")},
                    ],
                ).entry
                numbers.append(entry.entry_number)
            except Exception as exc:  # noqa: BLE001
                failures.append(exc)
            finally:
                connection.close()

        threads = [threading.Thread(target=post, args=(i,)) for i in range(self.WORKERS)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(failures, [])
        self.assertEqual(sorted(numbers), list(range(1, self.WORKERS + 1)))
        cash.refresh_from_db()
        self.assertEqual(cash.debit_balance, Decimal("10.00") * self.WORKERS)
