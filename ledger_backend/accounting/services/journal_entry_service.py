# accounting/services/journal_entry_service.py

"""
======================================================
PATH: accounting/services/journal_entry_service.py
======================================================
JOURNAL ENTRY SERVICE (ACCOUNTING ENGINE)

This module is the ONLY place allowed to:
- Create JournalEntry + JournalEntryLine rows
- Allocate entry numbers
- Enforce debit == credit (within LEDGER["BALANCE_TOLERANCE"])
- Move account running balances (through account_registry.apply_posting)
- Transition DRAFT -> POSTED
- Reverse a posted entry

Everything else (templates, payments, receipts, COGS) must pass through here.

Postings are dicts: {"account": Account, "debit": ..., "credit": ..., "description": ...}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date as date_type
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings
from django.db.models import F
from django.utils import timezone

from accounting.models.journal import JournalEntry, JournalEntryLine, LedgerSequence
from accounting.services import account_registry
from accounting.services.amount_rules import NO_ORIGIN, Origin
from accounting.services.exceptions import (
    ConcurrencyConflictError,
    JournalEntryCreationError,
    UnbalancedEntryError,
)
from accounting.services.unit_of_work import UnitOfWork, unit_of_work

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
JOURNAL_SEQUENCE = "journal_entry"


@dataclass(frozen=True)
class AppliedEntry:
    entry: JournalEntry
    lines: list[JournalEntryLine]


def _money(value) -> Decimal:
    if value is None or value == "":
        return ZERO

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise JournalEntryCreationError(f"Invalid money value: {value!r}") from exc

    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def balance_tolerance() -> Decimal:
    return Decimal(str(getattr(settings, "LEDGER", {}).get("BALANCE_TOLERANCE", "0.01")))


def check_balance(total_debit: Decimal, total_credit: Decimal) -> None:
    if abs(total_debit - total_credit) > balance_tolerance():
        raise UnbalancedEntryError(total_debit=total_debit, total_credit=total_credit)


def next_sequence_value(name: str) -> int:
    """
    Allocate the next value of a named counter.

    The counter row is advanced by the database (UPDATE ... SET next_value =
    next_value + 1) before it is read back, so the row stays write-locked
    until the caller's transaction ends. Must run inside a unit of work.
    """
    LedgerSequence.objects.get_or_create(name=name)
    LedgerSequence.objects.filter(name=name).update(next_value=F("next_value") + 1)
    value = LedgerSequence.objects.values_list("next_value", flat=True).get(name=name)
    return value - 1


def next_entry_number() -> int:
    return next_sequence_value(JOURNAL_SEQUENCE)


def _normalize_postings(postings: list) -> list[dict]:
    if not postings:
        raise JournalEntryCreationError("Journal entry must contain at least one posting")

    normalized: list[dict] = []
    for line in postings:
        if not isinstance(line, dict):
            raise JournalEntryCreationError("Each posting must be an object/dict")

        account = line.get("account")
        if account is None:
            raise JournalEntryCreationError("Posting missing account")

        account_registry.require_postable(account)

        debit = _money(line.get("debit"))
        credit = _money(line.get("credit"))

        if debit < 0 or credit < 0:
            raise JournalEntryCreationError("Debit or credit cannot be negative")
        if debit > 0 and credit > 0:
            raise JournalEntryCreationError("A posting cannot have both debit and credit")
        if debit == 0 and credit == 0:
            raise JournalEntryCreationError("A posting must have either debit or credit")

        normalized.append(
            {
                "account": account,
                "debit": debit,
                "credit": credit,
                "description": (line.get("description") or "").strip()[:255],
            }
        )

    if not any(p["debit"] > 0 for p in normalized):
        raise JournalEntryCreationError("Journal entry needs at least one debit line")
    if not any(p["credit"] > 0 for p in normalized):
        raise JournalEntryCreationError("Journal entry needs at least one credit line")

    return normalized


def _apply_balances(lines) -> None:
    """Aggregate per account and update in primary-key order (stable lock order)."""
    per_account: dict = {}
    for line in lines:
        debit, credit = per_account.get(line.account_id, (ZERO, ZERO))
        per_account[line.account_id] = (debit + line.debit, credit + line.credit)

    for account_id in sorted(per_account):
        debit, credit = per_account[account_id]
        account_registry.apply_posting(account_id, debit, credit)


def create_journal_entry(
    *,
    description: str,
    postings: list,
    date: date_type | None = None,
    user=None,
    reference: str = "",
    template_code: str = "",
    trigger_type: str = "",
    origin: Origin = NO_ORIGIN,
    post: bool = True,
    validate_balance: bool = True,
    reverses: JournalEntry | None = None,
    uow: UnitOfWork | None = None,
) -> AppliedEntry:
    description = (description or "").strip()
    if not description:
        raise JournalEntryCreationError("Journal entry description is required")

    if post and not validate_balance:
        raise JournalEntryCreationError("Posted entries must be balance-checked")

    normalized = _normalize_postings(postings)

    total_debit = sum((p["debit"] for p in normalized), ZERO)
    total_credit = sum((p["credit"] for p in normalized), ZERO)
    if validate_balance:
        check_balance(total_debit, total_credit)

    status = JournalEntry.Status.POSTED if post else JournalEntry.Status.DRAFT

    with unit_of_work(uow, label="create_journal_entry"):
        entry = JournalEntry(
            entry_number=next_entry_number(),
            date=date or timezone.localdate(),
            description=description,
            reference=(reference or "")[:100],
            template_code=template_code or "",
            trigger_type=trigger_type or "",
            status=status,
            origin_type=origin.kind,
            origin_id=origin.id,
            reverses=reverses,
            user=user,
            posted_at=timezone.now() if post else None,
        )
        entry.save()

        lines = JournalEntryLine.objects.bulk_create(
            [
                JournalEntryLine(
                    entry=entry,
                    line_number=idx,
                    account=p["account"],
                    debit=p["debit"],
                    credit=p["credit"],
                    description=p["description"],
                )
                for idx, p in enumerate(normalized, start=1)
            ]
        )

        if post:
            _apply_balances(lines)

    logger.info(
        "Journal entry created",
        extra={
            "entry_number": entry.entry_number,
            "status": status,
            "template_code": template_code,
            "trigger_type": trigger_type,
            "origin": f"{origin.kind}:{origin.id}",
            "total_debit": str(total_debit),
            "total_credit": str(total_credit),
        },
    )
    return AppliedEntry(entry=entry, lines=lines)


def post_entry(entry_id, *, uow: UnitOfWork | None = None) -> JournalEntry:
    """DRAFT -> POSTED after a balance check; moves account balances."""
    with unit_of_work(uow, label="post_entry"):
        try:
            entry = JournalEntry.objects.select_for_update().get(pk=entry_id)
        except JournalEntry.DoesNotExist as exc:
            raise JournalEntryCreationError(f"Journal entry {entry_id} not found") from exc

        if entry.status != JournalEntry.Status.DRAFT:
            raise JournalEntryCreationError(
                f"Journal entry #{entry.entry_number} is already {entry.status}"
            )

        lines = list(entry.lines.select_related("account"))
        _normalize_postings(
            [{"account": ln.account, "debit": ln.debit, "credit": ln.credit} for ln in lines]
        )
        check_balance(*entry.totals())

        now = timezone.now()
        updated = JournalEntry.objects.filter(
            pk=entry.pk, status=JournalEntry.Status.DRAFT
        ).update(status=JournalEntry.Status.POSTED, posted_at=now)
        if updated != 1:
            raise ConcurrencyConflictError(
                f"Journal entry #{entry.entry_number} changed status while posting"
            )

        _apply_balances(lines)

    entry.status = JournalEntry.Status.POSTED
    entry.posted_at = now
    logger.info("Journal entry posted", extra={"entry_number": entry.entry_number})
    return entry


def reverse_entry(
    entry_id,
    *,
    description: str = "",
    date: date_type | None = None,
    user=None,
    uow: UnitOfWork | None = None,
) -> AppliedEntry:
    """
    Post an offsetting entry (debits and credits swapped).

    The original stays untouched; a posted entry can be reversed once.
    """
    with unit_of_work(uow, label="reverse_entry") as active:
        try:
            original = JournalEntry.objects.select_for_update().get(pk=entry_id)
        except JournalEntry.DoesNotExist as exc:
            raise JournalEntryCreationError(f"Journal entry {entry_id} not found") from exc

        if original.status != JournalEntry.Status.POSTED:
            raise JournalEntryCreationError("Only posted entries can be reversed")
        if JournalEntry.objects.filter(reverses=original).exists():
            raise JournalEntryCreationError(
                f"Journal entry #{original.entry_number} is already reversed"
            )

        postings = [
            {
                "account": ln.account,
                "debit": ln.credit,
                "credit": ln.debit,
                "description": ln.description,
            }
            for ln in original.lines.select_related("account")
        ]

        origin = NO_ORIGIN
        if original.origin_type != JournalEntry.Origin.NONE:
            origin = Origin(kind=original.origin_type, id=original.origin_id)

        return create_journal_entry(
            description=description or f"Reversal of entry #{original.entry_number}",
            postings=postings,
            date=date,
            user=user,
            reference=original.reference,
            template_code=original.template_code,
            trigger_type=original.trigger_type,
            origin=origin,
            reverses=original,
            uow=active,
        )
