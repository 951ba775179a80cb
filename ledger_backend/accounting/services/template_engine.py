# accounting/services/template_engine.py

"""
JOURNAL TEMPLATE ENGINE

apply_template(code, source) turns a named template plus a SourceDocument
into one journal entry:

1. load the template (missing -> TemplateNotFoundError, inactive ->
   TemplateConfigurationError)
2. evaluate every line's amount rule against the source document
3. require postable accounts; zero amounts are skipped, negative amounts rejected
4. balance check (always for POSTED, optional for DRAFT)
5. persist entry + lines through journal_entry_service (one write)
6. POSTED -> account balances move

Also: template validation and administration (create, replace lines,
activate, deactivate).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from accounting.models.template import JournalEntryTemplate, TemplateLine
from accounting.services import account_registry
from accounting.services.amount_rules import SourceDocument, evaluate, rule_from_line
from accounting.services.exceptions import (
    JournalEntryCreationError,
    LedgerConfigurationError,
    TemplateConfigurationError,
    TemplateNotFoundError,
)
from accounting.services.journal_entry_service import AppliedEntry, create_journal_entry
from accounting.services.unit_of_work import UnitOfWork, unit_of_work

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass
class TemplateValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def get_template(code: str, *, require_active: bool = True) -> JournalEntryTemplate:
    code = (code or "").strip().upper()
    try:
        template = JournalEntryTemplate.objects.get(code=code)
    except JournalEntryTemplate.DoesNotExist as exc:
        raise TemplateNotFoundError(f"Template {code} not found") from exc

    if require_active and not template.is_active:
        raise TemplateConfigurationError(f"Template {code} is inactive")
    return template


def compute_postings(template: JournalEntryTemplate, source: SourceDocument) -> list[dict]:
    postings: list[dict] = []

    for line in template.lines.select_related("account").order_by("line_number"):
        amount = evaluate(rule_from_line(line), source)

        account_registry.require_postable(line.account)

        if amount < 0:
            raise JournalEntryCreationError(
                f"{template.code} line {line.line_number} produced a negative amount ({amount})"
            )
        if amount == 0:
            continue

        is_debit = line.side == TemplateLine.Side.DEBIT
        postings.append(
            {
                "account": line.account,
                "debit": amount if is_debit else ZERO,
                "credit": ZERO if is_debit else amount,
                "description": line.description or source.description,
            }
        )

    return postings


def apply_template(
    template_code: str,
    source: SourceDocument,
    *,
    user=None,
    auto_post: bool = True,
    validate_balance: bool = True,
    uow: UnitOfWork | None = None,
) -> AppliedEntry:
    with unit_of_work(uow, label=f"apply_template:{template_code}") as active:
        template = get_template(template_code)
        postings = compute_postings(template, source)

        applied = create_journal_entry(
            description=source.description,
            postings=postings,
            date=source.date,
            user=user,
            reference=str(source.id),
            template_code=template.code,
            trigger_type=source.trigger_type or template.trigger_type,
            origin=source.origin,
            post=auto_post,
            validate_balance=validate_balance,
            uow=active,
        )

    logger.info(
        "Template applied",
        extra={
            "template_code": template.code,
            "source_id": str(source.id),
            "entry_number": applied.entry.entry_number,
        },
    )
    return applied


def validate_template(code: str) -> TemplateValidation:
    result = TemplateValidation(valid=True)

    try:
        template = get_template(code, require_active=False)
    except TemplateNotFoundError as exc:
        return TemplateValidation(valid=False, errors=[str(exc)])

    if not template.is_active:
        result.warnings.append(f"Template {template.code} is inactive")

    lines = list(template.lines.select_related("account").order_by("line_number"))
    if not lines:
        result.errors.append(f"Template {template.code} has no lines")

    for line in lines:
        account = line.account
        if not account.is_postable:
            result.errors.append(
                f"Line {line.line_number}: account {account.code} ({account.name}) does not accept entries"
            )
        if not account.is_active:
            result.warnings.append(
                f"Line {line.line_number}: account {account.code} ({account.name}) is inactive"
            )
        try:
            rule_from_line(line)
        except TemplateConfigurationError as exc:
            result.errors.append(str(exc))

    if lines and not any(ln.side == TemplateLine.Side.DEBIT for ln in lines):
        result.errors.append(f"Template {template.code} has no DEBIT line")
    if lines and not any(ln.side == TemplateLine.Side.CREDIT for ln in lines):
        result.errors.append(f"Template {template.code} has no CREDIT line")

    result.valid = not result.errors
    return result


def get_templates_by_trigger(trigger_type: str):
    return (
        JournalEntryTemplate.objects.filter(trigger_type=trigger_type, is_active=True)
        .prefetch_related("lines__account")
        .order_by("code")
    )


# ------------------------------------------------------------
# ADMINISTRATION
# ------------------------------------------------------------


def create_template(
    *,
    code: str,
    name: str,
    trigger_type: str,
    lines: list[dict],
    description: str = "",
    is_active: bool = True,
    uow: UnitOfWork | None = None,
) -> JournalEntryTemplate:
    """
    lines: [{"account_code", "side", "amount_type", "fixed_amount"?,
             "percentage"?, "custom_field"?, "description"?}, ...]
    """
    with unit_of_work(uow, label="create_template") as active:
        template = JournalEntryTemplate.objects.create(
            code=code,
            name=name,
            trigger_type=trigger_type,
            description=description,
            is_active=is_active,
        )
        set_template_lines(template, lines, uow=active)

    logger.info("Template created", extra={"template_code": template.code})
    return template


def set_template_lines(
    template: JournalEntryTemplate, lines: list[dict], *, uow: UnitOfWork | None = None
) -> list[TemplateLine]:
    """Replace the template's lines; rejects a set without both sides."""
    sides = {str(ln.get("side", "")).upper() for ln in lines}
    if TemplateLine.Side.DEBIT not in sides or TemplateLine.Side.CREDIT not in sides:
        raise TemplateConfigurationError(
            f"Template {template.code} needs at least one DEBIT and one CREDIT line"
        )

    with unit_of_work(uow, label="set_template_lines"):
        template.lines.all().delete()

        created = []
        for idx, row in enumerate(lines, start=1):
            account = account_registry.resolve(row["account_code"])
            if not account.is_postable:
                raise LedgerConfigurationError(
                    f"Account {account.code} ({account.name}) does not accept entries"
                )
            line = TemplateLine(
                template=template,
                line_number=idx,
                account=account,
                side=str(row["side"]).upper(),
                amount_type=str(row["amount_type"]).upper(),
                fixed_amount=row.get("fixed_amount"),
                percentage=row.get("percentage"),
                custom_field=row.get("custom_field", "") or "",
                description=row.get("description", "") or "",
            )
            rule_from_line(line)
            line.full_clean()
            line.save()
            created.append(line)

    return created


def activate_template(code: str) -> JournalEntryTemplate:
    template = get_template(code, require_active=False)
    if not template.is_active:
        template.is_active = True
        template.save(update_fields=["is_active", "updated_at"])
    return template


def deactivate_template(code: str) -> JournalEntryTemplate:
    template = get_template(code, require_active=False)
    if template.is_active:
        template.is_active = False
        template.save(update_fields=["is_active", "updated_at"])
    return template
