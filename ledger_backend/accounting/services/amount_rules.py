# accounting/services/amount_rules.py

"""
AMOUNT RULES + SOURCE DOCUMENT

SourceDocument is the generic bag of monetary figures an event producer
(sale invoice, payment, loan, payroll) hands to the template engine.

AmountRule is a closed union: one frozen dataclass per rule, carrying its
own parameters. `evaluate(rule, source)` dispatches with `match`; the
final `case _` is only reachable for an object outside the union.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Union

from accounting.services.exceptions import TemplateConfigurationError

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def _money(value) -> Decimal:
    if value is None or value == "":
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Origin:
    """Where an entry came from. kind NONE carries no id."""

    kind: str = "NONE"
    id: str | None = None

    def __post_init__(self):
        if self.kind == "NONE" and self.id is not None:
            raise ValueError("Origin NONE carries no id")
        if self.kind != "NONE" and not self.id:
            raise ValueError(f"Origin {self.kind} requires an id")


NO_ORIGIN = Origin()


@dataclass(frozen=True)
class SourceDocument:
    id: str
    trigger_type: str
    date: date
    description: str
    total: Decimal = ZERO
    subtotal: Decimal | None = None
    tax: Decimal = ZERO
    tax_rate_a: Decimal = ZERO
    tax_rate_b: Decimal = ZERO
    perceptions: tuple[Decimal, ...] = ()
    retention: Decimal = ZERO
    net_payment: Decimal | None = None
    principal: Decimal = ZERO
    interest: Decimal = ZERO
    currency: str = "ARS"
    custom_fields: Mapping[str, Decimal] = field(default_factory=dict)
    origin: Origin = NO_ORIGIN


# ------------------------------------------------------------
# RULES
# ------------------------------------------------------------


@dataclass(frozen=True)
class Total:
    pass


@dataclass(frozen=True)
class Subtotal:
    pass


@dataclass(frozen=True)
class Tax:
    pass


@dataclass(frozen=True)
class TaxAtRateA:
    pass


@dataclass(frozen=True)
class TaxAtRateB:
    pass


@dataclass(frozen=True)
class PerceptionSum:
    pass


@dataclass(frozen=True)
class Retention:
    pass


@dataclass(frozen=True)
class NetPayment:
    pass


@dataclass(frozen=True)
class Principal:
    pass


@dataclass(frozen=True)
class Interest:
    pass


@dataclass(frozen=True)
class Fixed:
    amount: Decimal


@dataclass(frozen=True)
class Percentage:
    rate: Decimal


@dataclass(frozen=True)
class Custom:
    field_name: str


AmountRule = Union[
    Total,
    Subtotal,
    Tax,
    TaxAtRateA,
    TaxAtRateB,
    PerceptionSum,
    Retention,
    NetPayment,
    Principal,
    Interest,
    Fixed,
    Percentage,
    Custom,
]

_SIMPLE_RULES = {
    "TOTAL": Total,
    "SUBTOTAL": Subtotal,
    "TAX": Tax,
    "TAX_AT_RATE_A": TaxAtRateA,
    "TAX_AT_RATE_B": TaxAtRateB,
    "PERCEPTION_SUM": PerceptionSum,
    "RETENTION": Retention,
    "NET_PAYMENT": NetPayment,
    "PRINCIPAL": Principal,
    "INTEREST": Interest,
}


def rule_from_line(line) -> AmountRule:
    """
    Build the rule for a TemplateLine.

    A FIXED line without fixed_amount, a PERCENTAGE line without
    percentage or a CUSTOM line without custom_field is a template
    configuration error, not a document error.
    """
    amount_type = line.amount_type
    where = f"{getattr(line.template, 'code', '?')} line {line.line_number}"

    if amount_type in _SIMPLE_RULES:
        return _SIMPLE_RULES[amount_type]()

    if amount_type == "FIXED":
        if line.fixed_amount is None:
            raise TemplateConfigurationError(f"{where}: FIXED rule requires fixed_amount")
        return Fixed(amount=_money(line.fixed_amount))

    if amount_type == "PERCENTAGE":
        if line.percentage is None:
            raise TemplateConfigurationError(f"{where}: PERCENTAGE rule requires percentage")
        return Percentage(rate=Decimal(line.percentage))

    if amount_type == "CUSTOM":
        if not line.custom_field:
            raise TemplateConfigurationError(f"{where}: CUSTOM rule requires custom_field")
        return Custom(field_name=line.custom_field)

    raise TemplateConfigurationError(f"{where}: unknown amount type {amount_type!r}")


def evaluate(rule: AmountRule, source: SourceDocument) -> Decimal:
    match rule:
        case Total():
            return _money(source.total)
        case Subtotal():
            return _money(source.subtotal)
        case Tax():
            return _money(source.tax)
        case TaxAtRateA():
            return _money(source.tax_rate_a)
        case TaxAtRateB():
            return _money(source.tax_rate_b)
        case PerceptionSum():
            return _money(sum((_money(p) for p in source.perceptions), ZERO))
        case Retention():
            return _money(source.retention)
        case NetPayment():
            if source.net_payment is None:
                return _money(source.total)
            return _money(source.net_payment)
        case Principal():
            return _money(source.principal)
        case Interest():
            return _money(source.interest)
        case Fixed(amount=amount):
            return _money(amount)
        case Percentage(rate=rate):
            return _money(_money(source.total) * Decimal(rate) / Decimal("100"))
        case Custom(field_name=name):
            return _money(source.custom_fields.get(name))
        case _:
            raise TemplateConfigurationError(f"Unsupported amount rule: {rule!r}")
