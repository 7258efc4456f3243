from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional

from hovenier.domain.line_items import LineItem, LineKind
from hovenier.domain.money import D, HUNDRED, ZERO, qmoney, qround, to_decimal


@dataclass(frozen=True)
class PricingSettings:
    """
    Tarieven die de prijsberekening nodig heeft.
    per_scope_margin: scope -> marge% (override van de standaardmarge).
    """

    default_margin_percent: D = D("15")
    vat_percent: D = D("21")
    default_hourly_rate: D = D("45")
    per_scope_margin: Mapping[str, D] = field(default_factory=dict)

    @staticmethod
    def from_settings(s: Any) -> "PricingSettings":
        return PricingSettings(
            default_margin_percent=to_decimal(s.DEFAULT_MARGIN_PERCENT),
            vat_percent=to_decimal(s.VAT_PERCENT),
            default_hourly_rate=to_decimal(s.DEFAULT_HOURLY_RATE),
            per_scope_margin={
                k: to_decimal(v) for k, v in (s.SCOPE_MARGIN_PERCENT or {}).items()
            },
        )

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "PricingSettings":
        return PricingSettings(
            default_margin_percent=to_decimal(d.get("default_margin_percent"), default=D("15")),
            vat_percent=to_decimal(d.get("vat_percent"), default=D("21")),
            default_hourly_rate=to_decimal(d.get("default_hourly_rate"), default=D("45")),
            per_scope_margin={
                str(k): to_decimal(v) for k, v in (d.get("per_scope_margin") or {}).items()
            },
        )


@dataclass(frozen=True)
class QuoteTotals:
    material_cost: D
    labor_cost: D
    total_hours: D
    subtotal: D
    margin_percent: D
    margin_amount: D
    total_ex_vat: D
    vat_percent: D
    vat_amount: D
    total_incl_vat: D

    def to_dict(self) -> Dict[str, str]:
        return {k: str(v) for k, v in self.__dict__.items()}


def resolve_margin_percent(line: LineItem, settings: PricingSettings) -> D:
    """regel-override ?? scope-override ?? standaardmarge"""
    if line.margin_percent_override is not None:
        return line.margin_percent_override
    scope_margin: Optional[D] = settings.per_scope_margin.get(line.scope)
    if scope_margin is not None:
        return scope_margin
    return settings.default_margin_percent


def _full_precision(lines: Iterable[LineItem], settings: PricingSettings) -> Dict[str, Any]:
    material = ZERO
    labor = ZERO
    hours = ZERO
    margin = ZERO
    overridden = False

    for line in lines:
        total = line.line_total
        if line.kind is LineKind.MATERIAL:
            material += total
        else:
            labor += total
            if line.kind is LineKind.LABOR:
                hours += line.quantity

        pct = resolve_margin_percent(line, settings)
        if pct != settings.default_margin_percent:
            overridden = True
        margin += total * pct / HUNDRED

    return {
        "material": material,
        "labor": labor,
        "hours": hours,
        "margin": margin,
        "overridden": overridden,
    }


def compute_totals(lines: Iterable[LineItem], settings: PricingSettings) -> QuoteTotals:
    """
    Pure: dezelfde regels + instellingen geven altijd exact dezelfde totalen.

    Intern rekenen we op volle precisie; afronding (ROUND_HALF_UP, centen) gebeurt pas
    bij de weergavewaarden. total_ex_vat en vat_amount worden elk één keer vanaf volle
    precisie afgerond, precies zoals de factuur dat doet; margin_amount is het verschil,
    zodat subtotal + margin == total_ex en total_ex + vat == total_incl exact kloppen.
    """
    acc = _full_precision(lines, settings)

    material_cost = qmoney(acc["material"])
    labor_cost = qmoney(acc["labor"])
    subtotal = material_cost + labor_cost

    full_ex_vat = acc["material"] + acc["labor"] + acc["margin"]
    total_ex_vat = qmoney(full_ex_vat)
    margin_amount = total_ex_vat - subtotal
    vat_amount = qmoney(full_ex_vat * settings.vat_percent / HUNDRED)
    total_incl_vat = total_ex_vat + vat_amount

    full_subtotal = acc["material"] + acc["labor"]
    if acc["overridden"] and full_subtotal > ZERO:
        margin_percent = qround(acc["margin"] / full_subtotal * HUNDRED)
    else:
        margin_percent = settings.default_margin_percent

    return QuoteTotals(
        material_cost=material_cost,
        labor_cost=labor_cost,
        total_hours=acc["hours"],
        subtotal=subtotal,
        margin_percent=margin_percent,
        margin_amount=margin_amount,
        total_ex_vat=total_ex_vat,
        vat_percent=settings.vat_percent,
        vat_amount=vat_amount,
        total_incl_vat=total_incl_vat,
    )


def marked_up_unit_price(line: LineItem, settings: PricingSettings) -> D:
    """Verkoopprijs per eenheid incl. marge (volle precisie), gebruikt voor de factuur-snapshot."""
    pct = resolve_margin_percent(line, settings)
    return line.unit_price * (HUNDRED + pct) / HUNDRED
