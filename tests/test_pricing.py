from decimal import Decimal

import pytest

from hovenier.core.settings import Settings
from hovenier.domain import line_items as li
from hovenier.engine.pricing import (
    PricingSettings,
    compute_totals,
    marked_up_unit_price,
    resolve_margin_percent,
)


def _lines(*drafts):
    lines = ()
    for d in drafts:
        lines = li.add_line(lines, d)
    return lines


def test_reference_scenario(garden_lines, pricing):
    t = compute_totals(_lines(*garden_lines), pricing)

    assert t.material_cost == Decimal("300.00")
    assert t.labor_cost == Decimal("250.00")
    assert t.subtotal == Decimal("550.00")
    assert t.margin_percent == Decimal("15")
    assert t.margin_amount == Decimal("82.50")
    assert t.total_ex_vat == Decimal("632.50")
    assert t.vat_amount == Decimal("132.83")
    assert t.total_incl_vat == Decimal("765.33")
    assert t.total_hours == Decimal("5")


def test_empty_quote_is_all_zero(pricing):
    t = compute_totals((), pricing)
    assert t.subtotal == 0
    assert t.total_incl_vat == 0
    assert t.margin_percent == pricing.default_margin_percent


def test_compute_totals_is_idempotent(garden_lines, pricing):
    lines = _lines(*garden_lines)
    assert compute_totals(lines, pricing) == compute_totals(lines, pricing)


def test_identities_hold_exactly_with_awkward_amounts(pricing):
    lines = _lines(
        {"scope": "borders", "description": "Planten", "unit": "stuk", "quantity": "7", "unit_price": "3.333", "kind": "materiaal"},
        {"scope": "borders", "description": "Planten zetten", "unit": "uur", "quantity": "2.25", "unit_price": "47.1", "kind": "arbeid"},
        {"scope": "grondwerk", "description": "Minigraver", "unit": "dag", "quantity": "1", "unit_price": "189.995", "kind": "machine"},
    )
    t = compute_totals(lines, pricing)
    assert t.subtotal == t.material_cost + t.labor_cost
    assert t.total_ex_vat == t.subtotal + t.margin_amount
    assert t.total_incl_vat == t.total_ex_vat + t.vat_amount
    # machine telt als arbeidskosten maar niet als uren
    assert t.total_hours == Decimal("2.25")


def test_margin_precedence(pricing):
    scoped = PricingSettings(
        default_margin_percent=Decimal("15"),
        per_scope_margin={"bestrating": Decimal("20")},
    )
    plain, in_scope, overridden = _lines(
        {"scope": "gras", "description": "Graszoden", "unit": "m2", "quantity": 1, "unit_price": 100, "kind": "materiaal"},
        {"scope": "bestrating", "description": "Tegels", "unit": "m2", "quantity": 1, "unit_price": 100, "kind": "materiaal"},
        {"scope": "bestrating", "description": "Klinkers", "unit": "m2", "quantity": 1, "unit_price": 100, "kind": "materiaal", "margin_percent_override": 30},
    )
    assert resolve_margin_percent(plain, scoped) == Decimal("15")
    assert resolve_margin_percent(in_scope, scoped) == Decimal("20")
    assert resolve_margin_percent(overridden, scoped) == Decimal("30")

    t = compute_totals((plain, in_scope, overridden), scoped)
    assert t.margin_amount == Decimal("65.00")
    assert t.margin_percent == Decimal("21.67")


def test_override_changes_only_its_own_line(garden_lines, pricing):
    flat = _lines(*garden_lines)
    material, labor = flat
    overridden = li.update_line(flat, material.id, {"margin_percent_override": 25})

    base = compute_totals(flat, pricing)
    t = compute_totals(overridden, pricing)
    # alleen de materiaalregel (300) gaat van 15% naar 25%
    assert t.margin_amount - base.margin_amount == Decimal("30.00")
    assert t.subtotal == base.subtotal
    assert resolve_margin_percent(overridden[1], pricing) == pricing.default_margin_percent


def test_clearing_overrides_restores_flat_default(garden_lines, pricing):
    flat = _lines(*garden_lines)
    lines = flat
    for line, pct in zip(flat, ("30", "7.5")):
        lines = li.update_line(lines, line.id, {"margin_percent_override": pct})
    assert compute_totals(lines, pricing) != compute_totals(flat, pricing)

    for line in flat:
        lines = li.update_line(lines, line.id, {"margin_percent_override": None})
    assert compute_totals(lines, pricing) == compute_totals(flat, pricing)


def test_override_margin_is_rounded_on_the_aggregate(pricing):
    # 3 x 0.35 tegen 15.5%: per regel afgerond 3 x 0.05 = 0.15, over het geheel 0.16275 -> 0.16
    lines = _lines(
        *[
            {"scope": "borders", "description": f"Stekje {n}", "unit": "stuk", "quantity": 1, "unit_price": "0.35", "kind": "materiaal", "margin_percent_override": "15.5"}
            for n in range(3)
        ]
    )
    t = compute_totals(lines, pricing)
    assert t.subtotal == Decimal("1.05")
    assert t.margin_amount == Decimal("0.16")
    assert t.total_ex_vat == Decimal("1.21")
    assert t.vat_amount == Decimal("0.25")
    assert t.total_incl_vat == Decimal("1.46")
    assert t.margin_percent == Decimal("15.50")


def test_zero_override_is_respected(pricing):
    lines = _lines(
        {"scope": "gras", "description": "Graszoden", "unit": "m2", "quantity": 10, "unit_price": 10, "kind": "materiaal", "margin_percent_override": 0},
    )
    t = compute_totals(lines, pricing)
    assert t.margin_amount == Decimal("0.00")
    assert t.margin_percent == Decimal("0.00")


def test_marked_up_unit_price(pricing):
    (line,) = _lines({"scope": "gras", "description": "Graszoden", "unit": "m2", "quantity": 1, "unit_price": 10, "kind": "materiaal"})
    assert marked_up_unit_price(line, pricing) == Decimal("11.5")


def test_pricing_settings_from_settings():
    s = Settings(_env_file=None, DEFAULT_MARGIN_PERCENT=Decimal("18"), SCOPE_MARGIN_PERCENT={"gras": Decimal("10")})
    p = PricingSettings.from_settings(s)
    assert p.default_margin_percent == Decimal("18")
    assert p.per_scope_margin == {"gras": Decimal("10")}
    assert p.vat_percent == Decimal("21")


@pytest.mark.parametrize("vat", ["0", "9", "21"])
def test_vat_follows_settings(garden_lines, vat):
    p = PricingSettings(vat_percent=Decimal(vat))
    t = compute_totals(_lines(*garden_lines), p)
    assert t.vat_percent == Decimal(vat)
    assert t.total_incl_vat == t.total_ex_vat + t.vat_amount
