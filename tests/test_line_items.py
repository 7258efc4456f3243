from decimal import Decimal

import pytest

from hovenier.core.errors import ValidationError
from hovenier.domain import line_items as li
from hovenier.domain.line_items import LineItem, LineKind
from hovenier.domain.money import format_eur, to_decimal


def _draft(**overrides):
    d = {
        "scope": "borders",
        "description": "Vaste planten",
        "unit": "stuk",
        "quantity": "12",
        "unit_price": "3.50",
        "kind": "materiaal",
    }
    d.update(overrides)
    return d


def test_new_line_parses_and_derives_total():
    line = li.new_line(_draft())
    assert line.kind is LineKind.MATERIAL
    assert line.quantity == Decimal("12")
    assert line.line_total == Decimal("42.00")
    assert len(line.id) == 32


def test_line_total_is_never_taken_from_input():
    line = LineItem.from_dict({**_draft(), "id": "abc", "line_total": "999"})
    assert line.line_total == Decimal("42.00")


def test_float_input_goes_through_str():
    line = li.new_line(_draft(quantity=0.1, unit_price=3))
    assert line.quantity == Decimal("0.1")


@pytest.mark.parametrize(
    "overrides,code",
    [
        ({"description": "   "}, "EMPTY_DESCRIPTION"),
        ({"quantity": -1}, "NEGATIVE_AMOUNT"),
        ({"unit_price": "-0.01"}, "NEGATIVE_AMOUNT"),
        ({"quantity": "veel"}, "INVALID_NUMBER"),
        ({"unit_price": "NaN"}, "INVALID_NUMBER"),
        ({"kind": "gereedschap"}, "INVALID_LINE_KIND"),
    ],
)
def test_invalid_drafts_are_rejected(overrides, code):
    with pytest.raises(ValidationError) as exc:
        li.new_line(_draft(**overrides))
    assert exc.value.code == code


def test_add_update_remove_keep_order():
    lines = li.add_line((), _draft(id="a"))
    lines = li.add_line(lines, _draft(id="b", description="Heesters"))
    lines = li.add_line(lines, _draft(id="c", description="Boomschors"))

    lines = li.update_line(lines, "b", {"quantity": 3})
    assert [l.id for l in lines] == ["a", "b", "c"]
    assert lines[1].quantity == Decimal("3")
    assert lines[1].description == "Heesters"

    lines = li.remove_line(lines, "a")
    assert [l.id for l in lines] == ["b", "c"]


def test_add_line_rejects_duplicate_id():
    lines = li.add_line((), _draft(id="a"))
    with pytest.raises(ValidationError) as exc:
        li.add_line(lines, _draft(id="a"))
    assert exc.value.code == "DUPLICATE_LINE_ID"


def test_update_unknown_line_or_field():
    lines = li.add_line((), _draft(id="a"))
    with pytest.raises(ValidationError) as exc:
        li.update_line(lines, "zz", {"quantity": 1})
    assert exc.value.code == "LINE_NOT_FOUND"

    with pytest.raises(ValidationError) as exc:
        li.update_line(lines, "a", {"colour": "groen"})
    assert exc.value.code == "UNKNOWN_FIELDS"

    with pytest.raises(ValidationError):
        li.remove_line(lines, "zz")


def test_invalid_update_leaves_collection_untouched():
    lines = li.add_line((), _draft(id="a"))
    with pytest.raises(ValidationError):
        li.update_line(lines, "a", {"quantity": -5})
    assert lines[0].quantity == Decimal("12")


def test_margin_override_can_be_set_and_cleared():
    lines = li.add_line((), _draft(id="a"))
    lines = li.update_line(lines, "a", {"margin_percent_override": "25"})
    assert lines[0].margin_percent_override == Decimal("25")
    lines = li.update_line(lines, "a", {"margin_percent_override": None})
    assert lines[0].margin_percent_override is None


def test_copy_lines_gets_new_ids():
    lines = li.add_line((), _draft(id="a"))
    copied = li.copy_lines(lines)
    assert copied[0].id != "a"
    assert copied[0].line_total == lines[0].line_total


def test_fixed_lines():
    overhead = li.overhead_line()
    assert overhead.kind is LineKind.LABOR
    assert overhead.line_total == Decimal("200")

    warranty = li.warranty_package_line("Plus", "149")
    assert warranty.scope == "garantie"
    assert warranty.description == "Garantiepakket: Plus"


def test_money_helpers():
    assert to_decimal(None) == Decimal("0")
    assert to_decimal("", default=Decimal("7")) == Decimal("7")
    with pytest.raises(ValueError):
        to_decimal(True)
    assert format_eur(Decimal("1234.565")) == "€ 1.234,57"
    assert format_eur(Decimal("-5")) == "-€ 5,00"
