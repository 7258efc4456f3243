from decimal import Decimal

import pytest
from jsonschema import ValidationError as SchemaError

from hovenier.engine.norms import NormTable, ProductCatalog, default_catalog, default_norm_table
from hovenier.engine.scopes import ScopeCalculator, get_calculator, register_scope, scope_registry


def test_default_table_loads_and_is_cached():
    norms = default_norm_table()
    assert norms is default_norm_table()
    assert norms.for_scope("gras")
    assert norms.hours("gras", "graszoden") == Decimal("0.12")


def test_find_is_case_insensitive_substring():
    norms = default_norm_table()
    entry = norms.find("gras", "ZAAIEN")
    assert entry is not None
    assert entry.activity == "Gras zaaien"
    assert norms.find("gras", "bestaat-niet") is None
    assert norms.hours("gras", "bestaat-niet", default="0.3") == Decimal("0.3")


def test_factors_default_to_one():
    norms = default_norm_table()
    assert norms.factor("bereikbaarheid", "slecht") == Decimal("1.5")
    assert norms.factor("bereikbaarheid", None) == Decimal("1")
    assert norms.factor("bereikbaarheid", "onbekend") == Decimal("1")
    assert norms.factor("onbekend", "goed") == Decimal("1")


def test_catalog():
    catalog = default_catalog()
    sod = catalog.get("graszoden")
    assert sod.price == Decimal("4.95")
    assert sod.loss_percent == Decimal("5")
    assert catalog.get("marmer") is None


def test_custom_norm_file_is_schema_checked(tmp_path):
    bad = tmp_path / "normuren.yaml"
    bad.write_text("version: 1\nscopes:\n  gras:\n    - {activiteit: Maaien}\n", encoding="utf-8")
    with pytest.raises(SchemaError):
        default_norm_table(str(bad))


def test_from_dict_builds_table():
    norms = NormTable.from_dict(
        {"scopes": {"heggen": [{"activiteit": "Haag knippen", "eenheid": "m", "normuur": 0.2}]}},
        {"factors": {"hoogte": {"hoog": 1.6}}},
    )
    assert norms.hours("heggen", "knippen") == Decimal("0.2")
    assert norms.factor("hoogte", "hoog") == Decimal("1.6")

    catalog = ProductCatalog.from_dict({"products": {"zand": {"naam": "Zand", "prijs": "2.5"}}})
    assert catalog.get("zand").unit == "stuk"


def test_registry_has_all_scopes_and_rejects_duplicates():
    for scope in ("grondwerk", "bestrating", "borders", "gras", "houtwerk", "water_elektra",
                  "gras_onderhoud", "borders_onderhoud", "heggen", "bomen"):
        assert get_calculator(scope) is not None
    assert get_calculator("maatwerk") is None

    with pytest.raises(ValueError):

        @register_scope
        class OtherGras(ScopeCalculator):
            scope = "gras"

    assert scope_registry["gras"].__name__ == "Gras"
