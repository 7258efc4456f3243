from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from jsonschema import validate

from hovenier.domain.money import D, to_decimal

DATA_DIR = Path(__file__).parent / "data"
SCHEMA_DIR = Path(__file__).parent / "schemas"

ONE = D("1")


def _load_validated(path: Path, schema_name: str) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        d = yaml.safe_load(f)

    with (SCHEMA_DIR / schema_name).open("r", encoding="utf-8") as f:
        schema = json.load(f)

    validate(instance=d, schema=schema)
    return d


# -----------------------------
# Normuren
# -----------------------------


@dataclass(frozen=True)
class NormEntry:
    scope: str
    activity: str
    unit: str
    hours_per_unit: D


@dataclass(frozen=True)
class NormTable:
    """
    Normuren-tabel (scope -> activiteiten) + correctiefactoren.
    Lookups zijn hoofdletterongevoelig op een deel van de activiteitnaam.
    """

    entries: Tuple[NormEntry, ...]
    factors: Dict[str, Dict[str, D]] = field(default_factory=dict)

    def for_scope(self, scope: str) -> Tuple[NormEntry, ...]:
        return tuple(e for e in self.entries if e.scope == scope)

    def find(self, scope: str, *needles: str) -> Optional[NormEntry]:
        wanted = [n.lower() for n in needles if n]
        for e in self.entries:
            if e.scope != scope:
                continue
            name = e.activity.lower()
            if all(n in name for n in wanted):
                return e
        return None

    def hours(self, scope: str, *needles: str, default: Any = 0) -> D:
        """normuur per eenheid; default wanneer de tabel geen match heeft."""
        e = self.find(scope, *needles)
        return e.hours_per_unit if e is not None else to_decimal(default)

    def factor(self, kind: str, value: Optional[str]) -> D:
        if value is None:
            return ONE
        return self.factors.get(kind, {}).get(str(value), ONE)

    @staticmethod
    def from_dict(norms: Dict[str, Any], factors: Dict[str, Any]) -> "NormTable":
        entries = []
        for scope, rows in (norms.get("scopes") or {}).items():
            for row in rows:
                entries.append(
                    NormEntry(
                        scope=str(scope),
                        activity=str(row["activiteit"]),
                        unit=str(row.get("eenheid") or ""),
                        hours_per_unit=to_decimal(row["normuur"]),
                    )
                )
        parsed_factors = {
            str(kind): {str(k): to_decimal(v) for k, v in values.items()}
            for kind, values in (factors.get("factors") or {}).items()
        }
        return NormTable(entries=tuple(entries), factors=parsed_factors)

    @classmethod
    def from_yaml_files(cls, norms_path: str | Path, factors_path: str | Path) -> "NormTable":
        norms = _load_validated(Path(norms_path), "normuren.schema.json")
        factors = _load_validated(Path(factors_path), "correctiefactoren.schema.json")
        return cls.from_dict(norms, factors)


# -----------------------------
# Productcatalogus
# -----------------------------


@dataclass(frozen=True)
class Product:
    key: str
    name: str
    unit: str
    price: D
    loss_percent: D = D("0")


@dataclass(frozen=True)
class ProductCatalog:
    products: Dict[str, Product]

    def get(self, key: str) -> Optional[Product]:
        return self.products.get(key)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "ProductCatalog":
        return ProductCatalog(
            products={
                str(key): Product(
                    key=str(key),
                    name=str(row["naam"]),
                    unit=str(row.get("eenheid") or "stuk"),
                    price=to_decimal(row["prijs"]),
                    loss_percent=to_decimal(row.get("verlies")),
                )
                for key, row in (d.get("products") or {}).items()
            }
        )

    @classmethod
    def from_yaml_file(cls, path: str | Path) -> "ProductCatalog":
        return cls.from_dict(_load_validated(Path(path), "producten.schema.json"))


# -----------------------------
# Defaults (thread-safe, lazily loaded once)
# -----------------------------

_lock = threading.Lock()
_default_norms: Optional[NormTable] = None
_default_catalog: Optional[ProductCatalog] = None


def default_norm_table(norms_path: Optional[str] = None) -> NormTable:
    global _default_norms
    if norms_path:
        return NormTable.from_yaml_files(norms_path, DATA_DIR / "correctiefactoren.yaml")
    with _lock:
        if _default_norms is None:
            _default_norms = NormTable.from_yaml_files(
                DATA_DIR / "normuren.yaml", DATA_DIR / "correctiefactoren.yaml"
            )
        return _default_norms


def default_catalog() -> ProductCatalog:
    global _default_catalog
    with _lock:
        if _default_catalog is None:
            _default_catalog = ProductCatalog.from_yaml_file(DATA_DIR / "producten.yaml")
        return _default_catalog
