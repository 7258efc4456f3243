from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_HALF_UP
from typing import Any, Dict, List, Mapping, Optional, Type

from hovenier.core.errors import ValidationError
from hovenier.domain.line_items import LineItem, LineKind, new_line
from hovenier.domain.money import D, HUNDRED, ZERO, qround, to_decimal
from hovenier.engine.norms import NormTable, Product, ProductCatalog

ONE = D("1")


@dataclass(frozen=True)
class ScopeContext:
    """
    Alles wat een scope-calculator nodig heeft naast zijn eigen scope_data.
    accessibility / backlog zijn de ruwe keuzes (goed|beperkt|slecht, laag|gemiddeld|hoog).
    """

    norms: NormTable
    catalog: ProductCatalog
    hourly_rate: D
    accessibility: str = "goed"
    backlog: Optional[str] = None

    @property
    def accessibility_factor(self) -> D:
        return self.norms.factor("bereikbaarheid", self.accessibility)

    @property
    def backlog_factor(self) -> D:
        return self.norms.factor("achterstalligheid", self.backlog)


# -----------------------------
# Helpers for scope data (loose dicts from the wizard)
# -----------------------------


def num(data: Optional[Mapping[str, Any]], key: str, default: Any = 0) -> D:
    if not data:
        return to_decimal(default)
    try:
        return to_decimal(data.get(key), default=to_decimal(default))
    except ValueError:
        raise ValidationError(
            f"{key} is geen geldig getal", code="INVALID_NUMBER", meta={"field": key}
        ) from None


def text(data: Optional[Mapping[str, Any]], key: str, default: str) -> str:
    if not data:
        return default
    value = data.get(key)
    return str(value) if isinstance(value, str) and value else default


def flag(data: Optional[Mapping[str, Any]], key: str) -> bool:
    return bool(data and data.get(key) is True)


def ceil_int(x: D) -> D:
    return x.to_integral_value(rounding=ROUND_CEILING)


def round_to_quarter(hours: D) -> D:
    return (hours * 4).quantize(ONE, rounding=ROUND_HALF_UP) / 4


def labor_line(scope: str, description: str, hours: D, rate: D) -> LineItem:
    return new_line(
        {
            "scope": scope,
            "description": description,
            "unit": "uur",
            "quantity": round_to_quarter(hours),
            "unit_price": rate,
            "kind": LineKind.LABOR,
        }
    )


def material_line(
    scope: str,
    product: Product,
    quantity: D,
    description: Optional[str] = None,
) -> LineItem:
    with_loss = quantity * (HUNDRED + product.loss_percent) / HUNDRED
    return new_line(
        {
            "scope": scope,
            "description": description or product.name,
            "unit": product.unit,
            "quantity": qround(with_loss),
            "unit_price": product.price,
            "kind": LineKind.MATERIAL,
        }
    )


# -----------------------------
# Calculator base + registry
# -----------------------------


class ScopeCalculator:
    """
    Eén calculator per scope.

    norm_hours(): ruwe normuren voor de voorcalculatie (zonder bereikbaarheid/achterstalligheid,
                  die past de estimation engine globaal toe).
    lines():      offerteregels (arbeid + materiaal) voor 'herberekenen'.
    """

    scope: str = "base"

    def norm_hours(self, data: Mapping[str, Any], norms: NormTable) -> D:
        return ZERO

    def lines(self, data: Mapping[str, Any], ctx: ScopeContext) -> List[LineItem]:
        return []


scope_registry: Dict[str, Type[ScopeCalculator]] = {}


def register_scope(calc_cls: Type[ScopeCalculator]) -> Type[ScopeCalculator]:
    """
    Decorator to register a scope calculator by its scope tag.
    Fails fast on duplicate registrations.
    """
    key = getattr(calc_cls, "scope", None)
    if not key or key == "base":
        raise ValueError(f"Scope calculator {calc_cls.__name__} has no scope")

    if key in scope_registry and scope_registry[key] is not calc_cls:
        raise ValueError(
            f"Duplicate scope registration for '{key}': "
            f"{scope_registry[key].__name__} vs {calc_cls.__name__}"
        )

    scope_registry[key] = calc_cls
    return calc_cls


def get_calculator(scope: str) -> Optional[ScopeCalculator]:
    cls = scope_registry.get(scope)
    return cls() if cls else None
