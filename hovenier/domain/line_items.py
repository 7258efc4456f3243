from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
from uuid import uuid4

from hovenier.core.errors import ValidationError
from hovenier.domain.money import D, ZERO, to_decimal


class LineKind(str, Enum):
    MATERIAL = "materiaal"
    LABOR = "arbeid"
    MACHINE = "machine"


# Velden die een caller mag wijzigen via update_line
EDITABLE_FIELDS = (
    "scope",
    "description",
    "unit",
    "quantity",
    "unit_price",
    "kind",
    "margin_percent_override",
)

OVERHEAD_AMOUNT = D("200")


@dataclass(frozen=True)
class LineItem:
    """
    Offerteregel. line_total is afgeleid (quantity * unit_price) en wordt nooit los opgeslagen.
    """

    id: str
    scope: str
    description: str
    unit: str
    quantity: D
    unit_price: D
    kind: LineKind
    margin_percent_override: Optional[D] = None

    @property
    def line_total(self) -> D:
        return self.quantity * self.unit_price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "scope": self.scope,
            "description": self.description,
            "unit": self.unit,
            "quantity": str(self.quantity),
            "unit_price": str(self.unit_price),
            "line_total": str(self.line_total),
            "kind": self.kind.value,
            "margin_percent_override": (
                None
                if self.margin_percent_override is None
                else str(self.margin_percent_override)
            ),
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "LineItem":
        # line_total in d wordt bewust genegeerd
        return _build(d, line_id=d.get("id"))


def _parse_kind(raw: Any) -> LineKind:
    if isinstance(raw, LineKind):
        return raw
    try:
        return LineKind(str(raw))
    except ValueError:
        raise ValidationError(
            f"Onbekend regeltype: {raw!r}",
            code="INVALID_LINE_KIND",
            meta={"allowed": [k.value for k in LineKind]},
        ) from None


def _parse_amount(d: Mapping[str, Any], key: str) -> D:
    try:
        value = to_decimal(d.get(key))
    except ValueError:
        raise ValidationError(
            f"{key} is geen geldig getal", code="INVALID_NUMBER", meta={"field": key}
        ) from None
    if value < ZERO:
        raise ValidationError(
            f"{key} mag niet negatief zijn",
            code="NEGATIVE_AMOUNT",
            meta={"field": key, "value": str(value)},
        )
    return value


def _parse_override(raw: Any) -> Optional[D]:
    if raw is None or raw == "":
        return None
    try:
        return to_decimal(raw)
    except ValueError:
        raise ValidationError(
            "margin_percent_override is geen geldig getal",
            code="INVALID_NUMBER",
            meta={"field": "margin_percent_override"},
        ) from None


def _build(d: Mapping[str, Any], *, line_id: Optional[str]) -> LineItem:
    description = str(d.get("description") or "").strip()
    if not description:
        raise ValidationError("Omschrijving is verplicht", code="EMPTY_DESCRIPTION")

    return LineItem(
        id=str(line_id) if line_id else uuid4().hex,
        scope=str(d.get("scope") or ""),
        description=description,
        unit=str(d.get("unit") or "stuk"),
        quantity=_parse_amount(d, "quantity"),
        unit_price=_parse_amount(d, "unit_price"),
        kind=_parse_kind(d.get("kind", LineKind.MATERIAL)),
        margin_percent_override=_parse_override(d.get("margin_percent_override")),
    )


def new_line(draft: Mapping[str, Any]) -> LineItem:
    return _build(draft, line_id=draft.get("id"))


# -----------------------------
# Pure edits over an ordered collection
# -----------------------------


def _index_of(lines: Tuple[LineItem, ...], line_id: str) -> int:
    for i, line in enumerate(lines):
        if line.id == line_id:
            return i
    raise ValidationError(
        f"Regel {line_id} bestaat niet", code="LINE_NOT_FOUND", meta={"id": line_id}
    )


def add_line(lines: Iterable[LineItem], draft: Mapping[str, Any]) -> Tuple[LineItem, ...]:
    current = tuple(lines)
    line = new_line(draft)
    if any(existing.id == line.id for existing in current):
        raise ValidationError(
            f"Regel {line.id} bestaat al", code="DUPLICATE_LINE_ID", meta={"id": line.id}
        )
    return current + (line,)


def update_line(
    lines: Iterable[LineItem], line_id: str, patch: Mapping[str, Any]
) -> Tuple[LineItem, ...]:
    current = tuple(lines)
    idx = _index_of(current, line_id)

    unknown = set(patch) - set(EDITABLE_FIELDS) - {"id", "line_total"}
    if unknown:
        raise ValidationError(
            "Onbekende velden in wijziging",
            code="UNKNOWN_FIELDS",
            meta={"fields": sorted(unknown)},
        )

    merged = current[idx].to_dict()
    for key in EDITABLE_FIELDS:
        if key in patch:
            merged[key] = patch[key]

    updated = _build(merged, line_id=current[idx].id)
    return current[:idx] + (updated,) + current[idx + 1 :]


def remove_line(lines: Iterable[LineItem], line_id: str) -> Tuple[LineItem, ...]:
    current = tuple(lines)
    idx = _index_of(current, line_id)
    return current[:idx] + current[idx + 1 :]


def copy_lines(lines: Iterable[LineItem]) -> Tuple[LineItem, ...]:
    """Snapshot met nieuwe identiteiten (factuur deelt geen regels met de offerte)."""
    return tuple(replace(line, id=uuid4().hex) for line in lines)


# -----------------------------
# Vaste regels
# -----------------------------


def overhead_line(amount: D = OVERHEAD_AMOUNT) -> LineItem:
    return new_line(
        {
            "scope": "algemeen",
            "description": "Offertevoorbereiding & administratie",
            "unit": "post",
            "quantity": 1,
            "unit_price": amount,
            "kind": LineKind.LABOR,
        }
    )


def warranty_package_line(name: str, price: Any) -> LineItem:
    return new_line(
        {
            "scope": "garantie",
            "description": f"Garantiepakket: {name}",
            "unit": "stuk",
            "quantity": 1,
            "unit_price": price,
            "kind": LineKind.MATERIAL,
        }
    )
