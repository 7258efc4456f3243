"""
Aanleg-scopes (installation): grondwerk, bestrating, borders, gras, houtwerk,
water_elektra, specials.
"""
from __future__ import annotations

from typing import Any, List, Mapping

from hovenier.domain.line_items import LineItem
from hovenier.domain.money import D, ZERO
from hovenier.engine.norms import NormTable

from .base import (
    ScopeCalculator,
    ScopeContext,
    ceil_int,
    flag,
    labor_line,
    material_line,
    num,
    register_scope,
    text,
)

# Ontgraafdiepte in meters (voor afvoervolume)
DEPTH_METERS = {"licht": D("0.2"), "standaard": D("0.4"), "zwaar": D("0.6")}
# Afvoervolume in de voorcalculatie (m3 per m2)
DEPTH_DISPOSAL_M3 = {"licht": D("0.15"), "standaard": D("0.3"), "zwaar": D("0.5")}

SAND_M3_PER_M2 = D("0.05")
BARK_M3_PER_M2 = D("0.05")
GRASS_SEED_KG_PER_M2 = D("0.035")
PLANTS_PER_M2 = {"weinig": D("3"), "gemiddeld": D("6"), "veel": D("10")}

FENCE_BOARDS_PER_METER = D("6")
POST_SPACING_METERS = D("2")
DECK_BOARDS_PER_M2 = D("7")
DECK_EXTRA_FOUNDATION_POINTS = D("4")
PERGOLA_FOUNDATION_POINTS = D("4")

TRENCH_METERS_PER_LIGHT_POINT = D("5")

INSTALLATION_HOURS = {"jacuzzi": D("8"), "sauna": D("6"), "prefab": D("4")}
INSTALLATION_HOURS_DEFAULT = D("4")


@register_scope
class Grondwerk(ScopeCalculator):
    scope = "grondwerk"

    def norm_hours(self, data: Mapping[str, Any], norms: NormTable) -> D:
        area = num(data, "oppervlakte")
        depth = text(data, "diepte", "standaard")

        hours = area * norms.hours(self.scope, "ontgraven", default="0.25") * norms.factor("diepte", depth)
        if flag(data, "afvoerGrond"):
            volume = area * DEPTH_DISPOSAL_M3.get(depth, DEPTH_DISPOSAL_M3["standaard"])
            hours += volume * norms.hours(self.scope, "afvoer", default="0.1")
        return hours

    def lines(self, data: Mapping[str, Any], ctx: ScopeContext) -> List[LineItem]:
        area = num(data, "oppervlakte")
        if area <= ZERO:
            return []

        depth = text(data, "diepte", "standaard")
        factor = ctx.accessibility_factor
        out: List[LineItem] = []

        entry = ctx.norms.find(self.scope, f"ontgraven {depth}")
        if entry:
            out.append(
                labor_line(self.scope, f"Ontgraven {depth}", area * entry.hours_per_unit * factor, ctx.hourly_rate)
            )

        if flag(data, "afvoerGrond"):
            volume = area * DEPTH_METERS.get(depth, DEPTH_METERS["standaard"])
            entry = ctx.norms.find(self.scope, "afvoeren")
            if entry:
                out.append(
                    labor_line(self.scope, "Grond afvoeren", volume * entry.hours_per_unit * factor, ctx.hourly_rate)
                )
            product = ctx.catalog.get("afvoer_grond")
            if product:
                out.append(material_line(self.scope, product, volume))
        return out


@register_scope
class Bestrating(ScopeCalculator):
    scope = "bestrating"

    _activity = {"tegel": "tegels", "klinker": "klinkers", "natuursteen": "natuursteen"}

    def norm_hours(self, data: Mapping[str, Any], norms: NormTable) -> D:
        area = num(data, "oppervlakte")
        kind = text(data, "typeBestrating", "tegel")
        cutting = norms.factor("snijwerk", text(data, "snijwerk", "laag"))

        entry = norms.find(self.scope, kind) or norms.find(self.scope, "leggen")
        per_m2 = entry.hours_per_unit if entry else D("0.4")
        hours = area * per_m2 * cutting
        hours += area * norms.hours(self.scope, "zandbed", default="0.1")
        return hours

    def lines(self, data: Mapping[str, Any], ctx: ScopeContext) -> List[LineItem]:
        area = num(data, "oppervlakte")
        if area <= ZERO:
            return []

        kind = text(data, "typeBestrating", "tegel")
        activity = self._activity.get(kind, "tegels")
        factor = ctx.accessibility_factor
        cutting = ctx.norms.factor("snijwerk", text(data, "snijwerk", "laag"))
        out: List[LineItem] = []

        entry = ctx.norms.find(self.scope, f"{activity} leggen")
        if entry:
            out.append(
                labor_line(
                    self.scope,
                    f"{activity.capitalize()} leggen",
                    area * entry.hours_per_unit * factor * cutting,
                    ctx.hourly_rate,
                )
            )

        entry = ctx.norms.find(self.scope, "zandbed")
        if entry:
            out.append(
                labor_line(self.scope, "Zandbed aanbrengen", area * entry.hours_per_unit * factor, ctx.hourly_rate)
            )

        sand = ctx.catalog.get("straatzand")
        if sand:
            out.append(material_line(self.scope, sand, area * SAND_M3_PER_M2))

        if flag(data, "opsluitbanden"):
            # omtrek ~ 4 * sqrt(oppervlakte)
            perimeter = 4 * area.sqrt()
            entry = ctx.norms.find(self.scope, "opsluitbanden")
            if entry:
                out.append(
                    labor_line(
                        self.scope, "Opsluitbanden plaatsen", perimeter * entry.hours_per_unit * factor, ctx.hourly_rate
                    )
                )
            band = ctx.catalog.get("opsluitband")
            if band:
                out.append(material_line(self.scope, band, perimeter))
        return out


@register_scope
class Borders(ScopeCalculator):
    scope = "borders"

    _level = {"weinig": "laag", "gemiddeld": "gemiddeld", "veel": "hoog"}

    def norm_hours(self, data: Mapping[str, Any], norms: NormTable) -> D:
        area = num(data, "oppervlakte")
        intensity = text(data, "beplantingsintensiteit", "gemiddeld")

        hours = area * norms.hours(self.scope, "grondbewerking", default="0.2")
        entry = norms.find(self.scope, "planten", self._level.get(intensity, "gemiddeld")) or norms.find(
            self.scope, "planten"
        )
        per_m2 = entry.hours_per_unit if entry else D("0.25")
        hours += area * per_m2 * norms.factor("intensiteit", intensity)
        return hours

    def lines(self, data: Mapping[str, Any], ctx: ScopeContext) -> List[LineItem]:
        area = num(data, "oppervlakte")
        if area <= ZERO:
            return []

        intensity = text(data, "beplantingsintensiteit", "gemiddeld")
        factor = ctx.accessibility_factor
        out: List[LineItem] = []

        entry = ctx.norms.find(self.scope, "grondbewerking")
        if entry:
            out.append(
                labor_line(self.scope, "Grondbewerking border", area * entry.hours_per_unit * factor, ctx.hourly_rate)
            )

        entry = ctx.norms.find(self.scope, "planten", self._level.get(intensity, "gemiddeld"))
        if entry:
            out.append(
                labor_line(
                    self.scope,
                    f"Beplanten ({intensity} intensiteit)",
                    area * entry.hours_per_unit * factor,
                    ctx.hourly_rate,
                )
            )

        plants = ctx.catalog.get("bodembedekker")
        if plants:
            per_m2 = PLANTS_PER_M2.get(intensity, PLANTS_PER_M2["gemiddeld"])
            out.append(material_line(self.scope, plants, area * per_m2))

        if text(data, "afwerking", "geen") in ("schors", "grind"):
            entry = ctx.norms.find(self.scope, "schors")
            if entry:
                out.append(
                    labor_line(self.scope, "Schors aanbrengen", area * entry.hours_per_unit * factor, ctx.hourly_rate)
                )
            bark = ctx.catalog.get("boomschors")
            if bark:
                out.append(material_line(self.scope, bark, area * BARK_M3_PER_M2))
        return out


@register_scope
class Gras(ScopeCalculator):
    scope = "gras"

    def norm_hours(self, data: Mapping[str, Any], norms: NormTable) -> D:
        area = num(data, "oppervlakte")
        kind = text(data, "type", "graszoden")
        default = "0.12" if kind == "graszoden" else "0.05"
        return area * norms.hours(self.scope, kind, default=default)

    def lines(self, data: Mapping[str, Any], ctx: ScopeContext) -> List[LineItem]:
        area = num(data, "oppervlakte")
        if area <= ZERO:
            return []

        factor = ctx.accessibility_factor
        out: List[LineItem] = []

        entry = ctx.norms.find(self.scope, "ondergrond")
        if entry:
            out.append(
                labor_line(self.scope, "Ondergrond bewerken", area * entry.hours_per_unit * factor, ctx.hourly_rate)
            )

        if text(data, "type", "graszoden") == "graszoden":
            entry = ctx.norms.find(self.scope, "graszoden")
            if entry:
                out.append(
                    labor_line(self.scope, "Graszoden leggen", area * entry.hours_per_unit * factor, ctx.hourly_rate)
                )
            sod = ctx.catalog.get("graszoden")
            if sod:
                out.append(material_line(self.scope, sod, area))
        else:
            entry = ctx.norms.find(self.scope, "zaaien")
            if entry:
                out.append(
                    labor_line(self.scope, "Gras zaaien", area * entry.hours_per_unit * factor, ctx.hourly_rate)
                )
            seed = ctx.catalog.get("graszaad")
            if seed:
                out.append(material_line(self.scope, seed, area * GRASS_SEED_KG_PER_M2))
        return out


@register_scope
class Houtwerk(ScopeCalculator):
    scope = "houtwerk"

    def norm_hours(self, data: Mapping[str, Any], norms: NormTable) -> D:
        size = num(data, "afmeting")
        kind = text(data, "typeHoutwerk", "schutting")
        foundation = text(data, "fundering", "standaard")

        hours = size * norms.hours(self.scope, kind, default="0.8")
        posts = ceil_int(size / POST_SPACING_METERS) if kind == "schutting" else D("4")
        hours += posts * norms.hours(self.scope, "fundering", foundation, default="0.5")
        return hours

    def _foundation_points(self, kind: str, size: D) -> D:
        if kind == "schutting":
            return ceil_int(size / POST_SPACING_METERS) + 1
        if kind == "vlonder":
            return ceil_int(size / POST_SPACING_METERS) + DECK_EXTRA_FOUNDATION_POINTS
        if kind == "pergola":
            return PERGOLA_FOUNDATION_POINTS
        return ZERO

    def lines(self, data: Mapping[str, Any], ctx: ScopeContext) -> List[LineItem]:
        size = num(data, "afmeting")
        if size <= ZERO:
            return []

        kind = text(data, "typeHoutwerk", "schutting")
        foundation = text(data, "fundering", "standaard")
        factor = ctx.accessibility_factor
        out: List[LineItem] = []

        if kind == "schutting":
            entry = ctx.norms.find(self.scope, "schutting")
            if entry:
                out.append(
                    labor_line(self.scope, "Schutting plaatsen", size * entry.hours_per_unit * factor, ctx.hourly_rate)
                )
            boards = ctx.catalog.get("schuttingplank")
            if boards:
                out.append(material_line(self.scope, boards, size * FENCE_BOARDS_PER_METER))
            posts = ctx.catalog.get("schuttingpaal")
            if posts:
                out.append(material_line(self.scope, posts, ceil_int(size / POST_SPACING_METERS) + 1))
        elif kind == "vlonder":
            entry = ctx.norms.find(self.scope, "vlonder")
            if entry:
                out.append(
                    labor_line(self.scope, "Vlonder leggen", size * entry.hours_per_unit * factor, ctx.hourly_rate)
                )
            deck = ctx.catalog.get("vlonderdeel")
            if deck:
                out.append(material_line(self.scope, deck, size * DECK_BOARDS_PER_M2))
        elif kind == "pergola":
            entry = ctx.norms.find(self.scope, "pergola")
            if entry:
                out.append(
                    labor_line(self.scope, "Pergola bouwen", size * entry.hours_per_unit * factor, ctx.hourly_rate)
                )

        points = self._foundation_points(kind, size)
        if points > ZERO:
            entry = ctx.norms.find(self.scope, "fundering", foundation)
            if entry:
                out.append(
                    labor_line(
                        self.scope,
                        f"Fundering plaatsen ({foundation})",
                        points * entry.hours_per_unit * factor,
                        ctx.hourly_rate,
                    )
                )
            footing = ctx.catalog.get("betonpoer")
            if footing:
                out.append(material_line(self.scope, footing, points))
        return out


@register_scope
class WaterElektra(ScopeCalculator):
    scope = "water_elektra"

    def norm_hours(self, data: Mapping[str, Any], norms: NormTable) -> D:
        points = num(data, "aantalPunten")
        hours = points * norms.hours(self.scope, "armatuur", default="0.5")
        if flag(data, "sleuvenNodig"):
            hours += points * 3 * norms.hours(self.scope, "sleuf graven", default="0.3")
        return hours

    def lines(self, data: Mapping[str, Any], ctx: ScopeContext) -> List[LineItem]:
        points = num(data, "aantalPunten")
        if text(data, "verlichting", "") == "geen" or points <= ZERO:
            return []

        factor = ctx.accessibility_factor
        out: List[LineItem] = []

        if flag(data, "sleuvenNodig"):
            trench = points * TRENCH_METERS_PER_LIGHT_POINT
            for needle, label in (
                ("sleuf graven", "Sleuf graven"),
                ("kabel leggen", "Kabel leggen"),
                ("sleuf herstellen", "Sleuf herstellen"),
            ):
                entry = ctx.norms.find(self.scope, needle)
                if entry:
                    out.append(labor_line(self.scope, label, trench * entry.hours_per_unit * factor, ctx.hourly_rate))
            cable = ctx.catalog.get("kabel")
            if cable:
                out.append(material_line(self.scope, cable, trench))

        entry = ctx.norms.find(self.scope, "armatuur")
        if entry:
            out.append(
                labor_line(self.scope, "Armaturen plaatsen", points * entry.hours_per_unit * factor, ctx.hourly_rate)
            )
        for key in ("grondspot", "lasdoos"):
            product = ctx.catalog.get(key)
            if product:
                out.append(material_line(self.scope, product, points))
        return out


@register_scope
class Specials(ScopeCalculator):
    """Jacuzzi / sauna / prefab: vaste installatie-uren per item, geen normuren-tabel."""

    scope = "specials"

    def _items(self, data: Mapping[str, Any]) -> list:
        items = (data or {}).get("items")
        return [i for i in items if isinstance(i, Mapping)] if isinstance(items, list) else []

    def norm_hours(self, data: Mapping[str, Any], norms: NormTable) -> D:
        return sum(
            (INSTALLATION_HOURS.get(str(i.get("type")), INSTALLATION_HOURS_DEFAULT) for i in self._items(data)),
            ZERO,
        )

    def lines(self, data: Mapping[str, Any], ctx: ScopeContext) -> List[LineItem]:
        out: List[LineItem] = []
        for item in self._items(data):
            kind = str(item.get("type") or "item")
            hours = INSTALLATION_HOURS.get(kind, INSTALLATION_HOURS_DEFAULT)
            description = str(item.get("omschrijving") or f"{kind} plaatsen")
            out.append(labor_line(self.scope, description, hours * ctx.accessibility_factor, ctx.hourly_rate))
        return out
