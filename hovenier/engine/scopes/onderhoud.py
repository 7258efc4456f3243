"""
Onderhoud-scopes (maintenance): gras_onderhoud, borders_onderhoud, heggen, bomen, overig.
Arbeid in onderhoudsofferteregels telt ook de achterstalligheid mee.
"""
from __future__ import annotations

from typing import Any, List, Mapping

from hovenier.domain.line_items import LineItem
from hovenier.domain.money import D, ZERO
from hovenier.engine.norms import NormTable

from .base import ScopeCalculator, ScopeContext, flag, labor_line, num, register_scope, text

HEIGHT_SURCHARGE = D("1.3")
HEIGHT_THRESHOLD_METERS = D("2")
CLIPPINGS_VOLUME_FACTOR = D("0.3")

LEAF_CLEARING_HOURS = D("2")
TERRACE_CLEANING_HOURS_PER_M2 = D("0.05")
PAVING_WEEDS_HOURS_PER_M2 = D("0.03")
DRAIN_HOURS_PER_POINT = D("0.25")


@register_scope
class GrasOnderhoud(ScopeCalculator):
    scope = "gras_onderhoud"

    def norm_hours(self, data: Mapping[str, Any], norms: NormTable) -> D:
        if not flag(data, "maaien"):
            return ZERO
        return num(data, "grasOppervlakte") * norms.hours(self.scope, "maaien", default="0.02")

    def lines(self, data: Mapping[str, Any], ctx: ScopeContext) -> List[LineItem]:
        area = num(data, "grasOppervlakte")
        if area <= ZERO or (data.get("grasAanwezig") is False):
            return []

        full = ctx.accessibility_factor * ctx.backlog_factor
        out: List[LineItem] = []

        if flag(data, "maaien"):
            entry = ctx.norms.find(self.scope, "maaien")
            if entry:
                out.append(labor_line(self.scope, "Gras maaien", area * entry.hours_per_unit * full, ctx.hourly_rate))
        if flag(data, "kantenSteken"):
            edge = 4 * area.sqrt()
            entry = ctx.norms.find(self.scope, "kanten")
            if entry:
                out.append(labor_line(self.scope, "Kanten steken", edge * entry.hours_per_unit * full, ctx.hourly_rate))
        if flag(data, "verticuteren"):
            entry = ctx.norms.find(self.scope, "verticuteren")
            if entry:
                out.append(
                    labor_line(
                        self.scope, "Verticuteren", area * entry.hours_per_unit * ctx.accessibility_factor, ctx.hourly_rate
                    )
                )
        return out


@register_scope
class BordersOnderhoud(ScopeCalculator):
    scope = "borders_onderhoud"

    def norm_hours(self, data: Mapping[str, Any], norms: NormTable) -> D:
        area = num(data, "borderOppervlakte")
        intensity = text(data, "onderhoudsintensiteit", "gemiddeld")
        entry = norms.find(self.scope, "wieden", intensity) or norms.find(self.scope, "wieden")
        return area * (entry.hours_per_unit if entry else D("0.15"))

    def lines(self, data: Mapping[str, Any], ctx: ScopeContext) -> List[LineItem]:
        area = num(data, "borderOppervlakte")
        if area <= ZERO:
            return []

        full = ctx.accessibility_factor * ctx.backlog_factor
        out: List[LineItem] = []

        if flag(data, "onkruidVerwijderen"):
            intensity = text(data, "onderhoudsintensiteit", "gemiddeld")
            entry = ctx.norms.find(self.scope, "wieden", intensity)
            if entry:
                out.append(
                    labor_line(self.scope, f"Wieden ({intensity})", area * entry.hours_per_unit * full, ctx.hourly_rate)
                )

        pruning = text(data, "snoeiInBorders", "geen")
        if pruning != "geen":
            entry = ctx.norms.find(self.scope, "snoei", pruning)
            if entry:
                out.append(
                    labor_line(
                        self.scope, f"Snoei borders ({pruning})", area * entry.hours_per_unit * full, ctx.hourly_rate
                    )
                )
        return out


@register_scope
class Heggen(ScopeCalculator):
    scope = "heggen"

    def norm_hours(self, data: Mapping[str, Any], norms: NormTable) -> D:
        volume = num(data, "lengte") * num(data, "hoogte", 1) * num(data, "breedte", "0.5")
        return volume * norms.hours(self.scope, "heg snoeien", default="0.15")

    def lines(self, data: Mapping[str, Any], ctx: ScopeContext) -> List[LineItem]:
        height = num(data, "hoogte")
        volume = num(data, "lengte") * height * num(data, "breedte")
        if volume <= ZERO:
            return []

        height_factor = HEIGHT_SURCHARGE if height > HEIGHT_THRESHOLD_METERS else D("1")
        out: List[LineItem] = []

        entry = ctx.norms.find(self.scope, "heg snoeien")
        if entry:
            hours = volume * entry.hours_per_unit * ctx.accessibility_factor * height_factor * ctx.backlog_factor
            out.append(labor_line(self.scope, "Heg snoeien", hours, ctx.hourly_rate))

        if flag(data, "afvoerSnoeisel"):
            entry = ctx.norms.find(self.scope, "snoeisel afvoeren")
            if entry:
                hours = volume * CLIPPINGS_VOLUME_FACTOR * entry.hours_per_unit * ctx.accessibility_factor
                out.append(labor_line(self.scope, "Snoeisel afvoeren", hours, ctx.hourly_rate))
        return out


@register_scope
class Bomen(ScopeCalculator):
    scope = "bomen"

    def norm_hours(self, data: Mapping[str, Any], norms: NormTable) -> D:
        trees = num(data, "aantalBomen")
        pruning = text(data, "snoei", "licht")
        entry = norms.find(self.scope, pruning) or norms.find(self.scope, "boom")
        per_tree = entry.hours_per_unit if entry else (D("1.5") if pruning == "zwaar" else D("0.5"))
        return trees * per_tree

    def lines(self, data: Mapping[str, Any], ctx: ScopeContext) -> List[LineItem]:
        trees = num(data, "aantalBomen")
        if trees <= ZERO:
            return []

        pruning = text(data, "snoei", "licht")
        entry = ctx.norms.find(self.scope, "boom snoeien", pruning)
        if not entry:
            return []

        height_factor = HEIGHT_SURCHARGE if text(data, "hoogteklasse", "") == "hoog" else D("1")
        hours = trees * entry.hours_per_unit * ctx.accessibility_factor * height_factor * ctx.backlog_factor
        return [labor_line(self.scope, f"Bomen snoeien ({pruning})", hours, ctx.hourly_rate)]


@register_scope
class Overig(ScopeCalculator):
    """Losse onderhoudsklussen zonder normuren-tabel."""

    scope = "overig"

    def _tasks(self, data: Mapping[str, Any]) -> List[tuple]:
        tasks = []
        if flag(data, "bladruimen"):
            tasks.append(("Bladruimen", LEAF_CLEARING_HOURS))
        if flag(data, "terrasReinigen"):
            tasks.append(("Terras reinigen", num(data, "terrasOppervlakte") * TERRACE_CLEANING_HOURS_PER_M2))
        if flag(data, "onkruidBestrating"):
            tasks.append(
                ("Onkruid bestrating verwijderen", num(data, "bestratingOppervlakte") * PAVING_WEEDS_HOURS_PER_M2)
            )
        if flag(data, "afwateringControleren"):
            tasks.append(("Afwatering controleren", num(data, "aantalAfwateringspunten") * DRAIN_HOURS_PER_POINT))
        extra = num(data, "overigUren")
        if extra > ZERO:
            tasks.append((text(data, "overigNotities", "Overige werkzaamheden"), extra))
        return [(label, hours) for label, hours in tasks if hours > ZERO]

    def norm_hours(self, data: Mapping[str, Any], norms: NormTable) -> D:
        return sum((hours for _, hours in self._tasks(data)), ZERO)

    def lines(self, data: Mapping[str, Any], ctx: ScopeContext) -> List[LineItem]:
        return [
            labor_line(self.scope, label, hours * ctx.accessibility_factor, ctx.hourly_rate)
            for label, hours in self._tasks(data)
        ]
