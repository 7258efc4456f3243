from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from hovenier.core.errors import ValidationError
from hovenier.domain.line_items import LineItem, LineKind
from hovenier.domain.money import D, HUNDRED, ZERO, qround, to_decimal
from hovenier.engine.norms import NormTable
from hovenier.engine.scopes import get_calculator

ALLOWED_TEAM_SIZES = (2, 3, 4)
DEFAULT_HOURS_PER_DAY = D("7")
DEFAULT_BUFFER_PERCENT = D("10")


class Accessibility(str, Enum):
    GOED = "goed"
    BEPERKT = "beperkt"
    SLECHT = "slecht"


class Backlog(str, Enum):
    LAAG = "laag"
    GEMIDDELD = "gemiddeld"
    HOOG = "hoog"


@dataclass(frozen=True)
class SiteFactors:
    """Algemene parameters van de tuin (bereikbaarheid, achterstalligheid)."""

    accessibility: Accessibility = Accessibility.GOED
    backlog: Optional[Backlog] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accessibility": self.accessibility.value,
            "backlog": self.backlog.value if self.backlog else None,
        }

    @staticmethod
    def from_dict(d: Optional[Mapping[str, Any]]) -> "SiteFactors":
        d = d or {}
        try:
            accessibility = Accessibility(d.get("accessibility") or Accessibility.GOED.value)
            backlog = Backlog(d["backlog"]) if d.get("backlog") else None
        except ValueError as e:
            raise ValidationError(str(e), code="INVALID_SITE_FACTOR") from None
        return SiteFactors(accessibility=accessibility, backlog=backlog)


@dataclass(frozen=True)
class TeamConfig:
    size: int
    members: FrozenSet[str] = frozenset()
    effective_hours_per_day: D = DEFAULT_HOURS_PER_DAY


@dataclass(frozen=True)
class EstimationResult:
    team_size: int
    team_members: FrozenSet[str]
    effective_hours_per_day: D
    norm_hours_per_scope: Dict[str, D]
    norm_hours_total: D
    estimated_days: int
    accessibility_factor: D = D("1")
    backlog_factor: D = D("1")

    @property
    def team_capacity_per_day(self) -> D:
        return self.team_size * self.effective_hours_per_day

    def to_dict(self) -> Dict[str, Any]:
        return {
            "team_size": self.team_size,
            "team_members": sorted(self.team_members),
            "effective_hours_per_day": str(self.effective_hours_per_day),
            "norm_hours_per_scope": {k: str(v) for k, v in self.norm_hours_per_scope.items()},
            "norm_hours_total": str(self.norm_hours_total),
            "estimated_days": self.estimated_days,
            "accessibility_factor": str(self.accessibility_factor),
            "backlog_factor": str(self.backlog_factor),
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "EstimationResult":
        return EstimationResult(
            team_size=int(d["team_size"]),
            team_members=frozenset(d.get("team_members") or ()),
            effective_hours_per_day=to_decimal(d.get("effective_hours_per_day"), default=DEFAULT_HOURS_PER_DAY),
            norm_hours_per_scope={
                str(k): to_decimal(v) for k, v in (d.get("norm_hours_per_scope") or {}).items()
            },
            norm_hours_total=to_decimal(d.get("norm_hours_total")),
            estimated_days=int(d.get("estimated_days") or 0),
            accessibility_factor=to_decimal(d.get("accessibility_factor"), default=D("1")),
            backlog_factor=to_decimal(d.get("backlog_factor"), default=D("1")),
        )


def _validate_team(team: TeamConfig) -> None:
    if team.size not in ALLOWED_TEAM_SIZES:
        raise ValidationError(
            "Teamgrootte moet 2, 3 of 4 zijn",
            code="INVALID_TEAM_SIZE",
            meta={"team_size": team.size, "allowed": list(ALLOWED_TEAM_SIZES)},
        )
    if team.effective_hours_per_day <= ZERO:
        raise ValidationError(
            "Effectieve uren per dag moet groter dan 0 zijn",
            code="INVALID_HOURS_PER_DAY",
            meta={"effective_hours_per_day": str(team.effective_hours_per_day)},
        )


def days_for(norm_hours_total: D, team_size: int, hours_per_day: D) -> int:
    """ceil(uren / (team * uren per dag)); 0 uur -> 0 dagen."""
    if norm_hours_total <= ZERO:
        return 0
    capacity = D(team_size) * hours_per_day
    return int((norm_hours_total / capacity).to_integral_value(rounding=ROUND_CEILING))


def _labor_hours_for_scope(lines: Iterable[LineItem], scope: str) -> D:
    return sum((l.quantity for l in lines if l.scope == scope and l.kind is LineKind.LABOR), ZERO)


def estimate(
    scopes: Iterable[str],
    scope_data: Optional[Mapping[str, Mapping[str, Any]]],
    site: SiteFactors,
    team: TeamConfig,
    norms: NormTable,
    labor_lines: Iterable[LineItem] = (),
) -> EstimationResult:
    """
    Voorcalculatie: normuren per scope -> totaal -> geschatte dagen.

    Per scope rekent de geregistreerde calculator de ruwe normuren uit. Levert die 0 op
    (of is er geen calculator), dan tellen we de arbeidsregels van die scope. Daarna
    bereikbaarheid x achterstalligheid, afronden per scope op 2 decimalen, optellen.
    Puur: zelfde input -> zelfde EstimationResult.
    """
    _validate_team(team)

    lines = tuple(labor_lines)
    data = scope_data or {}
    accessibility_factor = norms.factor("bereikbaarheid", site.accessibility.value)
    backlog_factor = norms.factor("achterstalligheid", site.backlog.value if site.backlog else None)

    per_scope: Dict[str, D] = {}
    for scope in dict.fromkeys(scopes):
        calc = get_calculator(scope)
        try:
            hours = calc.norm_hours(data.get(scope) or {}, norms) if calc else ZERO
        except ValidationError as exc:
            exc.meta.setdefault("scope", scope)
            raise
        if hours == ZERO:
            hours = _labor_hours_for_scope(lines, scope)
        per_scope[scope] = qround(hours * accessibility_factor * backlog_factor)

    total = sum(per_scope.values(), ZERO)

    return EstimationResult(
        team_size=team.size,
        team_members=frozenset(team.members),
        effective_hours_per_day=team.effective_hours_per_day,
        norm_hours_per_scope=per_scope,
        norm_hours_total=total,
        estimated_days=days_for(total, team.size, team.effective_hours_per_day),
        accessibility_factor=accessibility_factor,
        backlog_factor=backlog_factor,
    )


def days_with_buffer(result: EstimationResult, buffer_percent: Any = DEFAULT_BUFFER_PERCENT) -> int:
    """Planning-buffer voor weer/onvoorzien: ceil(dagen * (1 + buffer%/100))."""
    pct = to_decimal(buffer_percent)
    days = D(result.estimated_days) * (HUNDRED + pct) / HUNDRED
    return int(days.to_integral_value(rounding=ROUND_CEILING))


def format_hours(hours: D) -> str:
    """7.5 -> '7:30 uur', 8 -> '8 uur'."""
    h = int(hours)
    minutes = int(((hours - h) * 60).quantize(D("1"), rounding=ROUND_HALF_UP))
    if minutes == 60:
        h, minutes = h + 1, 0
    if minutes == 0:
        return f"{h} uur"
    return f"{h}:{minutes:02d} uur"


def format_days(days: int) -> str:
    return "1 dag" if days == 1 else f"{days} dagen"
