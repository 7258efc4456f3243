from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Tuple

from hovenier.core.errors import ValidationError
from hovenier.domain.line_items import LineItem, overhead_line
from hovenier.domain.money import D
from hovenier.engine.estimation import SiteFactors
from hovenier.engine.norms import NormTable, ProductCatalog
from hovenier.engine.scopes import ScopeContext, get_calculator


def generate_lines(
    scopes: Iterable[str],
    scope_data: Optional[Mapping[str, Mapping[str, Any]]],
    site: SiteFactors,
    norms: NormTable,
    catalog: ProductCatalog,
    hourly_rate: D,
    *,
    include_overhead: bool = True,
) -> Tuple[LineItem, ...]:
    """
    Offerteregels uit de wizard-gegevens (scope_data).

    Scopes zonder calculator leveren geen regels; dat zijn handmatige scopes.
    De vaste overhead-regel komt achteraan.
    """
    ctx = ScopeContext(
        norms=norms,
        catalog=catalog,
        hourly_rate=hourly_rate,
        accessibility=site.accessibility.value,
        backlog=site.backlog.value if site.backlog else None,
    )
    data = scope_data or {}

    out: List[LineItem] = []
    for scope in dict.fromkeys(scopes):
        calc = get_calculator(scope)
        if calc is None:
            continue
        try:
            out.extend(calc.lines(data.get(scope) or {}, ctx))
        except ValidationError as exc:
            exc.meta.setdefault("scope", scope)
            raise

    if include_overhead and out:
        out.append(overhead_line())
    return tuple(out)
