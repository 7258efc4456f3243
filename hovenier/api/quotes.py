# hovenier/api/quotes.py
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from hovenier.api.deps import get_orchestrator
from hovenier.api.schemas import (
    EstimationIn,
    LineIn,
    LinePatch,
    QuoteCreateIn,
    QuoteDraftIn,
    RecalculateIn,
)
from hovenier.core.settings import settings
from hovenier.domain.quote import Customer, Quote, QuoteType
from hovenier.engine.estimation import SiteFactors, days_with_buffer
from hovenier.engine.pricing import compute_totals
from hovenier.workflow.orchestrator import WorkflowOrchestrator

router = APIRouter(prefix="/quotes", tags=["quotes"])


def quote_out(orch: WorkflowOrchestrator, quote: Quote) -> Dict[str, Any]:
    out = quote.to_dict()
    out["totals"] = compute_totals(quote.line_items, orch.pricing).to_dict()
    if quote.estimation is not None:
        out["estimation"]["days_with_buffer"] = days_with_buffer(
            quote.estimation, settings.PLANNING_BUFFER_PERCENT
        )
    if quote.share_token:
        out["share_url"] = f"{settings.PUBLIC_BASE_URL.rstrip('/')}/o/{quote.share_token}"
    return out


@router.post("", status_code=201)
def create_quote(payload: QuoteCreateIn, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    quote = orch.create_quote(
        QuoteType(payload.type),
        Customer.from_dict(payload.customer.model_dump()),
        scopes=payload.scopes,
        scope_data=payload.scope_data,
        site_factors=SiteFactors.from_dict(payload.site_factors.model_dump() if payload.site_factors else None),
        notes=payload.notes,
        lines=[l.model_dump() for l in payload.lines],
    )
    return quote_out(orch, quote)


@router.get("")
def list_quotes(include_archived: bool = False, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return [
        {
            "id": q.id,
            "number": q.number,
            "status": q.status.value,
            "customer": q.customer.name,
            "total_incl_vat": str(compute_totals(q.line_items, orch.pricing).total_incl_vat),
        }
        for q in orch.store.list_quotes(include_archived=include_archived)
    ]


@router.get("/{quote_id}")
def get_quote(quote_id: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return quote_out(orch, orch.store.get_quote(quote_id))


@router.patch("/{quote_id}")
def update_quote(quote_id: str, payload: QuoteDraftIn, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    changes = payload.model_dump(exclude_unset=True)
    if "site_factors" in changes:
        changes["site_factors"] = SiteFactors.from_dict(changes["site_factors"])
    return quote_out(orch, orch.update_draft(quote_id, **changes))


# -----------------------------
# Regels
# -----------------------------


@router.post("/{quote_id}/lines", status_code=201)
def add_line(quote_id: str, payload: LineIn, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return quote_out(orch, orch.add_line(quote_id, payload.model_dump()))


@router.patch("/{quote_id}/lines/{line_id}")
def update_line(
    quote_id: str,
    line_id: str,
    payload: LinePatch,
    orch: WorkflowOrchestrator = Depends(get_orchestrator),
):
    return quote_out(orch, orch.update_line(quote_id, line_id, payload.model_dump(exclude_unset=True)))


@router.delete("/{quote_id}/lines/{line_id}")
def remove_line(quote_id: str, line_id: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return quote_out(orch, orch.remove_line(quote_id, line_id))


@router.post("/{quote_id}/recalculate")
def recalculate(quote_id: str, payload: RecalculateIn, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return quote_out(orch, orch.recalculate(quote_id, confirm=payload.confirm))


# -----------------------------
# Voorcalculatie + status
# -----------------------------


@router.put("/{quote_id}/estimation")
def save_estimation(quote_id: str, payload: EstimationIn, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    quote = orch.save_estimation(
        quote_id,
        payload.team_size,
        team_members=payload.team_members,
        effective_hours_per_day=payload.effective_hours_per_day,
    )
    return quote_out(orch, quote)


@router.post("/{quote_id}/complete-estimation")
def complete_estimation(quote_id: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return quote_out(orch, orch.complete_estimation(quote_id))


@router.post("/{quote_id}/send")
def send_quote(quote_id: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return quote_out(orch, orch.send_quote(quote_id))


@router.post("/{quote_id}/accept")
def accept_quote(quote_id: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    quote, project = orch.accept_quote(quote_id)
    return {"quote": quote_out(orch, quote), "project": project.to_dict()}


@router.post("/{quote_id}/reject")
def reject_quote(quote_id: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return quote_out(orch, orch.reject_quote(quote_id))


@router.post("/{quote_id}/reopen")
def reopen_quote(quote_id: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return quote_out(orch, orch.reopen_quote(quote_id))


@router.post("/{quote_id}/duplicate", status_code=201)
def duplicate_quote(quote_id: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return quote_out(orch, orch.duplicate_quote(quote_id))


@router.get("/{quote_id}/steps")
def workflow_steps(quote_id: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return [
        {"step": s.step.value, "label": s.label, "state": s.state.value}
        for s in orch.workflow_steps(quote_id)
    ]
