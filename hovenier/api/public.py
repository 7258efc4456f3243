# hovenier/api/public.py
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from hovenier.api.deps import get_orchestrator
from hovenier.api.schemas import QuestionIn, ResponseIn
from hovenier.domain.quote import Quote
from hovenier.engine.pricing import compute_totals
from hovenier.workflow.orchestrator import WorkflowOrchestrator

# Klant-facing: geen login, toegang via het ondertekende token in de link
router = APIRouter(prefix="/o", tags=["public_quote"])


def public_view(orch: WorkflowOrchestrator, quote: Quote) -> Dict[str, Any]:
    totals = compute_totals(quote.line_items, orch.pricing)
    return {
        "number": quote.number,
        "status": quote.status.value,
        "customer": quote.customer.to_dict(),
        "line_items": [
            {
                "scope": l.scope,
                "description": l.description,
                "unit": l.unit,
                "quantity": str(l.quantity),
            }
            for l in quote.line_items
        ],
        "total_excl_vat": str(totals.total_ex_vat),
        "vat_amount": str(totals.vat_amount),
        "total_incl_vat": str(totals.total_incl_vat),
        "valid_until": quote.share_expires_at,
        "customer_response": quote.customer_response.to_dict() if quote.customer_response else None,
    }


@router.get("/{token}")
def view_quote(token: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return public_view(orch, orch.view_shared_quote(token))


@router.post("/{token}/response")
def respond(token: str, payload: ResponseIn, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    quote, _ = orch.respond_via_share_token(
        token,
        payload.accepted,
        comment=payload.comment,
        signature=payload.signature,
    )
    return public_view(orch, quote)


@router.post("/{token}/questions", status_code=201)
def ask_question(token: str, payload: QuestionIn, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return public_view(orch, orch.ask_question(token, payload.text))
