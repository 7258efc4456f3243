from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from hovenier.core.errors import PreconditionError, ValidationError
from hovenier.domain.line_items import LineItem, copy_lines
from hovenier.domain.quote import (
    CustomerQuestion,
    CustomerResponse,
    Quote,
    QuoteStatus,
    ResponseStatus,
)
from hovenier.engine.estimation import EstimationResult, SiteFactors


class QuoteEvent(str, Enum):
    COMPLETE_ESTIMATION = "complete_estimation"
    SEND = "send"
    ACCEPT = "accept"
    REJECT = "reject"
    REOPEN = "reopen"


# (status, event) -> nieuwe status. Alles wat hier niet staat is illegaal.
QUOTE_TRANSITIONS: Dict[Tuple[QuoteStatus, QuoteEvent], QuoteStatus] = {
    (QuoteStatus.CONCEPT, QuoteEvent.COMPLETE_ESTIMATION): QuoteStatus.VOORCALCULATIE,
    (QuoteStatus.CONCEPT, QuoteEvent.SEND): QuoteStatus.VERZONDEN,
    (QuoteStatus.VOORCALCULATIE, QuoteEvent.SEND): QuoteStatus.VERZONDEN,
    (QuoteStatus.VERZONDEN, QuoteEvent.ACCEPT): QuoteStatus.GEACCEPTEERD,
    (QuoteStatus.VERZONDEN, QuoteEvent.REJECT): QuoteStatus.AFGEWEZEN,
    (QuoteStatus.AFGEWEZEN, QuoteEvent.REOPEN): QuoteStatus.CONCEPT,
}

# Events die een voorcalculatie vereisen (harde gate)
ESTIMATION_REQUIRED = frozenset({QuoteEvent.COMPLETE_ESTIMATION, QuoteEvent.SEND})

EDITABLE_STATUSES = frozenset({QuoteStatus.CONCEPT, QuoteStatus.VOORCALCULATIE})


@dataclass(frozen=True)
class QuoteAccepted:
    """Signaal voor de orchestrator: maak een project aan."""

    quote_id: str
    accepted_at: int


def allowed_events(status: QuoteStatus) -> List[QuoteEvent]:
    return [event for (src, event) in QUOTE_TRANSITIONS if src is status]


def _ensure_not_archived(quote: Quote) -> None:
    if quote.is_archived:
        raise PreconditionError(
            f"Offerte {quote.number} is gearchiveerd",
            code="QUOTE_ARCHIVED",
            meta={"quote_id": quote.id},
        )


def transition(quote: Quote, event: QuoteEvent, now: int) -> Quote:
    """
    Pure transitie via de tabel. Bij een illegale combinatie blijft de offerte ongewijzigd
    (PreconditionError), er is geen gedeeltelijke toestand.
    """
    _ensure_not_archived(quote)

    target = QUOTE_TRANSITIONS.get((quote.status, event))
    if target is None:
        raise PreconditionError(
            f"Overgang '{event.value}' is niet toegestaan vanuit '{quote.status.value}'",
            code="ILLEGAL_TRANSITION",
            meta={
                "quote_id": quote.id,
                "status": quote.status.value,
                "event": event.value,
                "allowed": [e.value for e in allowed_events(quote.status)],
            },
        )

    if event in ESTIMATION_REQUIRED and quote.estimation is None:
        raise PreconditionError(
            "Voorcalculatie ontbreekt",
            code="ESTIMATION_REQUIRED",
            meta={"quote_id": quote.id, "event": event.value},
        )

    changes: Dict[str, Any] = {"status": target, "updated_at": now}
    if event is QuoteEvent.SEND:
        changes["sent_at"] = now
    return replace(quote, **changes)


def complete_estimation(quote: Quote, now: int) -> Quote:
    return transition(quote, QuoteEvent.COMPLETE_ESTIMATION, now)


def send(quote: Quote, now: int) -> Quote:
    return transition(quote, QuoteEvent.SEND, now)


def accept(quote: Quote, now: int) -> Tuple[Quote, QuoteAccepted]:
    accepted = transition(quote, QuoteEvent.ACCEPT, now)
    return accepted, QuoteAccepted(quote_id=quote.id, accepted_at=now)


def reject(quote: Quote, now: int) -> Quote:
    return transition(quote, QuoteEvent.REJECT, now)


def reopen(quote: Quote, now: int) -> Quote:
    """Afgewezen offerte terug naar concept. Klantreactie en deellink vervallen."""
    reopened = transition(quote, QuoteEvent.REOPEN, now)
    return replace(
        reopened,
        customer_response=None,
        share_token=None,
        share_expires_at=None,
        sent_at=None,
    )


# -----------------------------
# Edits (alleen concept / voorcalculatie)
# -----------------------------


def ensure_editable(quote: Quote) -> None:
    _ensure_not_archived(quote)
    if quote.status not in EDITABLE_STATUSES:
        raise PreconditionError(
            f"Offerte is niet meer te wijzigen in status '{quote.status.value}'",
            code="QUOTE_NOT_EDITABLE",
            meta={"quote_id": quote.id, "status": quote.status.value},
        )


def with_lines(quote: Quote, lines: Iterable[LineItem], now: int) -> Quote:
    ensure_editable(quote)
    return replace(quote, line_items=tuple(lines), updated_at=now)


def update_draft(
    quote: Quote,
    now: int,
    *,
    scopes: Optional[Iterable[str]] = None,
    scope_data: Optional[Mapping[str, Mapping[str, Any]]] = None,
    site_factors: Optional[SiteFactors] = None,
    notes: Optional[str] = None,
) -> Quote:
    ensure_editable(quote)
    changes: Dict[str, Any] = {"updated_at": now}
    if scopes is not None:
        changes["scopes"] = tuple(dict.fromkeys(scopes))
    if scope_data is not None:
        changes["scope_data"] = {k: dict(v) for k, v in scope_data.items()}
    if site_factors is not None:
        changes["site_factors"] = site_factors
    if notes is not None:
        changes["notes"] = notes
    return replace(quote, **changes)


def attach_estimation(quote: Quote, result: EstimationResult, now: int) -> Quote:
    ensure_editable(quote)
    return replace(quote, estimation=result, updated_at=now)


def duplicate(quote: Quote, new_id: str, new_number: str, now: int) -> Quote:
    """Nieuwe concept-offerte met dezelfde klant, scopes en regels (nieuwe regel-ids)."""
    note = f"Kopie van {quote.number}"
    return Quote(
        id=new_id,
        number=new_number,
        type=quote.type,
        customer=quote.customer,
        status=QuoteStatus.CONCEPT,
        scopes=quote.scopes,
        line_items=copy_lines(quote.line_items),
        scope_data={k: dict(v) for k, v in quote.scope_data.items()},
        site_factors=quote.site_factors,
        notes=f"{note}\n{quote.notes}".strip() if quote.notes else note,
        created_at=now,
        updated_at=now,
    )


# -----------------------------
# Deellink + klantreactie
# -----------------------------


def share(quote: Quote, token: str, expires_at: int, now: int) -> Quote:
    _ensure_not_archived(quote)
    if quote.status is not QuoteStatus.VERZONDEN:
        raise PreconditionError(
            "Alleen verzonden offertes kunnen gedeeld worden",
            code="QUOTE_NOT_SENT",
            meta={"quote_id": quote.id, "status": quote.status.value},
        )
    return replace(quote, share_token=token, share_expires_at=expires_at, updated_at=now)


def revoke_share(quote: Quote, now: int) -> Quote:
    return replace(quote, share_token=None, share_expires_at=None, updated_at=now)


def ensure_share_active(quote: Quote, now: int) -> None:
    if not quote.share_token or quote.share_expires_at is None:
        raise PreconditionError("Deellink is niet actief", code="SHARE_INACTIVE", meta={"quote_id": quote.id})
    if now > quote.share_expires_at:
        raise PreconditionError("Deellink is verlopen", code="SHARE_EXPIRED", meta={"quote_id": quote.id})


def mark_viewed(quote: Quote, now: int) -> Quote:
    """Eerste keer bekeken wordt vastgelegd; latere views veranderen niets."""
    _ensure_not_archived(quote)
    if quote.customer_response is not None:
        return quote
    return replace(
        quote,
        customer_response=CustomerResponse(status=ResponseStatus.BEKEKEN, viewed_at=now),
        updated_at=now,
    )


def respond(
    quote: Quote,
    accepted: bool,
    now: int,
    *,
    comment: Optional[str] = None,
    signature: Optional[str] = None,
) -> Tuple[Quote, Optional[QuoteAccepted]]:
    """
    Klant accepteert of wijst af via de deellink.
    Accepteren vereist een handtekening; een tweede beslissing wordt geweigerd.
    """
    if quote.customer_response is not None and quote.customer_response.is_decided:
        raise PreconditionError(
            "Offerte is al beantwoord",
            code="ALREADY_RESPONDED",
            meta={"quote_id": quote.id, "response": quote.customer_response.status.value},
        )
    if accepted and not (signature or "").strip():
        raise ValidationError("Handtekening is verplicht bij akkoord", code="SIGNATURE_REQUIRED")

    previous = quote.customer_response
    response = CustomerResponse(
        status=ResponseStatus.GEACCEPTEERD if accepted else ResponseStatus.AFGEWEZEN,
        viewed_at=previous.viewed_at if previous else now,
        responded_at=now,
        comment=(comment or "").strip() or None,
        signature=signature if accepted else None,
        signed_at=now if accepted else None,
        questions=previous.questions if previous else (),
    )

    if accepted:
        moved, event = accept(quote, now)
    else:
        moved, event = reject(quote, now), None
    return replace(moved, customer_response=response), event


def submit_question(quote: Quote, text: str, now: int) -> Quote:
    _ensure_not_archived(quote)
    body = (text or "").strip()
    if not body:
        raise ValidationError("Vraag mag niet leeg zijn", code="EMPTY_QUESTION")
    if quote.status is not QuoteStatus.VERZONDEN:
        raise PreconditionError(
            "Vragen kan alleen bij een openstaande offerte",
            code="QUOTE_NOT_OPEN",
            meta={"quote_id": quote.id, "status": quote.status.value},
        )

    previous = quote.customer_response or CustomerResponse(status=ResponseStatus.BEKEKEN, viewed_at=now)
    response = replace(previous, questions=previous.questions + (CustomerQuestion(text=body, asked_at=now),))
    return replace(quote, customer_response=response, updated_at=now)


def archive(quote: Quote, now: int) -> Quote:
    if quote.is_archived:
        return quote
    return replace(quote, archived_at=now, updated_at=now)
