from __future__ import annotations

from dataclasses import replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from hovenier.core.clock import days_to_ms
from hovenier.core.errors import PreconditionError, ValidationError
from hovenier.domain.invoice import CompanyInfo, Correction, Invoice, InvoiceStatus
from hovenier.domain.line_items import LineItem
from hovenier.domain.money import D, HUNDRED, ZERO, qmoney, qround
from hovenier.domain.project import Project
from hovenier.domain.quote import Quote, QuoteStatus
from hovenier.engine.pricing import PricingSettings, marked_up_unit_price

# Vanaf deze afwijking (in %) tussen geschatte en werkelijke uren komt er een correctieregel
VARIANCE_THRESHOLD_PERCENT = D("5")


class InvoiceEvent(str, Enum):
    FINALIZE = "finalize"
    UNLOCK = "unlock"
    SEND = "send"
    MARK_PAID = "mark_paid"
    EXPIRE = "expire"
    RESEND = "resend"


INVOICE_TRANSITIONS: Dict[Tuple[InvoiceStatus, InvoiceEvent], InvoiceStatus] = {
    (InvoiceStatus.CONCEPT, InvoiceEvent.FINALIZE): InvoiceStatus.DEFINITIEF,
    (InvoiceStatus.DEFINITIEF, InvoiceEvent.UNLOCK): InvoiceStatus.CONCEPT,
    (InvoiceStatus.DEFINITIEF, InvoiceEvent.SEND): InvoiceStatus.VERZONDEN,
    (InvoiceStatus.VERZONDEN, InvoiceEvent.MARK_PAID): InvoiceStatus.BETAALD,
    (InvoiceStatus.VERZONDEN, InvoiceEvent.EXPIRE): InvoiceStatus.VERVALLEN,
    (InvoiceStatus.VERVALLEN, InvoiceEvent.MARK_PAID): InvoiceStatus.BETAALD,
    (InvoiceStatus.VERVALLEN, InvoiceEvent.RESEND): InvoiceStatus.VERZONDEN,
}


def allowed_events(status: InvoiceStatus) -> List[InvoiceEvent]:
    return [event for (src, event) in INVOICE_TRANSITIONS if src is status]


# -----------------------------
# Generate
# -----------------------------


def _snapshot(lines: Iterable[LineItem], pricing: PricingSettings) -> Tuple[LineItem, ...]:
    """
    Factuurregels = offerteregels tegen verkoopprijs (marge verwerkt in de eenheidsprijs),
    met eigen ids zodat offerte en factuur niets delen.
    """
    return tuple(
        replace(
            line,
            id=uuid4().hex,
            unit_price=marked_up_unit_price(line, pricing),
            margin_percent_override=None,
        )
        for line in lines
    )


def variance_correction(estimated_hours: D, actual_hours: D, hourly_rate: D) -> Optional[Correction]:
    """
    Nacalculatie -> meerwerk/minderwerk. Onder de drempel (5%) geen correctie.
    """
    if estimated_hours <= ZERO:
        return None
    deviation = actual_hours - estimated_hours
    deviation_pct = deviation / estimated_hours * HUNDRED
    if abs(deviation_pct) < VARIANCE_THRESHOLD_PERCENT:
        return None

    label = "Meerwerk" if deviation > ZERO else "Minderwerk"
    return Correction(
        description=f"{label}: {abs(qround(deviation))} uur ({qround(deviation_pct)}%)",
        amount=qmoney(deviation * hourly_rate),
    )


def generate(
    *,
    invoice_id: str,
    number: str,
    project: Project,
    quote: Quote,
    pricing: PricingSettings,
    company: CompanyInfo,
    now: int,
    payment_term_days: int = 14,
    corrections: Iterable[Correction] = (),
) -> Invoice:
    if quote.status is not QuoteStatus.GEACCEPTEERD:
        raise PreconditionError(
            "Factuur kan alleen van een geaccepteerde offerte gemaakt worden",
            code="QUOTE_NOT_ACCEPTED",
            meta={"quote_id": quote.id, "status": quote.status.value},
        )
    if project.quote_id != quote.id:
        raise PreconditionError(
            "Project hoort niet bij deze offerte",
            code="PROJECT_QUOTE_MISMATCH",
            meta={"project_id": project.id, "quote_id": quote.id},
        )
    if payment_term_days < 0:
        raise ValidationError("Betalingstermijn mag niet negatief zijn", code="INVALID_PAYMENT_TERM")

    return Invoice(
        id=invoice_id,
        number=number,
        project_id=project.id,
        quote_id=quote.id,
        customer=quote.customer,
        company=company,
        invoice_date=now,
        due_date=now + days_to_ms(payment_term_days),
        payment_term_days=payment_term_days,
        vat_percent=pricing.vat_percent,
        status=InvoiceStatus.CONCEPT,
        line_items=_snapshot(quote.line_items, pricing),
        corrections=tuple(corrections),
        updated_at=now,
    )


# -----------------------------
# Transitions
# -----------------------------


def transition(invoice: Invoice, event: InvoiceEvent, now: int, **stamps: Any) -> Invoice:
    target = INVOICE_TRANSITIONS.get((invoice.status, event))
    if target is None:
        raise PreconditionError(
            f"Overgang '{event.value}' is niet toegestaan vanuit '{invoice.status.value}'",
            code="ILLEGAL_TRANSITION",
            meta={
                "invoice_id": invoice.id,
                "status": invoice.status.value,
                "event": event.value,
                "allowed": [e.value for e in allowed_events(invoice.status)],
            },
        )
    return replace(invoice, status=target, updated_at=now, **stamps)


def finalize(invoice: Invoice, now: int) -> Invoice:
    if not invoice.line_items and not invoice.corrections:
        raise PreconditionError(
            "Lege factuur kan niet definitief worden", code="EMPTY_INVOICE", meta={"invoice_id": invoice.id}
        )
    return transition(invoice, InvoiceEvent.FINALIZE, now)


def unlock(invoice: Invoice, now: int) -> Invoice:
    return transition(invoice, InvoiceEvent.UNLOCK, now)


def send(invoice: Invoice, now: int) -> Invoice:
    return transition(invoice, InvoiceEvent.SEND, now, sent_at=now)


def resend(invoice: Invoice, now: int) -> Invoice:
    return transition(invoice, InvoiceEvent.RESEND, now, sent_at=now)


def mark_paid(invoice: Invoice, now: int, paid_at: Optional[int] = None) -> Invoice:
    return transition(invoice, InvoiceEvent.MARK_PAID, now, paid_at=paid_at if paid_at is not None else now)


def expire(invoice: Invoice, now: int) -> Invoice:
    """Externe trigger (bv. dagelijkse job). Alleen als de vervaldatum verstreken is."""
    if invoice.status is InvoiceStatus.VERZONDEN and now <= invoice.due_date:
        raise PreconditionError(
            "Vervaldatum is nog niet verstreken",
            code="NOT_YET_DUE",
            meta={"invoice_id": invoice.id, "due_date": invoice.due_date},
        )
    return transition(invoice, InvoiceEvent.EXPIRE, now)


# -----------------------------
# Edits (alleen concept)
# -----------------------------


def _ensure_concept(invoice: Invoice) -> None:
    if invoice.status is not InvoiceStatus.CONCEPT:
        raise PreconditionError(
            f"Factuur is niet meer te wijzigen in status '{invoice.status.value}'",
            code="INVOICE_NOT_EDITABLE",
            meta={"invoice_id": invoice.id, "status": invoice.status.value},
        )


def update_lines(invoice: Invoice, lines: Iterable[LineItem], now: int) -> Invoice:
    _ensure_concept(invoice)
    return replace(invoice, line_items=tuple(lines), updated_at=now)


def update_corrections(invoice: Invoice, corrections: Iterable[Correction], now: int) -> Invoice:
    _ensure_concept(invoice)
    return replace(invoice, corrections=tuple(corrections), updated_at=now)


def update_notes(invoice: Invoice, notes: Optional[str], now: int) -> Invoice:
    _ensure_concept(invoice)
    return replace(invoice, notes=notes, updated_at=now)
