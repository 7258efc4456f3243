from dataclasses import replace
from decimal import Decimal

import pytest

from hovenier.core.clock import DAY_MS
from hovenier.core.errors import PreconditionError, ValidationError
from hovenier.domain import line_items as li
from hovenier.domain.invoice import Correction, Invoice, InvoiceStatus
from hovenier.domain.project import Project
from hovenier.domain.quote import Quote, QuoteStatus, QuoteType
from hovenier.engine.pricing import compute_totals
from hovenier.workflow import invoice_lifecycle as inv
from hovenier.workflow.invoice_lifecycle import INVOICE_TRANSITIONS, InvoiceEvent

NOW = 1_700_000_000_000


@pytest.fixture
def accepted_quote(customer, garden_lines):
    lines = ()
    for d in garden_lines:
        lines = li.add_line(lines, d)
    return Quote(
        id="q1",
        number="OFF-2026-001",
        type=QuoteType.AANLEG,
        customer=customer,
        status=QuoteStatus.GEACCEPTEERD,
        line_items=lines,
    )


@pytest.fixture
def project():
    return Project(id="p1", quote_id="q1", name="Tuin De Vries")


@pytest.fixture
def draft(accepted_quote, project, pricing, company):
    return inv.generate(
        invoice_id="i1",
        number="FAC-2026-001",
        project=project,
        quote=accepted_quote,
        pricing=pricing,
        company=company,
        now=NOW,
    )


@pytest.fixture
def sent(draft):
    return inv.send(inv.finalize(draft, NOW), NOW + 1)


def test_generated_invoice_bills_the_quoted_price(draft, accepted_quote):
    assert draft.status is InvoiceStatus.CONCEPT
    assert draft.subtotal == Decimal("632.50")
    assert draft.vat_amount == Decimal("132.83")
    assert draft.total_incl_vat == Decimal("765.33")
    assert draft.due_date == NOW + 14 * DAY_MS
    assert draft.customer == accepted_quote.customer


def test_invoice_matches_quote_totals_to_the_cent(accepted_quote, project, pricing, company):
    # halve centen op twee regels: per onderdeel afronden zou hier een cent schelen
    lines = ()
    for kind in ("materiaal", "machine"):
        lines = li.add_line(
            lines,
            {"scope": "grondwerk", "description": f"Post {kind}", "unit": "st", "quantity": 1, "unit_price": "1.005", "kind": kind},
        )
    quote = replace(accepted_quote, line_items=lines)
    totals = compute_totals(quote.line_items, pricing)

    invoice = inv.generate(
        invoice_id="i2",
        number="FAC-2026-002",
        project=project,
        quote=quote,
        pricing=pricing,
        company=company,
        now=NOW,
    )
    assert totals.total_ex_vat == Decimal("2.31")
    assert invoice.subtotal == totals.total_ex_vat
    assert invoice.vat_amount == totals.vat_amount
    assert invoice.total_incl_vat == totals.total_incl_vat == Decimal("2.80")


def test_snapshot_shares_nothing_with_the_quote(draft, accepted_quote):
    assert {l.id for l in draft.line_items}.isdisjoint({l.id for l in accepted_quote.line_items})
    assert all(l.margin_percent_override is None for l in draft.line_items)


def test_generate_preconditions(accepted_quote, project, pricing, company):
    kwargs = dict(invoice_id="i1", number="FAC-1", pricing=pricing, company=company, now=NOW)

    with pytest.raises(PreconditionError) as exc:
        inv.generate(project=project, quote=replace(accepted_quote, status=QuoteStatus.VERZONDEN), **kwargs)
    assert exc.value.code == "QUOTE_NOT_ACCEPTED"

    with pytest.raises(PreconditionError) as exc:
        inv.generate(project=replace(project, quote_id="other"), quote=accepted_quote, **kwargs)
    assert exc.value.code == "PROJECT_QUOTE_MISMATCH"

    with pytest.raises(ValidationError):
        inv.generate(project=project, quote=accepted_quote, payment_term_days=-1, **kwargs)


@pytest.mark.parametrize("status", list(InvoiceStatus))
@pytest.mark.parametrize("event", list(InvoiceEvent))
def test_transition_table_is_exhaustive(draft, status, event):
    i = replace(draft, status=status)
    if (status, event) in INVOICE_TRANSITIONS:
        assert inv.transition(i, event, NOW).status is INVOICE_TRANSITIONS[(status, event)]
    else:
        with pytest.raises(PreconditionError):
            inv.transition(i, event, NOW)


def test_mark_paid_twice_is_refused(sent):
    paid = inv.mark_paid(sent, NOW + 2)
    assert paid.status is InvoiceStatus.BETAALD
    assert paid.paid_at == NOW + 2
    with pytest.raises(PreconditionError) as exc:
        inv.mark_paid(paid, NOW + 3)
    assert exc.value.code == "ILLEGAL_TRANSITION"


def test_paid_at_can_be_backdated(sent):
    assert inv.mark_paid(sent, NOW + 10, paid_at=NOW + 5).paid_at == NOW + 5


def test_expire_only_after_due_date(sent):
    with pytest.raises(PreconditionError) as exc:
        inv.expire(sent, sent.due_date)
    assert exc.value.code == "NOT_YET_DUE"

    overdue = inv.expire(sent, sent.due_date + 1)
    assert overdue.status is InvoiceStatus.VERVALLEN
    assert inv.mark_paid(overdue, sent.due_date + 2).status is InvoiceStatus.BETAALD
    assert inv.resend(overdue, sent.due_date + 2).status is InvoiceStatus.VERZONDEN


def test_is_overdue(sent):
    assert not sent.is_overdue(sent.due_date)
    assert sent.is_overdue(sent.due_date + 1)


def test_unlock_returns_to_concept(draft):
    final = inv.finalize(draft, NOW)
    assert inv.unlock(final, NOW).status is InvoiceStatus.CONCEPT


def test_empty_invoice_cannot_be_finalized(draft):
    empty = replace(draft, line_items=(), corrections=())
    with pytest.raises(PreconditionError) as exc:
        inv.finalize(empty, NOW)
    assert exc.value.code == "EMPTY_INVOICE"


def test_edits_only_in_concept(draft, sent):
    extra = Correction(description="Extra border", amount=Decimal("100"))
    edited = inv.update_corrections(draft, [extra], NOW)
    assert edited.subtotal == Decimal("732.50")
    assert inv.update_notes(edited, "Betaling graag binnen 14 dagen", NOW).notes

    for fn, arg in ((inv.update_corrections, [extra]), (inv.update_lines, ()), (inv.update_notes, "x")):
        with pytest.raises(PreconditionError) as exc:
            fn(sent, arg, NOW)
        assert exc.value.code == "INVOICE_NOT_EDITABLE"


@pytest.mark.parametrize(
    "estimated,actual,expected",
    [
        ("20", "20.9", None),
        ("20", "19.1", None),
        ("20", "24", Decimal("180.00")),
        ("20", "16", Decimal("-180.00")),
        ("0", "10", None),
    ],
)
def test_variance_correction(estimated, actual, expected):
    c = inv.variance_correction(Decimal(estimated), Decimal(actual), Decimal("45"))
    if expected is None:
        assert c is None
    else:
        assert c.amount == expected
        assert c.description.startswith("Meerwerk" if expected > 0 else "Minderwerk")


def test_invoice_round_trips_through_dict(sent):
    assert Invoice.from_dict(sent.to_dict()) == sent
