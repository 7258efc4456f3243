from dataclasses import replace
from decimal import Decimal

import pytest

from hovenier.core.errors import PreconditionError, ValidationError
from hovenier.domain import line_items as li
from hovenier.domain.quote import Quote, QuoteStatus, QuoteType, ResponseStatus
from hovenier.engine.estimation import EstimationResult
from hovenier.workflow import quote_lifecycle as ql
from hovenier.workflow.quote_lifecycle import QUOTE_TRANSITIONS, QuoteEvent

NOW = 1_700_000_000_000

ESTIMATION = EstimationResult(
    team_size=2,
    team_members=frozenset(),
    effective_hours_per_day=Decimal("7"),
    norm_hours_per_scope={"gras": Decimal("6")},
    norm_hours_total=Decimal("6"),
    estimated_days=1,
)


@pytest.fixture
def quote(customer, garden_lines):
    lines = ()
    for d in garden_lines:
        lines = li.add_line(lines, d)
    return Quote(id="q1", number="OFF-2026-001", type=QuoteType.AANLEG, customer=customer, line_items=lines)


@pytest.fixture
def estimated(quote):
    return ql.attach_estimation(quote, ESTIMATION, NOW)


@pytest.fixture
def sent(estimated):
    return ql.send(estimated, NOW)


def test_happy_path(estimated):
    q = ql.complete_estimation(estimated, NOW)
    assert q.status is QuoteStatus.VOORCALCULATIE
    q = ql.send(q, NOW + 1)
    assert q.status is QuoteStatus.VERZONDEN
    assert q.sent_at == NOW + 1
    q, event = ql.accept(q, NOW + 2)
    assert q.status is QuoteStatus.GEACCEPTEERD
    assert event.quote_id == "q1"
    assert event.accepted_at == NOW + 2


def test_send_without_estimation_is_refused(quote):
    with pytest.raises(PreconditionError) as exc:
        ql.send(quote, NOW)
    assert exc.value.code == "ESTIMATION_REQUIRED"
    assert quote.status is QuoteStatus.CONCEPT

    with pytest.raises(PreconditionError):
        ql.complete_estimation(quote, NOW)


@pytest.mark.parametrize("status", list(QuoteStatus))
@pytest.mark.parametrize("event", list(QuoteEvent))
def test_every_pair_outside_the_table_is_illegal(estimated, status, event):
    q = replace(estimated, status=status)
    if (status, event) in QUOTE_TRANSITIONS:
        assert ql.transition(q, event, NOW).status is QUOTE_TRANSITIONS[(status, event)]
    else:
        with pytest.raises(PreconditionError) as exc:
            ql.transition(q, event, NOW)
        assert exc.value.code == "ILLEGAL_TRANSITION"
        assert q.status is status


def test_reject_and_reopen_clears_response(sent):
    q, _ = ql.respond(ql.mark_viewed(sent, NOW), False, NOW + 5, comment="Te duur")
    assert q.status is QuoteStatus.AFGEWEZEN
    assert q.customer_response.comment == "Te duur"

    reopened = ql.reopen(q, NOW + 10)
    assert reopened.status is QuoteStatus.CONCEPT
    assert reopened.customer_response is None
    assert reopened.sent_at is None
    assert reopened.estimation == ESTIMATION


def test_edits_only_in_editable_statuses(estimated, sent):
    ql.update_draft(estimated, NOW, notes="Let op de hond")
    with pytest.raises(PreconditionError) as exc:
        ql.with_lines(sent, (), NOW)
    assert exc.value.code == "QUOTE_NOT_EDITABLE"


def test_update_draft_only_touches_given_fields(quote):
    q = ql.update_draft(quote, NOW, scopes=["gras", "gras", "borders"])
    assert q.scopes == ("gras", "borders")
    assert q.notes == quote.notes
    assert q.line_items == quote.line_items


def test_duplicate_is_a_fresh_concept(sent):
    copy = ql.duplicate(sent, "q2", "OFF-2026-002", NOW)
    assert copy.status is QuoteStatus.CONCEPT
    assert copy.estimation is None
    assert copy.sent_at is None
    assert copy.notes.startswith("Kopie van OFF-2026-001")
    assert {l.id for l in copy.line_items}.isdisjoint({l.id for l in sent.line_items})


def test_share_requires_sent(estimated, sent):
    with pytest.raises(PreconditionError) as exc:
        ql.share(estimated, "tok", NOW + 1000, NOW)
    assert exc.value.code == "QUOTE_NOT_SENT"

    shared = ql.share(sent, "tok", NOW + 1000, NOW)
    ql.ensure_share_active(shared, NOW + 1000)
    with pytest.raises(PreconditionError) as exc:
        ql.ensure_share_active(shared, NOW + 1001)
    assert exc.value.code == "SHARE_EXPIRED"

    with pytest.raises(PreconditionError) as exc:
        ql.ensure_share_active(ql.revoke_share(shared, NOW), NOW)
    assert exc.value.code == "SHARE_INACTIVE"


def test_only_first_view_is_recorded(sent):
    first = ql.mark_viewed(sent, NOW)
    again = ql.mark_viewed(first, NOW + 99)
    assert again is first
    assert again.customer_response.status is ResponseStatus.BEKEKEN
    assert again.customer_response.viewed_at == NOW


def test_accept_requires_signature(sent):
    with pytest.raises(ValidationError) as exc:
        ql.respond(sent, True, NOW, signature="  ")
    assert exc.value.code == "SIGNATURE_REQUIRED"

    q, event = ql.respond(sent, True, NOW, signature="data:image/png;base64,AAAA")
    assert event is not None
    assert q.status is QuoteStatus.GEACCEPTEERD
    assert q.customer_response.signed_at == NOW


def test_second_response_is_refused(sent):
    q, _ = ql.respond(sent, False, NOW)
    with pytest.raises(PreconditionError) as exc:
        ql.respond(q, True, NOW, signature="x")
    assert exc.value.code == "ALREADY_RESPONDED"


def test_questions(sent, estimated):
    q = ql.submit_question(sent, "Kan het ook met gebakken klinkers?", NOW)
    q = ql.submit_question(q, "En wanneer kunnen jullie starten?", NOW + 1)
    assert [x.text for x in q.customer_response.questions] == [
        "Kan het ook met gebakken klinkers?",
        "En wanneer kunnen jullie starten?",
    ]

    with pytest.raises(ValidationError):
        ql.submit_question(sent, "   ", NOW)
    with pytest.raises(PreconditionError) as exc:
        ql.submit_question(estimated, "Vraag", NOW)
    assert exc.value.code == "QUOTE_NOT_OPEN"


def test_archived_quote_is_frozen(sent):
    archived = ql.archive(sent, NOW)
    assert ql.archive(archived, NOW + 1) is archived
    with pytest.raises(PreconditionError) as exc:
        ql.accept(archived, NOW)
    assert exc.value.code == "QUOTE_ARCHIVED"


def test_quote_round_trips_through_dict(sent):
    q = ql.submit_question(sent, "Vraag", NOW)
    assert Quote.from_dict(q.to_dict()) == q
