import pytest

from hovenier.core.errors import ValidationError
from hovenier.domain.invoice import InvoiceStatus
from hovenier.domain.project import ProjectStatus
from hovenier.domain.quote import QuoteStatus
from hovenier.workflow.steps import (
    STEP_ORDER,
    EntityType,
    StepState,
    WorkflowStep,
    derive_steps,
    next_step,
    step_for,
    workflow_position,
)


def _states(views):
    return [v.state for v in views]


@pytest.mark.parametrize(
    "entity,status,step",
    [
        (EntityType.QUOTE, QuoteStatus.CONCEPT, WorkflowStep.OFFERTE),
        (EntityType.QUOTE, QuoteStatus.AFGEWEZEN, WorkflowStep.OFFERTE),
        (EntityType.QUOTE, QuoteStatus.VOORCALCULATIE, WorkflowStep.VOORCALCULATIE),
        (EntityType.QUOTE, QuoteStatus.VERZONDEN, WorkflowStep.VOORCALCULATIE),
        (EntityType.QUOTE, QuoteStatus.GEACCEPTEERD, WorkflowStep.PROJECT),
        (EntityType.PROJECT, ProjectStatus.GEPLAND, WorkflowStep.PLANNING),
        (EntityType.PROJECT, ProjectStatus.IN_UITVOERING, WorkflowStep.UITVOERING),
        (EntityType.PROJECT, ProjectStatus.AFGEROND, WorkflowStep.NACALCULATIE),
        (EntityType.PROJECT, ProjectStatus.NACALCULATIE_COMPLEET, WorkflowStep.FACTUUR),
        (EntityType.INVOICE, InvoiceStatus.VERZONDEN, WorkflowStep.FACTUUR),
    ],
)
def test_status_maps_to_step(entity, status, step):
    assert step_for(entity, status) is step
    assert step_for(entity.value, status.value) is step


def test_every_known_status_has_a_step():
    for status in QuoteStatus:
        step_for(EntityType.QUOTE, status)
    for status in ProjectStatus:
        step_for(EntityType.PROJECT, status)
    for status in InvoiceStatus:
        step_for(EntityType.INVOICE, status)


def test_unknown_input_is_rejected():
    with pytest.raises(ValidationError) as exc:
        step_for("klant", "concept")
    assert exc.value.code == "UNKNOWN_ENTITY_TYPE"

    with pytest.raises(ValidationError) as exc:
        step_for(EntityType.QUOTE, "gearchiveerd")
    assert exc.value.code == "UNKNOWN_STATUS"


def test_derive_steps_marks_before_and_after():
    views = derive_steps(WorkflowStep.PLANNING)
    assert [v.step for v in views] == list(STEP_ORDER)
    assert _states(views) == [
        StepState.COMPLETED,
        StepState.COMPLETED,
        StepState.COMPLETED,
        StepState.CURRENT,
        StepState.UPCOMING,
        StepState.UPCOMING,
        StepState.UPCOMING,
    ]
    assert views[0].label == "Offerte"


def test_disabled_steps():
    views = derive_steps(WorkflowStep.OFFERTE, disabled=[WorkflowStep.PLANNING])
    assert views[3].state is StepState.DISABLED


def test_paid_invoice_completes_the_flow():
    views = workflow_position(EntityType.INVOICE, InvoiceStatus.BETAALD)
    assert all(v.state is StepState.COMPLETED for v in views)

    views = workflow_position(EntityType.INVOICE, InvoiceStatus.CONCEPT)
    assert views[-1].state is StepState.CURRENT


def test_next_step():
    assert next_step(WorkflowStep.OFFERTE) is WorkflowStep.VOORCALCULATIE
    assert next_step(WorkflowStep.FACTUUR) is None
