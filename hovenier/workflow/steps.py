from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from hovenier.core.errors import ValidationError


class EntityType(str, Enum):
    QUOTE = "offerte"
    PROJECT = "project"
    INVOICE = "factuur"


class WorkflowStep(str, Enum):
    OFFERTE = "offerte"
    VOORCALCULATIE = "voorcalculatie"
    PROJECT = "project"
    PLANNING = "planning"
    UITVOERING = "uitvoering"
    NACALCULATIE = "nacalculatie"
    FACTUUR = "factuur"


class StepState(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    UPCOMING = "upcoming"
    DISABLED = "disabled"


STEP_ORDER: Tuple[WorkflowStep, ...] = tuple(WorkflowStep)

STEP_LABELS: Dict[WorkflowStep, str] = {
    WorkflowStep.OFFERTE: "Offerte",
    WorkflowStep.VOORCALCULATIE: "Voorcalculatie",
    WorkflowStep.PROJECT: "Project",
    WorkflowStep.PLANNING: "Planning",
    WorkflowStep.UITVOERING: "Uitvoering",
    WorkflowStep.NACALCULATIE: "Nacalculatie",
    WorkflowStep.FACTUUR: "Factuur",
}

# (entiteit, status) -> macro-stap
STEP_BY_STATUS: Dict[Tuple[EntityType, str], WorkflowStep] = {
    (EntityType.QUOTE, "concept"): WorkflowStep.OFFERTE,
    (EntityType.QUOTE, "afgewezen"): WorkflowStep.OFFERTE,
    (EntityType.QUOTE, "voorcalculatie"): WorkflowStep.VOORCALCULATIE,
    (EntityType.QUOTE, "verzonden"): WorkflowStep.VOORCALCULATIE,
    (EntityType.QUOTE, "geaccepteerd"): WorkflowStep.PROJECT,
    (EntityType.PROJECT, "gepland"): WorkflowStep.PLANNING,
    (EntityType.PROJECT, "in_uitvoering"): WorkflowStep.UITVOERING,
    (EntityType.PROJECT, "afgerond"): WorkflowStep.NACALCULATIE,
    (EntityType.PROJECT, "nacalculatie_compleet"): WorkflowStep.FACTUUR,
    (EntityType.PROJECT, "gefactureerd"): WorkflowStep.FACTUUR,
    (EntityType.INVOICE, "concept"): WorkflowStep.FACTUUR,
    (EntityType.INVOICE, "definitief"): WorkflowStep.FACTUUR,
    (EntityType.INVOICE, "verzonden"): WorkflowStep.FACTUUR,
    (EntityType.INVOICE, "vervallen"): WorkflowStep.FACTUUR,
    (EntityType.INVOICE, "betaald"): WorkflowStep.FACTUUR,
}

# Statussen waarmee de hele flow klaar is
FINISHED = frozenset({(EntityType.INVOICE, "betaald")})


@dataclass(frozen=True)
class StepView:
    step: WorkflowStep
    label: str
    state: StepState


def _entity(entity_type: EntityType | str) -> EntityType:
    try:
        return EntityType(entity_type)
    except ValueError:
        raise ValidationError(
            f"Onbekend entiteittype '{entity_type}'",
            code="UNKNOWN_ENTITY_TYPE",
            meta={"allowed": [e.value for e in EntityType]},
        ) from None


def _status(status: Enum | str) -> str:
    return status.value if isinstance(status, Enum) else str(status)


def step_for(entity_type: EntityType | str, status: Enum | str) -> WorkflowStep:
    step = STEP_BY_STATUS.get((_entity(entity_type), _status(status)))
    if step is None:
        raise ValidationError(
            f"Onbekende status '{status}' voor {entity_type}",
            code="UNKNOWN_STATUS",
            meta={"entity_type": _entity(entity_type).value, "status": _status(status)},
        )
    return step


def next_step(step: WorkflowStep) -> Optional[WorkflowStep]:
    idx = STEP_ORDER.index(step)
    return STEP_ORDER[idx + 1] if idx + 1 < len(STEP_ORDER) else None


def derive_steps(
    current: WorkflowStep,
    *,
    finished: bool = False,
    disabled: Iterable[WorkflowStep] = (),
) -> List[StepView]:
    """Stappen voor de stepper. Geen eigen state: alles volgt uit de huidige stap."""
    current_idx = STEP_ORDER.index(current)
    off = set(disabled)

    out: List[StepView] = []
    for idx, step in enumerate(STEP_ORDER):
        if step in off:
            state = StepState.DISABLED
        elif idx < current_idx or (finished and idx == current_idx):
            state = StepState.COMPLETED
        elif idx == current_idx:
            state = StepState.CURRENT
        else:
            state = StepState.UPCOMING
        out.append(StepView(step=step, label=STEP_LABELS[step], state=state))
    return out


def workflow_position(entity_type: EntityType | str, status: Enum | str) -> List[StepView]:
    entity = _entity(entity_type)
    return derive_steps(step_for(entity, status), finished=(entity, _status(status)) in FINISHED)
