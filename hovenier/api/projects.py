from __future__ import annotations

from fastapi import APIRouter, Depends

from hovenier.api.deps import get_orchestrator
from hovenier.api.schemas import ProjectAdvanceIn
from hovenier.workflow.orchestrator import WorkflowOrchestrator

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("/{project_id}")
def get_project(project_id: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    project = orch.store.get_project(project_id)
    invoice = orch.store.find_invoice_by_project(project.id)
    out = project.to_dict()
    out["invoice_id"] = invoice.id if invoice else None
    return out


@router.post("/{project_id}/advance")
def advance_project(
    project_id: str,
    payload: ProjectAdvanceIn,
    orch: WorkflowOrchestrator = Depends(get_orchestrator),
):
    return orch.advance_project(project_id, actual_hours=payload.actual_hours).to_dict()
