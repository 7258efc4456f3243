# hovenier/api/invoices.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from hovenier.api.deps import get_orchestrator
from hovenier.api.schemas import CorrectionsIn, InvoiceCreateIn, SettleIn
from hovenier.domain.invoice import CompanyInfo, Correction, InvoiceStatus
from hovenier.workflow.orchestrator import WorkflowOrchestrator

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.post("", status_code=201)
def generate_invoice(payload: InvoiceCreateIn, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    invoice = orch.generate_invoice(
        payload.project_id,
        CompanyInfo.from_dict(payload.company.model_dump()),
        corrections=[Correction.from_dict(c.model_dump()) for c in payload.corrections],
        include_variance=payload.include_variance,
    )
    return invoice.to_dict()


@router.get("")
def list_invoices(status: Optional[InvoiceStatus] = None, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return [
        {
            "id": i.id,
            "number": i.number,
            "status": i.status.value,
            "customer": i.customer.name,
            "due_date": i.due_date,
            "total_incl_vat": str(i.total_incl_vat),
        }
        for i in orch.store.list_invoices(status=status)
    ]


# Voor een dagelijkse job; staat voor /{invoice_id} zodat het pad niet als id gematcht wordt
@router.post("/expire-overdue")
def expire_overdue(orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    expired = orch.expire_overdue_invoices()
    return {"expired": [i.id for i in expired]}


@router.get("/{invoice_id}")
def get_invoice(invoice_id: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return orch.store.get_invoice(invoice_id).to_dict()


@router.put("/{invoice_id}/corrections")
def update_corrections(
    invoice_id: str,
    payload: CorrectionsIn,
    orch: WorkflowOrchestrator = Depends(get_orchestrator),
):
    corrections = [Correction.from_dict(c.model_dump()) for c in payload.corrections]
    return orch.update_invoice_corrections(invoice_id, corrections).to_dict()


@router.post("/{invoice_id}/finalize")
def finalize_invoice(invoice_id: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return orch.finalize_invoice(invoice_id).to_dict()


@router.post("/{invoice_id}/unlock")
def unlock_invoice(invoice_id: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return orch.unlock_invoice(invoice_id).to_dict()


@router.post("/{invoice_id}/send")
def send_invoice(invoice_id: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return orch.send_invoice(invoice_id).to_dict()


@router.post("/{invoice_id}/resend")
def resend_invoice(invoice_id: str, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    return orch.resend_invoice(invoice_id).to_dict()


@router.post("/{invoice_id}/settle")
def settle_invoice(invoice_id: str, payload: SettleIn, orch: WorkflowOrchestrator = Depends(get_orchestrator)):
    invoice, project, quote = orch.settle_invoice(invoice_id, paid_at=payload.paid_at)
    return {
        "invoice": invoice.to_dict(),
        "project": project.to_dict(),
        "quote": {"id": quote.id, "number": quote.number, "archived_at": quote.archived_at},
    }
