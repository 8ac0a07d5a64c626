from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from salesdesk import audit, pipeline
from salesdesk.auth import Principal, get_principal
from salesdesk.database import get_db
from salesdesk.errors import ValidationError
from salesdesk.schemas import (
    AssignmentRequest,
    AssignmentResult,
    AuditQueueItem,
    ChecklistItemOut,
    ChecklistToggle,
    ClientOut,
)

router = APIRouter()


@router.get("/audit_checklist", response_model=List[ChecklistItemOut], tags=["Audit"])
def get_checklist(
    client_id: Optional[str] = None,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    if not client_id:
        raise ValidationError("Field 'client_id' is required")
    items = audit.get_checklist(db, principal, client_id)
    return [audit.checklist_item_view(i) for i in items]


@router.put("/audit_checklist", response_model=ChecklistItemOut, tags=["Audit"])
def toggle_checklist_item(body: ChecklistToggle, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    item = audit.toggle_checklist_item(db, principal, body.id, body.is_checked)
    return audit.checklist_item_view(item)


@router.get("/audit/queue", response_model=List[AuditQueueItem], tags=["Audit"])
def audit_queue(
    assignee: Optional[str] = None,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return audit.list_audit_queue(db, principal, assignee)


@router.post("/audit/assignment", response_model=AssignmentResult, tags=["Audit"])
def assign_auditor(body: AssignmentRequest, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    return audit.assign_auditor(db, principal, body.client_id, body.assignee)


@router.delete("/audit/assignment", response_model=ClientOut, tags=["Audit"])
def unassign_auditor(client_id: str, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    client = audit.unassign_auditor(db, principal, client_id)
    return pipeline.client_view(client)
