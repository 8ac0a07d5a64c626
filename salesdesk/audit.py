"""
Audit Handoff Engine.

Clients become audit-eligible once they reach DEAL or record a payment. An
eligible client gets a fixed seven-item checklist (created lazily on first
read) and can be assigned to one auditor from the roster. Only managers and
auditors may use anything in this module.
"""
import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salesdesk import config, notify_client, pipeline
from salesdesk.auth import Principal, require_roles
from salesdesk.database import atomic
from salesdesk.errors import NotFoundError, PersistenceError, ValidationError
from salesdesk.models import AuditChecklistItem, ChecklistItemKey, Client, Role, User
from salesdesk.schemas import AssignmentResult, AuditQueueItem, ChecklistItemOut
from salesdesk.utils import local_today, utcnow
from salesdesk.visibility import audit_eligible_clause

logger = logging.getLogger(__name__)

AUDIT_ROLES = (Role.MANAGER, Role.AUDITOR)


def _require_audit_role(principal: Principal):
    require_roles(principal, *AUDIT_ROLES, message="Only managers and auditors can access audits")


def checklist_item_view(item: AuditChecklistItem) -> ChecklistItemOut:
    return ChecklistItemOut(
        id=item.id,
        client_id=item.client_id,
        item_key=item.item_key,
        label=config.CHECKLIST_ITEMS[item.item_key.value],
        is_checked=item.is_checked,
        checked_at=item.checked_at,
        checked_by=item.checked_by,
    )


def _checklist_rows(db: Session, client_id: str) -> List[AuditChecklistItem]:
    return (
        db.query(AuditChecklistItem)
        .filter(AuditChecklistItem.client_id == client_id)
        .order_by(AuditChecklistItem.id)
        .all()
    )


def get_checklist(db: Session, principal: Principal, client_id: str) -> List[AuditChecklistItem]:
    _require_audit_role(principal)
    client = pipeline.get_client(db, client_id)

    items = _checklist_rows(db, client_id)
    if items:
        return items
    if not client.audit_eligible:
        raise ValidationError("Client is not eligible for audit (needs DEAL status or a payment)")

    try:
        with atomic(db):
            for key in ChecklistItemKey:
                db.add(AuditChecklistItem(client_id=client_id, item_key=key))
    except PersistenceError as e:
        # Another request materialized the same checklist first.
        if not isinstance(e.__cause__, IntegrityError):
            raise
        logger.info("Checklist for client %s was created concurrently", client_id)
    else:
        logger.info("Checklist created for client %s", client_id)
    return _checklist_rows(db, client_id)


def toggle_checklist_item(
    db: Session,
    principal: Principal,
    item_id: int,
    checked: bool,
    now: Optional[datetime] = None,
) -> AuditChecklistItem:
    _require_audit_role(principal)
    with atomic(db):
        item = db.get(AuditChecklistItem, item_id)
        if item is None:
            raise NotFoundError(f"Checklist item {item_id} not found")
        item.is_checked = checked
        # Unchecking wipes the stamps; no history is kept.
        item.checked_at = (now or utcnow()) if checked else None
        item.checked_by = principal.id if checked else None
    db.refresh(item)
    return item


def assign_auditor(
    db: Session,
    principal: Principal,
    client_id: str,
    auditor_name: str,
    today: Optional[date] = None,
) -> AssignmentResult:
    """
    Commits the assignment first, then notifies. Notification outcomes are
    reported back and never undo the assignment.
    """
    _require_audit_role(principal)
    if auditor_name not in config.AUDITOR_ROSTER:
        raise ValidationError(f"Field 'assignee' must be one of: {', '.join(config.AUDITOR_ROSTER)}")

    today = today or local_today()
    with atomic(db):
        client = pipeline.get_client(db, client_id)
        if not client.audit_eligible:
            raise ValidationError("Client is not eligible for audit (needs DEAL status or a payment)")
        client.auditor_assignee = auditor_name
        client.last_update = today
    db.refresh(client)
    logger.info("Client %s assigned to auditor %s by %s", client.id, auditor_name, principal.id)

    marketer = db.get(User, client.marketing_id)
    notifications = notify_client.notify_assignment(client, auditor_name, marketer.name if marketer else "-")
    logger.info(
        "Assignment notifications for client %s: wa=%s email=%s",
        client.id, notifications["wa"]["sent"], notifications["email"]["sent"],
    )
    return AssignmentResult(client=pipeline.client_view(client, today), notifications=notifications)


def unassign_auditor(db: Session, principal: Principal, client_id: str, today: Optional[date] = None) -> Client:
    """Clears the assignee. Checklist progress is kept for the next auditor."""
    _require_audit_role(principal)
    with atomic(db):
        client = pipeline.get_client(db, client_id)
        client.auditor_assignee = None
        client.last_update = today or local_today()
    db.refresh(client)
    logger.info("Client %s unassigned by %s", client.id, principal.id)
    return client


def list_audit_queue(
    db: Session,
    principal: Principal,
    assignee: Optional[str] = None,
    today: Optional[date] = None,
) -> List[AuditQueueItem]:
    _require_audit_role(principal)
    today = today or local_today()

    query = db.query(Client).filter(audit_eligible_clause())
    if assignee:
        query = query.filter(Client.auditor_assignee == assignee)
    clients = query.order_by(Client.last_update.desc()).all()

    progress = dict(
        db.query(AuditChecklistItem.client_id, func.count(AuditChecklistItem.id))
        .filter(AuditChecklistItem.is_checked.is_(True))
        .group_by(AuditChecklistItem.client_id)
        .all()
    )
    total = len(config.CHECKLIST_ITEMS)
    return [
        AuditQueueItem(client=pipeline.client_view(c, today), checked=progress.get(c.id, 0), total=total)
        for c in clients
    ]
