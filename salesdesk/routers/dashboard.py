from collections import Counter
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from salesdesk import config, pipeline
from salesdesk.auth import Principal, get_principal
from salesdesk.database import get_db
from salesdesk.models import Activity, AuditChecklistItem, Client, ClientStatus, EODReport, Role, User
from salesdesk.utils import first_of_month, local_today, time_ago
from salesdesk.visibility import audit_eligible_clause, resolve_scope

router = APIRouter()


def _audit_dashboard(db: Session) -> dict:
    eligible = db.query(Client).filter(audit_eligible_clause()).all()
    assigned = [c for c in eligible if c.auditor_assignee]
    completed_ids = {
        row[0]
        for row in db.query(AuditChecklistItem.client_id)
        .filter(AuditChecklistItem.is_checked.is_(True))
        .group_by(AuditChecklistItem.client_id)
        .having(func.count(AuditChecklistItem.id) == len(config.CHECKLIST_ITEMS))
        .all()
    }
    return {
        "auditEligible": len(eligible),
        "assigned": len(assigned),
        "unassigned": len(eligible) - len(assigned),
        "completed": sum(1 for c in eligible if c.id in completed_ids),
    }


@router.get("/dashboard", tags=["Dashboard"])
def get_dashboard(
    scope: Optional[str] = None,
    marketing_id: Optional[str] = None,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    if principal.role == Role.AUDITOR:
        return _audit_dashboard(db)

    today = local_today()
    month_start = first_of_month(today)
    resolved = resolve_scope(db, principal, scope, marketing_id)

    # --- 1. Pipeline KPIs ---
    clients = resolved.apply(db.query(Client), Client).all()
    deals_this_month = sum(
        1 for c in clients if c.status == ClientStatus.DEAL and c.last_update >= month_start
    )
    stagnant = pipeline.compute_stagnant(clients, today)
    by_status = Counter(c.status.value for c in clients)
    pipeline_counts = [{"status": s, "count": by_status.get(s, 0)} for s in config.PIPELINE_ORDER]

    # --- 2. Activity ---
    today_activities = (
        resolved.apply(db.query(func.count(Activity.id)), Activity)
        .filter(Activity.date == today)
        .scalar() or 0
    )
    recent = resolved.apply(db.query(Activity), Activity).order_by(desc(Activity.created_at)).limit(5).all()
    recent_activity = [
        {"id": a.id, "type": a.type.value, "text": a.description, "time": time_ago(a.created_at)}
        for a in recent
    ]

    data = {
        "totalClients": len(clients),
        "todayActivities": today_activities,
        "dealsThisMonth": deals_this_month,
        "stagnantClients": len(stagnant),
        "pipeline": pipeline_counts,
        "recentActivity": recent_activity,
    }

    # --- 3. EOD Status ---
    if principal.role == Role.MANAGER:
        field_user_ids = [
            row[0]
            for row in db.query(User.id)
            .filter(User.role.in_([Role.MARKETER, Role.SUPERVISOR]), User.is_active.is_(True))
            .all()
        ]
        # Same owners as the numerator when narrowed to one marketer.
        field_users = sum(1 for uid in field_user_ids if resolved.includes_owner(uid))
        submitted_today = (
            resolved.apply(db.query(func.count(EODReport.id)), EODReport)
            .filter(EODReport.date == today)
            .scalar() or 0
        )
        deal_value = (
            resolved.apply(db.query(func.coalesce(func.sum(EODReport.deal_value), 0)), EODReport)
            .filter(EODReport.date >= month_start)
            .scalar() or 0
        )
        data["eodStatus"] = f"{submitted_today}/{field_users} submitted"
        data["dealValueThisMonth"] = float(deal_value)
    else:
        report = (
            db.query(EODReport)
            .filter(EODReport.marketing_id == principal.id, EODReport.date == today)
            .first()
        )
        data["eodStatus"] = report.status.value if report else "MISSING"
    return data
