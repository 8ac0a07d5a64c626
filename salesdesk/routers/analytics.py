"""
Trend data for the dashboards.

    GET /api/analytics?type=daily_activities&period=week|month
    GET /api/analytics?type=monthly_activities
    GET /api/analytics?type=eod_compliance&period=week|month
"""
from collections import Counter
from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from salesdesk.auth import Principal, get_principal
from salesdesk.database import get_db
from salesdesk.errors import ValidationError
from salesdesk.models import Activity, EODReport, Role, User
from salesdesk.utils import add_months, first_of_month, local_today
from salesdesk.visibility import Scope, resolve_scope

router = APIRouter()

ANALYTICS_TYPES = ("daily_activities", "monthly_activities", "eod_compliance")
PERIODS = ("week", "month")
MONTHLY_WINDOW = 6


# --- Helper Functions ---
def _field_users(db: Session, scope: Scope) -> List[User]:
    users = (
        db.query(User)
        .filter(User.role.in_([Role.MARKETER, Role.SUPERVISOR]), User.is_active.is_(True))
        .order_by(User.name)
        .all()
    )
    return [u for u in users if scope.includes_owner(u.id)]


def _period_start(period: str, today: date) -> date:
    if period == "week":
        return today - timedelta(days=6)
    return first_of_month(today)


def _days(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def _user_meta(users: List[User]) -> list:
    return [{"id": u.id, "name": u.name, "shortName": u.name.split(" ")[0]} for u in users]


def daily_activities(db: Session, users: List[User], period: str, today: date) -> dict:
    start = _period_start(period, today)
    ids = [u.id for u in users]
    rows = (
        db.query(Activity.date, Activity.marketing_id, func.count(Activity.id))
        .filter(Activity.date >= start, Activity.date <= today, Activity.marketing_id.in_(ids))
        .group_by(Activity.date, Activity.marketing_id)
        .all()
    )
    lookup = {(d, mid): count for d, mid, count in rows}

    data = []
    for day in _days(start, today):
        entry = {"date": day.isoformat(), "label": day.strftime("%d %b")}
        for uid in ids:
            entry[uid] = lookup.get((day, uid), 0)
        entry["total"] = sum(entry[uid] for uid in ids)
        data.append(entry)

    return {
        "data": data,
        "marketing": _user_meta(users),
        "period": period,
        "startDate": start.isoformat(),
        "endDate": today.isoformat(),
    }


def monthly_activities(db: Session, users: List[User], today: date) -> dict:
    start = add_months(today, -(MONTHLY_WINDOW - 1))
    ids = [u.id for u in users]
    rows = (
        db.query(Activity.date, Activity.marketing_id)
        .filter(Activity.date >= start, Activity.date <= today, Activity.marketing_id.in_(ids))
        .all()
    )
    counts = Counter((d.strftime("%Y-%m"), mid) for d, mid in rows)

    data = []
    for offset in range(MONTHLY_WINDOW):
        month = add_months(start, offset)
        key = month.strftime("%Y-%m")
        entry = {"month": key, "label": month.strftime("%b %Y")}
        for uid in ids:
            entry[uid] = counts.get((key, uid), 0)
        entry["total"] = sum(entry[uid] for uid in ids)
        data.append(entry)

    return {"data": data, "marketing": _user_meta(users)}


def eod_compliance(db: Session, users: List[User], period: str, today: date) -> dict:
    start = _period_start(period, today)
    ids = [u.id for u in users]
    rows = (
        db.query(EODReport.date, func.count(func.distinct(EODReport.marketing_id)))
        .filter(EODReport.date >= start, EODReport.date <= today, EODReport.marketing_id.in_(ids))
        .group_by(EODReport.date)
        .all()
    )
    lookup = dict(rows)
    total = len(ids)

    data = []
    for day in _days(start, today):
        submitted = lookup.get(day, 0)
        data.append({
            "date": day.isoformat(),
            "label": day.strftime("%d %b"),
            "submitted": submitted,
            "missing": total - submitted,
            "rate": round(submitted / total * 100) if total else 0,
        })

    return {"data": data, "totalMarketing": total, "period": period}


# --- API Endpoint ---
@router.get("/analytics", tags=["Analytics"])
def get_analytics(
    type: str = "daily_activities",
    period: str = "month",
    scope: Optional[str] = None,
    marketing_id: Optional[str] = None,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    if type not in ANALYTICS_TYPES:
        raise ValidationError(f"Invalid type. Use: {', '.join(ANALYTICS_TYPES)}")
    if period not in PERIODS:
        raise ValidationError(f"Invalid period. Use: {', '.join(PERIODS)}")

    today = local_today()
    users = _field_users(db, resolve_scope(db, principal, scope, marketing_id))
    if type == "daily_activities":
        return daily_activities(db, users, period, today)
    if type == "monthly_activities":
        return monthly_activities(db, users, today)
    return eod_compliance(db, users, period, today)
