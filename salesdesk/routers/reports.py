from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from salesdesk import eod
from salesdesk.auth import Principal, get_principal
from salesdesk.database import get_db
from salesdesk.models import ReportStatus
from salesdesk.schemas import ReportOut, ReportReview, ReportSubmit
from salesdesk.visibility import resolve_scope

router = APIRouter()


@router.get("/reports", response_model=List[ReportOut], tags=["Reports"])
def list_reports(
    scope: Optional[str] = None,
    marketing_id: Optional[str] = None,
    report_date: Optional[date] = Query(default=None, alias="date"),
    status: Optional[ReportStatus] = None,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    resolved = resolve_scope(db, principal, scope, marketing_id)
    return eod.list_reports(db, resolved, report_date, status)


@router.post("/reports", response_model=ReportOut, tags=["Reports"])
def submit_report(body: ReportSubmit, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    """Creates or resubmits the caller's report for `date` (default: today)."""
    report = eod.submit_report(db, principal, body)
    return eod.map_report(report)


@router.put("/reports", response_model=ReportOut, tags=["Reports"])
def review_report(body: ReportReview, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    report = eod.review_report(db, principal, body.id, body.status)
    return eod.map_report(report)
