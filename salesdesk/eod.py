"""
Daily Report Workflow.

One EOD report per (date, marketer). Submitting upserts the report, replaces
its progress-update log wholesale and cascades every status change into the
referenced client, all inside a single transaction.

    DRAFT -> SUBMITTED -> APPROVED | REVISION
    REVISION/APPROVED -> SUBMITTED (on resubmission)
"""
import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salesdesk import pipeline
from salesdesk.auth import Principal
from salesdesk.database import atomic
from salesdesk.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from salesdesk.models import ClientProgressUpdate, EODReport, ReportStatus, Role
from salesdesk.schemas import ProgressUpdateIn, ReportOut, ReportSubmit
from salesdesk.utils import local_today, utcnow
from salesdesk.visibility import Scope, ensure_can_write, supervises

logger = logging.getLogger(__name__)

REVIEW_STATUSES = (ReportStatus.APPROVED, ReportStatus.REVISION)

REPORT_FIELDS = (
    "summary",
    "new_leads",
    "follow_ups",
    "deals_today",
    "deal_value",
    "constraints",
    "support_needed",
    "plan_tomorrow",
)


def map_report(report: EODReport) -> ReportOut:
    """A report is never returned without its current progress updates."""
    return ReportOut.model_validate(report)


def find_report(db: Session, owner_id: str, report_date: date) -> Optional[EODReport]:
    return (
        db.query(EODReport)
        .filter(EODReport.date == report_date, EODReport.marketing_id == owner_id)
        .first()
    )


def get_report(db: Session, report_id: str) -> EODReport:
    report = db.get(EODReport, report_id)
    if report is None:
        raise NotFoundError(f"Report {report_id} not found")
    return report


def list_reports(
    db: Session,
    scope: Scope,
    report_date: Optional[date] = None,
    status: Optional[ReportStatus] = None,
) -> List[ReportOut]:
    query = scope.apply(db.query(EODReport), EODReport)
    if report_date:
        query = query.filter(EODReport.date == report_date)
    if status:
        query = query.filter(EODReport.status == status)
    reports = query.order_by(EODReport.date.desc(), EODReport.submitted_at.desc()).all()
    return [map_report(r) for r in reports]


# --- Submission ---
def _apply_submission(report: EODReport, payload: ReportSubmit, now: datetime):
    for field in REPORT_FIELDS:
        setattr(report, field, getattr(payload, field))
    # Resubmission always goes back to SUBMITTED, whatever the review said.
    report.status = ReportStatus.SUBMITTED
    report.submitted_at = now
    report.reviewed_by = None
    report.reviewed_at = None


def _upsert_report(db: Session, owner_id: str, report_date: date, payload: ReportSubmit, now: datetime) -> EODReport:
    report = find_report(db, owner_id, report_date)
    if report is None:
        report = EODReport(date=report_date, marketing_id=owner_id)
        _apply_submission(report, payload, now)
        try:
            with db.begin_nested():
                db.add(report)
            return report
        except IntegrityError:
            # A concurrent submission inserted the row first: update that one.
            logger.info("Report for %s on %s already exists, updating in place", owner_id, report_date)
            report = find_report(db, owner_id, report_date)
            if report is None:
                raise ConflictError(f"Report for {report_date} could not be saved")

    _apply_submission(report, payload, now)
    db.flush()
    return report


def _check_progress_targets(db: Session, principal: Principal, updates: List[ProgressUpdateIn]):
    for update in updates:
        client = pipeline.get_client(db, update.client_id)
        ensure_can_write(principal, client.marketing_id)


def _replace_progress_updates(db: Session, report: EODReport, updates: List[ProgressUpdateIn]):
    db.query(ClientProgressUpdate).filter(
        ClientProgressUpdate.report_id == report.id
    ).delete(synchronize_session=False)

    for update in updates:
        db.add(ClientProgressUpdate(
            report_id=report.id,
            client_id=update.client_id,
            activity=update.activity,
            prev_status=update.prev_status,
            new_status=update.new_status,
            result=update.result,
        ))
    db.flush()
    db.expire(report, ["progress_updates"])


def _cascade_status_changes(db: Session, principal: Principal, updates: List[ProgressUpdateIn], today: date) -> int:
    cascaded = 0
    for update in updates:
        if update.prev_status == update.new_status:
            continue
        pipeline.patch_client(db, principal, update.client_id, {"status": update.new_status}, today)
        cascaded += 1
    return cascaded


def submit_report(db: Session, principal: Principal, payload: ReportSubmit, now: Optional[datetime] = None) -> EODReport:
    if not principal.is_field_user:
        raise AuthorizationError("Only marketers can submit EOD reports")
    if not payload.summary.strip():
        raise ValidationError("Field 'summary' is required")

    now = now or utcnow()
    today = local_today(now)
    report_date = payload.date or today

    with atomic(db):
        _check_progress_targets(db, principal, payload.progress_updates)
        report = _upsert_report(db, principal.id, report_date, payload, now)
        _replace_progress_updates(db, report, payload.progress_updates)
        cascaded = _cascade_status_changes(db, principal, payload.progress_updates, today)

    db.refresh(report)
    logger.info(
        "EOD report %s submitted by %s for %s: %d updates, %d status changes",
        report.id, principal.id, report_date, len(payload.progress_updates), cascaded,
    )
    return report


# --- Review ---
def _ensure_can_review(db: Session, principal: Principal, report: EODReport):
    if principal.role == Role.MANAGER:
        return
    if (
        principal.role == Role.SUPERVISOR
        and report.marketing_id != principal.id
        and supervises(db, principal.id, report.marketing_id)
    ):
        return
    raise AuthorizationError("Only managers or the team supervisor can review reports")


def review_report(
    db: Session,
    principal: Principal,
    report_id: str,
    status: ReportStatus,
    now: Optional[datetime] = None,
) -> EODReport:
    if status not in REVIEW_STATUSES:
        raise ValidationError("Field 'status' must be APPROVED or REVISION")

    with atomic(db):
        report = get_report(db, report_id)
        _ensure_can_review(db, principal, report)
        if report.status != ReportStatus.SUBMITTED:
            raise ValidationError(f"Only SUBMITTED reports can be reviewed (report is {report.status.value})")
        report.status = status
        report.reviewed_by = principal.id
        report.reviewed_at = now or utcnow()

    db.refresh(report)
    logger.info("EOD report %s marked %s by %s", report.id, status.value, principal.id)
    return report
