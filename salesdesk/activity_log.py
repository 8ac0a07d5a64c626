"""Activity Log: the append-only per-marketer timeline."""
import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from salesdesk import pipeline, storage
from salesdesk.auth import Principal
from salesdesk.database import atomic
from salesdesk.errors import AuthorizationError, ValidationError
from salesdesk.models import Activity, ActivityStatus, ActivityType
from salesdesk.schemas import ActivityCreate, ActivityOut
from salesdesk.utils import local_now, local_today
from salesdesk.visibility import Scope, ensure_can_write

logger = logging.getLogger(__name__)

DEFAULT_CHECKIN_DESCRIPTION = "Field check-in"


def _check_client_reference(db: Session, principal: Principal, client_id: Optional[str]):
    if client_id:
        client = pipeline.get_client(db, client_id)
        ensure_can_write(principal, client.marketing_id)


def _ensure_field_user(principal: Principal):
    if not principal.is_field_user:
        raise AuthorizationError("Only marketers can log activities")


def list_activities(db: Session, scope: Scope, activity_date: Optional[date] = None) -> List[ActivityOut]:
    query = scope.apply(db.query(Activity), Activity)
    if activity_date:
        query = query.filter(Activity.date == activity_date)
    activities = query.order_by(Activity.date.desc(), Activity.start_time.desc()).all()
    return [ActivityOut.model_validate(a) for a in activities]


def create_activity(db: Session, principal: Principal, data: ActivityCreate, today: Optional[date] = None) -> Activity:
    _ensure_field_user(principal)
    with atomic(db):
        _check_client_reference(db, principal, data.client_id)
        activity = Activity(
            date=data.date or today or local_today(),
            marketing_id=principal.id,
            type=data.type,
            client_id=data.client_id,
            description=data.description,
            start_time=data.start_time[:5],
            end_time=data.end_time[:5],
            location=data.location,
            proof_url=data.proof_url,
            status=data.status,
        )
        db.add(activity)
    db.refresh(activity)
    logger.info("Activity %s (%s) logged by %s", activity.id, activity.type.value, principal.id)
    return activity


def check_in(
    db: Session,
    principal: Principal,
    latitude: str,
    longitude: str,
    client_id: Optional[str] = None,
    description: Optional[str] = None,
    photo: Optional[tuple] = None,
    now: Optional[datetime] = None,
) -> Activity:
    """
    Logs a VISIT at the current local time. `photo` is an optional
    (content, content_type) pair stored through the blob store.
    """
    _ensure_field_user(principal)
    if not (latitude or "").strip() or not (longitude or "").strip():
        raise ValidationError("Field 'latitude' and 'longitude' are required")

    moment = local_now(now)
    _check_client_reference(db, principal, client_id or None)

    proof_url = None
    if photo is not None:
        content, content_type = photo
        proof_url = storage.save_image(principal.id, content, content_type, folder="checkins")

    clock = moment.strftime("%H:%M")
    try:
        with atomic(db):
            activity = Activity(
                date=moment.date(),
                marketing_id=principal.id,
                type=ActivityType.VISIT,
                client_id=client_id or None,
                description=description or DEFAULT_CHECKIN_DESCRIPTION,
                start_time=clock,
                end_time=clock,
                location=f"{latitude.strip()}, {longitude.strip()}",
                proof_url=proof_url,
                status=ActivityStatus.DONE,
            )
            db.add(activity)
    except Exception:
        # The photo is only kept when the activity pointing to it is saved.
        storage.delete_image(proof_url)
        raise
    db.refresh(activity)
    logger.info("Check-in %s by %s at %s", activity.id, principal.id, activity.location)
    return activity
