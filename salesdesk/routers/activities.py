from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from salesdesk import activity_log, storage
from salesdesk.auth import Principal, get_principal
from salesdesk.database import get_db
from salesdesk.errors import ValidationError
from salesdesk.schemas import ActivityCreate, ActivityOut
from salesdesk.visibility import resolve_scope

router = APIRouter()


def _read_photo(photo: Optional[UploadFile]):
    if photo is None or not photo.filename:
        return None
    return photo.file.read(), photo.content_type


# --- API Endpoints ---
@router.get("/activities", response_model=List[ActivityOut], tags=["Activities"])
def list_activities(
    scope: Optional[str] = None,
    marketing_id: Optional[str] = None,
    activity_date: Optional[date] = Query(default=None, alias="date"),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    resolved = resolve_scope(db, principal, scope, marketing_id)
    return activity_log.list_activities(db, resolved, activity_date)


@router.post("/activities", response_model=ActivityOut, tags=["Activities"])
def create_activity(body: ActivityCreate, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    activity = activity_log.create_activity(db, principal, body)
    return ActivityOut.model_validate(activity)


@router.post("/activities/checkin", response_model=ActivityOut, tags=["Activities"])
def check_in(
    latitude: str = Form(""),
    longitude: str = Form(""),
    client_id: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Multipart check-in: coordinates are required, the photo is optional."""
    activity = activity_log.check_in(
        db, principal, latitude, longitude,
        client_id=client_id,
        description=description,
        photo=_read_photo(photo),
    )
    return ActivityOut.model_validate(activity)


@router.post("/upload", tags=["Activities"])
def upload_proof(photo: Optional[UploadFile] = File(None), principal: Principal = Depends(get_principal)):
    content = _read_photo(photo)
    if content is None:
        raise ValidationError("Field 'photo' is required")
    return {"url": storage.save_image(principal.id, *content)}
