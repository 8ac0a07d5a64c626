from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from salesdesk.auth import SESSION_USER_KEY, authenticate
from salesdesk.database import get_db
from salesdesk.models import User
from salesdesk.schemas import UserOut

router = APIRouter()


# --- Pydantic Models ---
class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


# --- API Endpoints ---
@router.post("/auth/login", response_model=UserOut, tags=["Auth"])
def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    user = authenticate(db, body.username, body.password)
    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id
    return UserOut.model_validate(user)


@router.post("/auth/logout", tags=["Auth"])
def logout(request: Request):
    request.session.clear()
    return {"success": True}


@router.get("/auth/session", tags=["Auth"])
def get_session(request: Request, db: Session = Depends(get_db)):
    user_id = request.session.get(SESSION_USER_KEY)
    user = db.get(User, user_id) if user_id else None
    if user is None or not user.is_active:
        request.session.clear()
        return {"authenticated": False}
    return {"authenticated": True, "user": UserOut.model_validate(user).model_dump(by_alias=True)}
