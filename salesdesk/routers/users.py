import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from salesdesk.auth import Principal, get_principal, hash_password, require_roles
from salesdesk.database import atomic, get_db
from salesdesk.errors import NotFoundError, ValidationError
from salesdesk.models import Role, User
from salesdesk.schemas import UserCreate, UserOut, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_supervisor(db: Session, supervisor_id: Optional[str], user_id: Optional[str] = None):
    if not supervisor_id:
        return
    if supervisor_id == user_id:
        raise ValidationError("Field 'supervisorId' cannot reference the user itself")
    supervisor = db.get(User, supervisor_id)
    if supervisor is None or supervisor.role != Role.SUPERVISOR:
        raise ValidationError("Field 'supervisorId' must reference a supervisor")


# --- API Endpoints ---
@router.get("/users", response_model=List[UserOut], tags=["Users"])
def list_users(
    include_inactive: bool = False,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    query = db.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.role, User.name).all()


@router.post("/users", response_model=UserOut, tags=["Users"])
def create_user(body: UserCreate, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    require_roles(principal, Role.MANAGER, message="Only managers can create users")
    if db.query(User.id).filter(User.username == body.username).first():
        raise ValidationError(f"Field 'username' is already taken: {body.username}")
    _check_supervisor(db, body.supervisor_id)

    with atomic(db):
        user = User(
            username=body.username,
            password_hash=hash_password(body.password),
            name=body.name,
            role=body.role,
            supervisor_id=body.supervisor_id,
            avatar=body.avatar,
        )
        db.add(user)
    db.refresh(user)
    logger.info("User %s (%s) created by %s", user.id, user.role.value, principal.id)
    return user


@router.put("/users", response_model=UserOut, tags=["Users"])
def update_user(body: UserUpdate, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    """Managers edit users. Users are deactivated, never deleted."""
    require_roles(principal, Role.MANAGER, message="Only managers can edit users")
    fields = body.model_dump(exclude_unset=True, exclude={"id", "password"})

    with atomic(db):
        user = db.get(User, body.id)
        if user is None:
            raise NotFoundError(f"User {body.id} not found")
        if "supervisor_id" in fields:
            _check_supervisor(db, fields["supervisor_id"], user.id)
        for key, value in fields.items():
            if value is None and key not in ("supervisor_id", "avatar"):
                continue
            setattr(user, key, value)
        if body.password:
            user.password_hash = hash_password(body.password)
    db.refresh(user)
    logger.info("User %s updated by %s", user.id, principal.id)
    return user
