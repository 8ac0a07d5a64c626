"""
Identity & session for SalesDesk.

Login verifies a username/password pair and stores the user id in the signed
session cookie (Starlette's SessionMiddleware). Every protected endpoint takes
the `get_principal` dependency, which reloads the user and yields an
immutable Principal that is then passed explicitly into the engines.
"""
import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from salesdesk import config
from salesdesk.database import get_db
from salesdesk.errors import AuthenticationError, AuthorizationError, ValidationError
from salesdesk.models import Role, User

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"


@dataclass(frozen=True)
class Principal:
    id: str
    role: Role
    name: str = ""

    @property
    def is_field_user(self) -> bool:
        return self.role.value in config.FIELD_ROLES


def principal_for(user: User) -> Principal:
    return Principal(id=user.id, role=Role(user.role), name=user.name)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def authenticate(db: Session, username: str, password: str) -> User:
    if not username or not password:
        raise ValidationError("Field 'username' and 'password' are required")

    user = db.query(User).filter(User.username == username).first()
    if not user or not verify_password(user.password_hash, password):
        logger.info("Failed login for username %r", username)
        raise AuthenticationError("Invalid username or password")
    if not user.is_active:
        logger.info("Login refused for deactivated user %s", user.id)
        raise AuthorizationError("Account is deactivated. Contact a manager.")

    logger.info("User %s (%s) logged in", user.id, user.role.value)
    return user


def get_principal(request: Request, db: Session = Depends(get_db)) -> Principal:
    user_id = request.session.get(SESSION_USER_KEY)
    if not user_id:
        raise AuthenticationError()

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        request.session.clear()
        raise AuthenticationError()
    return principal_for(user)


def require_roles(principal: Principal, *roles: Role, message: str = "Access denied"):
    if principal.role not in roles:
        raise AuthorizationError(message)
