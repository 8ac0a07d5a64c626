"""
Bootstraps a fresh deployment with its first manager.

    SEED_MANAGER_USERNAME=admin SEED_MANAGER_PASSWORD=... python -m salesdesk.seed

Creates the tables, then the manager account. Running it again leaves an
existing account untouched.
"""
import logging
import os
import sys

from sqlalchemy.orm import Session

from salesdesk.auth import hash_password
from salesdesk.database import SessionLocal, atomic, init_db
from salesdesk.errors import SalesDeskError, ValidationError
from salesdesk.models import Role, User

logger = logging.getLogger(__name__)


def seed_manager(db: Session, username: str, password: str, name: str = "Manager") -> User:
    username = (username or "").strip()
    if not username or not password:
        raise ValidationError("SEED_MANAGER_USERNAME and SEED_MANAGER_PASSWORD are required")

    user = db.query(User).filter(User.username == username).first()
    if user is not None:
        logger.info("User %r already exists, nothing to seed", username)
        return user

    with atomic(db):
        user = User(
            username=username,
            password_hash=hash_password(password),
            name=name or username,
            role=Role.MANAGER,
        )
        db.add(user)
    db.refresh(user)
    logger.info("Seeded manager %r (%s)", username, user.id)
    return user


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    init_db()
    db = SessionLocal()
    try:
        seed_manager(
            db,
            os.getenv("SEED_MANAGER_USERNAME", ""),
            os.getenv("SEED_MANAGER_PASSWORD", ""),
            os.getenv("SEED_MANAGER_NAME", "Manager"),
        )
    except SalesDeskError as e:
        logger.error("Seeding failed: %s", e.message)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
