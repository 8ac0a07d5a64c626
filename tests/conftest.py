"""
Test configuration.

Every test runs against a fresh in-memory SQLite database configured with the
same transaction hooks as production. API tests share the test's session with
the app through a `get_db` override, so assertions see exactly what the
endpoints committed.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_TABLES"] = "0"

from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from werkzeug.security import generate_password_hash

from salesdesk.database import get_db, make_engine
from salesdesk.main import app
from salesdesk.models import Base, Client, ClientStatus, Role, User

PASSWORD = "secret"
# Cheap hash so fixtures stay fast; verification accepts any werkzeug method.
PASSWORD_HASH = generate_password_hash(PASSWORD, method="pbkdf2:sha256:1000")

# 2024-06-01 10:00 in Asia/Jakarta.
NOW = datetime(2024, 6, 1, 3, 0, tzinfo=timezone.utc)
TODAY = date(2024, 6, 1)


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


def make_user(db, username, role, supervisor=None, active=True):
    user = User(
        username=username,
        password_hash=PASSWORD_HASH,
        name=username.replace("_", " ").title(),
        role=role,
        supervisor_id=supervisor.id if supervisor else None,
        is_active=active,
    )
    db.add(user)
    db.commit()
    return user


def make_client(db, owner, name="Acme", status=ClientStatus.NEW, last_update=date(2024, 5, 1), **fields):
    client = Client(name=name, marketing_id=owner.id, status=status, last_update=last_update, **fields)
    db.add(client)
    db.commit()
    return client


@pytest.fixture
def manager(db):
    return make_user(db, "maya_manager", Role.MANAGER)


@pytest.fixture
def supervisor(db):
    return make_user(db, "sari_supervisor", Role.SUPERVISOR)


@pytest.fixture
def marketer(db, supervisor):
    """Member of `supervisor`'s team."""
    return make_user(db, "andi_marketer", Role.MARKETER, supervisor=supervisor)


@pytest.fixture
def other_marketer(db):
    """Not in any team."""
    return make_user(db, "budi_marketer", Role.MARKETER)


@pytest.fixture
def auditor(db):
    return make_user(db, "ani_auditor", Role.AUDITOR)


@pytest.fixture
def api(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login(db):
    """Returns a factory producing a TestClient logged in as the given user."""
    app.dependency_overrides[get_db] = lambda: db

    def _login(user):
        client = TestClient(app)
        response = client.post("/api/auth/login", json={"username": user.username, "password": PASSWORD})
        assert response.status_code == 200, response.text
        return client

    yield _login
    app.dependency_overrides.clear()
