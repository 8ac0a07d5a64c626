import pytest

from salesdesk import seed
from salesdesk.auth import verify_password
from salesdesk.errors import ValidationError
from salesdesk.models import Role, User


class TestSeedManager:

    def test_creates_first_manager(self, db):
        user = seed.seed_manager(db, "admin", "s3cret", "Head of Sales")
        assert user.role == Role.MANAGER
        assert user.is_active is True
        assert verify_password(user.password_hash, "s3cret")

    def test_is_idempotent(self, db):
        first = seed.seed_manager(db, "admin", "s3cret")
        second = seed.seed_manager(db, "admin", "another")
        assert first.id == second.id
        assert db.query(User).count() == 1
        assert verify_password(second.password_hash, "s3cret")

    def test_requires_credentials(self, db):
        with pytest.raises(ValidationError):
            seed.seed_manager(db, " ", "s3cret")
        assert db.query(User).count() == 0

    def test_main_reads_environment(self, db, monkeypatch):
        monkeypatch.setenv("SEED_MANAGER_USERNAME", "boss")
        monkeypatch.setenv("SEED_MANAGER_PASSWORD", "pw")
        monkeypatch.setattr(seed, "init_db", lambda: None)
        monkeypatch.setattr(seed, "SessionLocal", lambda: db)

        assert seed.main() == 0
        assert seed.main() == 0
        assert db.query(User).filter(User.username == "boss").count() == 1

    def test_main_fails_without_password(self, db, monkeypatch):
        monkeypatch.setenv("SEED_MANAGER_USERNAME", "boss")
        monkeypatch.delenv("SEED_MANAGER_PASSWORD", raising=False)
        monkeypatch.setattr(seed, "init_db", lambda: None)
        monkeypatch.setattr(seed, "SessionLocal", lambda: db)

        assert seed.main() == 1


def test_seeded_manager_can_log_in(api, db):
    seed.seed_manager(db, "admin", "s3cret")
    response = api.post("/api/auth/login", json={"username": "admin", "password": "s3cret"})
    assert response.status_code == 200
    assert response.json()["role"] == "MANAGER"
