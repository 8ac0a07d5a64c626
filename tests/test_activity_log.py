from datetime import date

import pytest

from salesdesk import activity_log, config
from salesdesk.auth import principal_for
from salesdesk.errors import AuthorizationError, ValidationError
from salesdesk.models import ActivityType
from salesdesk.schemas import ActivityCreate
from salesdesk.visibility import resolve_scope
from tests.conftest import NOW, TODAY, make_client


def call(**fields):
    fields.setdefault("type", ActivityType.CALL)
    fields.setdefault("description", "Follow-up call")
    fields.setdefault("start_time", "09:00")
    fields.setdefault("end_time", "09:15")
    return ActivityCreate(**fields)


class TestCreateActivity:

    def test_defaults_to_today(self, db, marketer):
        activity = activity_log.create_activity(db, principal_for(marketer), call(), today=TODAY)
        assert activity.date == TODAY
        assert activity.marketing_id == marketer.id

    def test_seconds_are_trimmed(self, db, marketer):
        activity = activity_log.create_activity(db, principal_for(marketer), call(start_time="13:05:59"), today=TODAY)
        assert activity.start_time == "13:05"

    def test_client_must_belong_to_caller(self, db, marketer, other_marketer):
        foreign = make_client(db, other_marketer)
        with pytest.raises(AuthorizationError):
            activity_log.create_activity(db, principal_for(marketer), call(client_id=foreign.id))

    def test_auditor_cannot_log(self, db, auditor):
        with pytest.raises(AuthorizationError):
            activity_log.create_activity(db, principal_for(auditor), call())

    def test_listing_by_date_within_scope(self, db, marketer, other_marketer):
        activity_log.create_activity(db, principal_for(marketer), call(date=date(2024, 5, 31)))
        activity_log.create_activity(db, principal_for(marketer), call(date=TODAY))
        activity_log.create_activity(db, principal_for(other_marketer), call(date=TODAY))

        scope = resolve_scope(db, principal_for(marketer))
        assert len(activity_log.list_activities(db, scope)) == 2
        assert [a.date for a in activity_log.list_activities(db, scope, TODAY)] == [TODAY]


class TestCheckIn:

    def test_logs_visit_at_local_time(self, db, marketer):
        client = make_client(db, marketer)
        activity = activity_log.check_in(db, principal_for(marketer), "-6.2", "106.8", client_id=client.id, now=NOW)

        assert activity.type == ActivityType.VISIT
        assert activity.date == TODAY
        assert activity.start_time == "10:00"
        assert activity.location == "-6.2, 106.8"
        assert activity.description == "Field check-in"
        assert activity.proof_url is None

    def test_coordinates_are_required(self, db, marketer):
        with pytest.raises(ValidationError):
            activity_log.check_in(db, principal_for(marketer), "", "106.8")

    def test_photo_is_stored(self, db, marketer, monkeypatch, tmp_path):
        monkeypatch.setattr(config, "UPLOAD_DIR", str(tmp_path))
        activity = activity_log.check_in(
            db, principal_for(marketer), "-6.2", "106.8",
            photo=(b"\x89PNG fake", "image/png"), now=NOW,
        )
        assert activity.proof_url.startswith("/uploads/checkins/")
        assert len(list((tmp_path / "checkins").iterdir())) == 1

    def test_photo_is_removed_when_activity_is_not_saved(self, db, marketer, monkeypatch, tmp_path):
        monkeypatch.setattr(config, "UPLOAD_DIR", str(tmp_path))

        def broken_activity(**fields):
            raise RuntimeError("insert failed")

        monkeypatch.setattr(activity_log, "Activity", broken_activity)

        with pytest.raises(RuntimeError):
            activity_log.check_in(
                db, principal_for(marketer), "-6.2", "106.8",
                photo=(b"\x89PNG fake", "image/png"), now=NOW,
            )
        assert list((tmp_path / "checkins").iterdir()) == []

    def test_non_image_photo_is_rejected(self, db, marketer, monkeypatch, tmp_path):
        monkeypatch.setattr(config, "UPLOAD_DIR", str(tmp_path))
        with pytest.raises(ValidationError):
            activity_log.check_in(db, principal_for(marketer), "-6.2", "106.8", photo=(b"%PDF", "application/pdf"))
