import pytest
import requests

from salesdesk import audit, notify_client
from salesdesk.auth import principal_for
from salesdesk.errors import AuthorizationError, NotFoundError, ValidationError
from salesdesk.models import AuditChecklistItem, ChecklistItemKey, Client, ClientStatus
from tests.conftest import NOW, TODAY, make_client


@pytest.fixture(autouse=True)
def no_notification_channels(monkeypatch):
    for name in ("FONNTE_TOKEN", "SMTP_HOST", "SMTP_USER", "SMTP_PASS", "WA_WENI", "EMAIL_WENI"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def won_client(db, marketer):
    return make_client(db, marketer, name="PT Menang", status=ClientStatus.DEAL, dpp=10_000_000)


class TestChecklist:

    def test_materializes_seven_items_once(self, db, auditor, won_client):
        principal = principal_for(auditor)
        first = audit.get_checklist(db, principal, won_client.id)
        second = audit.get_checklist(db, principal, won_client.id)

        assert len(first) == 7
        assert [i.id for i in first] == [i.id for i in second]
        assert {i.item_key for i in first} == set(ChecklistItemKey)
        assert db.query(AuditChecklistItem).count() == 7

    def test_payment_makes_client_eligible(self, db, manager, marketer):
        paid = make_client(db, marketer, status=ClientStatus.NEGOSIASI, dp_paid=500_000)
        assert len(audit.get_checklist(db, principal_for(manager), paid.id)) == 7

    def test_ineligible_client_is_rejected(self, db, auditor, marketer):
        fresh = make_client(db, marketer)
        with pytest.raises(ValidationError):
            audit.get_checklist(db, principal_for(auditor), fresh.id)
        assert db.query(AuditChecklistItem).count() == 0

    def test_existing_checklist_survives_status_change(self, db, auditor, won_client):
        principal = principal_for(auditor)
        audit.get_checklist(db, principal, won_client.id)
        won_client.status = ClientStatus.LOST
        db.commit()
        assert len(audit.get_checklist(db, principal, won_client.id)) == 7

    def test_labels(self, db, auditor, won_client):
        items = audit.get_checklist(db, principal_for(auditor), won_client.id)
        view = audit.checklist_item_view(items[0])
        assert view.label == "Document completeness"
        assert view.is_checked is False

    def test_field_users_are_refused(self, db, marketer, won_client):
        with pytest.raises(AuthorizationError):
            audit.get_checklist(db, principal_for(marketer), won_client.id)

    def test_toggle_stamps_and_clears(self, db, auditor, won_client):
        principal = principal_for(auditor)
        item = audit.get_checklist(db, principal, won_client.id)[0]

        checked = audit.toggle_checklist_item(db, principal, item.id, True, now=NOW)
        assert checked.is_checked is True
        assert checked.checked_by == auditor.id
        assert checked.checked_at is not None

        unchecked = audit.toggle_checklist_item(db, principal, item.id, False)
        assert unchecked.is_checked is False
        assert unchecked.checked_by is None
        assert unchecked.checked_at is None

    def test_toggle_unknown_item(self, db, auditor):
        with pytest.raises(NotFoundError):
            audit.toggle_checklist_item(db, principal_for(auditor), 999, True)


class TestAssignment:

    def test_assignment_persists_when_notifications_fail(self, db, manager, won_client, monkeypatch):
        monkeypatch.setenv("FONNTE_TOKEN", "token")
        monkeypatch.setenv("WA_WENI", "08123")

        def unreachable(*args, **kwargs):
            raise requests.exceptions.ConnectionError("network down")

        monkeypatch.setattr(notify_client.requests, "post", unreachable)

        result = audit.assign_auditor(db, principal_for(manager), won_client.id, "Weni", today=TODAY)

        assert result.client.auditor_assignee == "Weni"
        assert result.notifications["wa"] == {"sent": False, "target": "08123", "reason": "network down"}
        assert result.notifications["email"] == {"sent": False, "reason": "SMTP not configured"}
        db.refresh(won_client)
        assert won_client.auditor_assignee == "Weni"
        assert won_client.last_update == TODAY

    def test_assignee_must_be_on_roster(self, db, manager, won_client):
        with pytest.raises(ValidationError):
            audit.assign_auditor(db, principal_for(manager), won_client.id, "Mallory")

    def test_ineligible_client_cannot_be_assigned(self, db, manager, marketer):
        fresh = make_client(db, marketer)
        with pytest.raises(ValidationError):
            audit.assign_auditor(db, principal_for(manager), fresh.id, "Weni")
        db.refresh(fresh)
        assert fresh.auditor_assignee is None

    def test_marketer_cannot_assign(self, db, marketer, won_client):
        with pytest.raises(AuthorizationError):
            audit.assign_auditor(db, principal_for(marketer), won_client.id, "Weni")

    def test_unassign_keeps_checklist_progress(self, db, auditor, won_client):
        principal = principal_for(auditor)
        audit.assign_auditor(db, principal, won_client.id, "Latifah")
        item = audit.get_checklist(db, principal, won_client.id)[0]
        audit.toggle_checklist_item(db, principal, item.id, True)

        client = audit.unassign_auditor(db, principal, won_client.id)

        assert client.auditor_assignee is None
        items = audit.get_checklist(db, principal, won_client.id)
        assert sum(1 for i in items if i.is_checked) == 1


class TestAuditQueue:

    def test_queue_lists_eligible_clients_with_progress(self, db, auditor, marketer, won_client):
        make_client(db, marketer, name="Still prospect")
        principal = principal_for(auditor)
        items = audit.get_checklist(db, principal, won_client.id)
        audit.toggle_checklist_item(db, principal, items[0].id, True)
        audit.toggle_checklist_item(db, principal, items[1].id, True)

        queue = audit.list_audit_queue(db, principal, today=TODAY)

        assert [q.client.name for q in queue] == ["PT Menang"]
        assert queue[0].checked == 2
        assert queue[0].total == 7

    def test_filter_by_assignee(self, db, manager, marketer, won_client):
        other = make_client(db, marketer, name="PT Lain", status=ClientStatus.DEAL)
        principal = principal_for(manager)
        audit.assign_auditor(db, principal, won_client.id, "Nando")
        audit.assign_auditor(db, principal, other.id, "Weni")

        queue = audit.list_audit_queue(db, principal, assignee="Nando")
        assert [q.client.id for q in queue] == [won_client.id]
        assert db.query(Client).count() == 2
