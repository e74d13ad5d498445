import pytest

from clinic.models import Notification
from clinic.services.notifications import format_notification, group_name, notify

pytestmark = pytest.mark.django_db


@pytest.fixture
def inbox(patient):
    return [
        notify(patient, type="system", title=f"Note {i}", message=f"Message {i}") for i in range(3)
    ]


def test_list_and_unread_count(inbox, client_for, patient):
    client = client_for(patient)
    r = client.get("/api/notifications")
    assert r.status_code == 200
    assert len(r.data["data"]) == 3
    assert r.data["data"][0]["title"] == "Note 2"
    assert client.get("/api/notifications/unread-count").data["count"] == 3


def test_mark_read_and_read_all(inbox, client_for, patient):
    client = client_for(patient)
    r = client.put(f"/api/notifications/{inbox[0].notification_id}/read")
    assert r.status_code == 200
    assert r.data["data"]["status"] == "read"
    assert r.data["data"]["readAt"]
    assert client.get("/api/notifications/unread-count").data["count"] == 2
    assert client.get("/api/notifications", {"status": "read"}).data["data"][0]["id"] == inbox[0].notification_id

    r = client.put("/api/notifications/read-all")
    assert r.data["updated"] == 2
    assert not Notification.objects.filter(recipient=patient, status="unread").exists()


def test_cannot_read_someone_elses_notification(inbox, client_for, make_patient):
    other = make_patient(name="Nosy Neighbour")
    r = client_for(other).put(f"/api/notifications/{inbox[0].notification_id}/read")
    assert r.status_code == 404


def test_push_happens_after_commit(patient, monkeypatch, django_capture_on_commit_callbacks):
    pushed = []
    monkeypatch.setattr("clinic.services.notifications._push", lambda user_id, payload: pushed.append((user_id, payload)))

    with django_capture_on_commit_callbacks(execute=False) as callbacks:
        n = notify(patient, type="system", title="Hello", message="Pushed")
    assert pushed == []
    assert len(callbacks) == 1

    callbacks[0]()
    assert pushed == [(patient.id, format_notification(n))]
    assert group_name(patient.id) == f"notifications.{patient.id}"


def test_list_limit_is_validated(inbox, client_for, patient):
    client = client_for(patient)
    assert client.get("/api/notifications", {"limit": -1}).status_code == 400
    assert client.get("/api/notifications", {"status": "archived"}).status_code == 400
    assert len(client.get("/api/notifications", {"limit": 2}).data["data"]) == 2
