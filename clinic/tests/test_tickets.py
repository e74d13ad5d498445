import pytest

from clinic.models import Notification, SupportTicket

pytestmark = pytest.mark.django_db


@pytest.fixture
def ticket(client_for, patient, manager):
    r = client_for(patient).post("/api/support-tickets", {
        "subject": "Billing question",
        "issueDescription": "I was charged twice for one appointment.",
        "category": "billing_inquiry",
    }, format="json")
    assert r.status_code == 201, r.data
    return r.data["data"]["ticketId"]


def _put(client, ticket_id, action, body=None):
    return client.put(f"/api/support-tickets/{ticket_id}/{action}", body or {}, format="json")


def test_create_notifies_managers(ticket, manager):
    assert ticket.startswith("TKT")
    assert SupportTicket.objects.get(ticket_id=ticket).status == "open"
    assert Notification.objects.filter(recipient=manager, type="ticket_update", data__ticketId=ticket).exists()


def test_short_description_is_rejected(client_for, patient):
    r = client_for(patient).post("/api/support-tickets", {"issueDescription": "help"}, format="json")
    assert r.status_code == 400


def test_closed_ticket_cannot_reopen(ticket, client_for, manager):
    client = client_for(manager)
    assert _put(client, ticket, "status", {"status": "in_progress"}).status_code == 200
    assert _put(client, ticket, "status", {"status": "resolved", "resolution": "Refund issued"}).status_code == 200
    assert _put(client, ticket, "close", {"resolution": "Refund issued"}).status_code == 200

    r = _put(client, ticket, "status", {"status": "open"})
    assert r.status_code == 400
    assert r.data["error"]["code"] == "invalid_transition"


def test_open_ticket_cannot_jump_to_closed(ticket, client_for, manager):
    r = _put(client_for(manager), ticket, "close", {"resolution": "Done already"})
    assert r.status_code == 400


def test_assign_and_staff_scope(ticket, client_for, manager, staff, nurse, patient):
    assert _put(client_for(nurse), ticket, "assign", {"staffId": staff.public_id}).status_code == 403

    r = _put(client_for(manager), ticket, "assign", {"staffId": staff.public_id})
    assert r.status_code == 200
    assert r.data["data"]["status"] == "assigned"
    assert r.data["data"]["assignedStaff"]["id"] == staff.public_id
    assert Notification.objects.filter(recipient=staff, title="Ticket assigned").exists()

    assert [t["ticketId"] for t in client_for(staff).get("/api/support-tickets").data["data"]] == [ticket]
    assert client_for(nurse).get("/api/support-tickets").data["data"] == []
    assert client_for(nurse).get(f"/api/support-tickets/{ticket}").status_code == 403
    # the assignee can work the ticket
    assert _put(client_for(staff), ticket, "status", {"status": "in_progress"}).status_code == 200


def test_internal_messages_hidden_from_patient(ticket, client_for, manager, patient):
    mc = client_for(manager)
    assert mc.post(f"/api/support-tickets/{ticket}/messages",
                   {"message": "Check ledger first", "isInternal": True}, format="json").status_code == 201
    assert mc.post(f"/api/support-tickets/{ticket}/messages",
                   {"message": "We are looking into it"}, format="json").status_code == 201
    r = client_for(patient).get(f"/api/support-tickets/{ticket}")
    messages = [m["message"] for m in r.data["data"]["communicationLog"]]
    assert "We are looking into it" in messages
    assert "Check ledger first" not in messages
    r = mc.get(f"/api/support-tickets/{ticket}")
    assert "Check ledger first" in [m["message"] for m in r.data["data"]["communicationLog"]]


def test_escalation_raises_priority_and_caps(ticket, client_for, manager):
    client = client_for(manager)
    r = _put(client, ticket, "escalate", {"reason": "No response"})
    assert r.data["data"]["escalationLevel"] == 1
    assert r.data["data"]["priority"] == "medium"
    r = _put(client, ticket, "escalate")
    assert r.data["data"]["escalationLevel"] == 2
    assert r.data["data"]["priority"] == "high"
    assert _put(client, ticket, "escalate").status_code == 200
    assert _put(client, ticket, "escalate").status_code == 400


def test_priority_update(ticket, client_for, manager, patient):
    assert _put(client_for(patient), ticket, "priority", {"priority": "urgent"}).status_code == 403
    r = _put(client_for(manager), ticket, "priority", {"priority": "urgent"})
    assert r.data["data"]["priority"] == "urgent"


def test_rating_only_after_close(ticket, client_for, manager, patient):
    pc = client_for(patient)
    assert _put(pc, ticket, "rate", {"rating": 5}).status_code == 400
    mc = client_for(manager)
    _put(mc, ticket, "status", {"status": "in_progress"})
    _put(mc, ticket, "status", {"status": "resolved", "resolution": "Refund issued"})
    _put(mc, ticket, "close", {"resolution": "Refund issued"})
    assert _put(mc, ticket, "rate", {"rating": 5}).status_code == 403
    r = _put(pc, ticket, "rate", {"rating": 4, "feedback": "Quick help"})
    assert r.status_code == 200
    assert r.data["data"]["satisfactionRating"] == 4
    stats = mc.get("/api/support-tickets/stats").data["data"]
    assert stats["byStatus"]["closed"] == 1
    assert stats["averageSatisfaction"] == 4.0


def test_patient_can_cancel_own_ticket(ticket, client_for, patient):
    r = _put(client_for(patient), ticket, "status", {"status": "cancelled"})
    assert r.status_code == 200
    assert r.data["data"]["status"] == "cancelled"
