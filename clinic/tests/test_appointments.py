"""
Booking, approval and the appointment status machine.
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.management import call_command
from django.utils import timezone

from clinic.models import Appointment, AppointmentEvent, DoctorProfile, Notification, SlotReservation
from clinic.services import appointments as service

pytestmark = pytest.mark.django_db


def _book(client, doctor, when, **extra):
    body = {
        "doctorId": doctor.public_id,
        "dateTime": when.isoformat(),
        "reasonForVisit": "Chest pain when climbing stairs",
        "department": "Cardiology",
    }
    body.update(extra)
    return client.post("/api/appointments/book", body, format="json")


@pytest.fixture
def booked(client_for, patient, doctor, manager, next_weekday_slot):
    r = _book(client_for(patient), doctor, next_weekday_slot())
    assert r.status_code == 201, r.data
    return Appointment.objects.get(appointment_id=r.data["data"]["appointmentId"])


def test_book_creates_pending_appointment_and_notifies(booked, patient, doctor, manager):
    assert booked.status == Appointment.STATUS_PENDING_APPROVAL
    assert booked.consultation_fee == Decimal("150.00")
    assert booked.appointment_id.startswith("APT")
    assert AppointmentEvent.objects.filter(appointment=booked, action="booked").count() == 1
    for user in (patient, doctor, manager):
        assert Notification.objects.filter(recipient=user, type="appointment_booked").exists()


def test_past_or_off_hours_booking_is_rejected(client_for, patient, doctor, next_weekday_slot):
    client = client_for(patient)
    r = _book(client, doctor, timezone.now() - timedelta(hours=1))
    assert r.status_code == 400
    r = _book(client, doctor, next_weekday_slot(hour=20))
    assert r.status_code == 409


def test_double_booking_same_slot_is_409(booked, client_for, make_patient, doctor):
    other = make_patient(name="Bob Other")
    r = _book(client_for(other), doctor, booked.date_time)
    assert r.status_code == 409
    assert r.data["error"]["code"] == "slot_unavailable"


def test_overlapping_longer_appointment_is_409(client_for, patient, make_patient, doctor, next_weekday_slot):
    start = next_weekday_slot(hour=10)
    assert _book(client_for(patient), doctor, start, duration=60).status_code == 201
    other = make_patient(name="Carol Other")
    r = _book(client_for(other), doctor, start + timedelta(minutes=30))
    assert r.status_code == 409


def test_reserved_slot_is_held_for_the_reserving_patient(client_for, patient, make_patient, doctor,
                                                        next_weekday_slot):
    when = next_weekday_slot(hour=11)
    r = client_for(patient).post("/api/appointments/reserve-slot",
                                 {"doctorId": doctor.public_id, "dateTime": when.isoformat()}, format="json")
    assert r.status_code == 201
    assert r.data["reservationToken"]

    other = make_patient(name="Dave Other")
    assert _book(client_for(other), doctor, when).status_code == 409

    slots = client_for(other).get(f"/api/appointments/available-slots/{doctor.public_id}",
                                  {"date": when.date().isoformat()})
    assert when.isoformat() not in [s["dateTime"] for s in slots.data["data"]]

    assert _book(client_for(patient), doctor, when).status_code == 201
    assert not SlotReservation.objects.filter(patient=patient).exists()


def test_expired_reservation_does_not_block(client_for, patient, make_patient, doctor, next_weekday_slot):
    when = next_weekday_slot(hour=14)
    client_for(patient).post("/api/appointments/reserve-slot",
                             {"doctorId": doctor.public_id, "dateTime": when.isoformat()}, format="json")
    SlotReservation.objects.update(expires_at=timezone.now() - timedelta(seconds=1))
    other = make_patient(name="Erin Other")
    assert _book(client_for(other), doctor, when).status_code == 201


def test_available_slots_skip_booked_time(booked, client_for, patient, doctor):
    r = client_for(patient).get(f"/api/appointments/available-slots/{doctor.public_id}",
                                {"date": timezone.localtime(booked.date_time).date().isoformat()})
    assert r.status_code == 200
    times = [s["time"] for s in r.data["data"]]
    assert "10:00" not in times
    assert "09:00" in times and "16:30" in times
    assert r.data["slotMinutes"] == 30


def test_approve_requires_pending_approval(booked, client_for, manager):
    client = client_for(manager)
    r = client.put(f"/api/appointments/{booked.appointment_id}/approve", {"notes": "ok"}, format="json")
    assert r.status_code == 200
    assert r.data["data"]["status"] == "approved"

    r = client.put(f"/api/appointments/{booked.appointment_id}/approve", {}, format="json")
    assert r.status_code == 400
    assert r.data["error"]["code"] == "invalid_transition"


def test_decline_requires_pending_approval_and_reason(booked, client_for, manager):
    client = client_for(manager)
    r = client.put(f"/api/appointments/{booked.appointment_id}/decline", {}, format="json")
    assert r.status_code == 400
    r = client.put(f"/api/appointments/{booked.appointment_id}/decline", {"reason": "Doctor on call"}, format="json")
    assert r.status_code == 200
    assert r.data["data"]["status"] == "declined"
    r = client.put(f"/api/appointments/{booked.appointment_id}/decline", {"reason": "again"}, format="json")
    assert r.status_code == 400


def test_only_managers_review(booked, client_for, doctor, patient):
    for user in (doctor, patient):
        r = client_for(user).put(f"/api/appointments/{booked.appointment_id}/approve", {}, format="json")
        assert r.status_code == 403


def test_full_visit_flow(booked, client_for, patient, doctor, manager):
    aid = booked.appointment_id
    assert client_for(manager).put(f"/api/appointments/{aid}/approve", {}, format="json").status_code == 200

    r = client_for(patient).post(f"/api/appointments/{aid}/payment",
                                 {"paymentMethod": "card", "amount": "100.00"}, format="json")
    assert r.status_code == 400

    r = client_for(patient).post(f"/api/appointments/{aid}/payment",
                                 {"paymentMethod": "card", "amount": "150.00"}, format="json")
    assert r.status_code == 200
    assert r.data["data"]["status"] == "confirmed"
    booked.refresh_from_db()
    assert booked.payment_status == "paid"
    assert booked.payment_reference.startswith("TXN")

    assert client_for(doctor).put(f"/api/appointments/{aid}/start", {}, format="json").status_code == 200
    r = client_for(doctor).put(f"/api/appointments/{aid}/complete", {
        "diagnosis": "Stable angina", "treatmentPlan": "Rest", "followUpRequired": True,
        "followUpDate": (timezone.localdate() + timedelta(days=30)).isoformat(),
    }, format="json")
    assert r.status_code == 200
    assert r.data["data"]["status"] == "completed"
    assert [h["action"] for h in r.data["data"]["history"]] == ["booked", "approved", "paid", "started", "completed"]

    # terminal
    r = client_for(patient).delete(f"/api/appointments/{aid}", {"reason": "too late"}, format="json")
    assert r.status_code == 400


def test_generic_status_endpoint_dispatches(booked, client_for, manager):
    r = client_for(manager).put(f"/api/appointments/{booked.appointment_id}/status",
                                {"status": "approved"}, format="json")
    assert r.status_code == 200
    assert r.data["data"]["status"] == "approved"
    r = client_for(manager).put(f"/api/appointments/{booked.appointment_id}/status",
                                {"status": "pending_approval"}, format="json")
    assert r.status_code == 400


def test_cancel_early_refunds_paid_appointment(booked, client_for, patient, manager):
    aid = booked.appointment_id
    client_for(manager).put(f"/api/appointments/{aid}/approve", {}, format="json")
    client_for(patient).post(f"/api/appointments/{aid}/payment", {"paymentMethod": "cash", "amount": "150"},
                             format="json")
    r = client_for(patient).delete(f"/api/appointments/{aid}", {"reason": "Feeling better"}, format="json")
    assert r.status_code == 200
    booked.refresh_from_db()
    assert booked.status == "cancelled"
    assert booked.refund_eligible is True
    assert booked.payment_status == "refunded"
    assert booked.refund_amount == Decimal("150.00")


def test_late_cancel_is_not_refunded(booked, patient):
    Appointment.objects.filter(pk=booked.pk).update(date_time=timezone.now() + timedelta(hours=2))
    appt = service.cancel(booked.appointment_id, patient, "stuck in traffic")
    assert appt.refund_eligible is False


def test_reschedule_limit(booked, client_for, patient, next_weekday_slot):
    client = client_for(patient)
    for hour in (11, 12, 13):
        r = client.put(f"/api/appointments/{booked.appointment_id}/reschedule",
                       {"dateTime": next_weekday_slot(hour=hour).isoformat(), "reason": "work"}, format="json")
        assert r.status_code == 200, r.data
        assert r.data["data"]["status"] == "pending_approval"
    booked.refresh_from_db()
    assert booked.reschedule_count == 3
    assert booked.original_date_time == next_weekday_slot(hour=10)

    r = client.put(f"/api/appointments/{booked.appointment_id}/reschedule",
                   {"dateTime": next_weekday_slot(hour=14).isoformat()}, format="json")
    assert r.status_code == 400


def test_other_patient_cannot_see_appointment(booked, client_for, make_patient):
    other = make_patient(name="Frank Other")
    r = client_for(other).get(f"/api/appointments/{booked.appointment_id}")
    assert r.status_code == 403


def test_unknown_appointment_is_404(client_for, patient):
    r = client_for(patient).get("/api/appointments/APT000")
    assert r.status_code == 404
    assert r.data["error"]["message"] == "Appointment not found"


def test_status_change_rolls_back_when_notification_fails(booked, manager, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("notification store down")

    monkeypatch.setattr("clinic.services.appointments.notify", boom)
    with pytest.raises(RuntimeError):
        service.approve(booked.appointment_id, manager)
    booked.refresh_from_db()
    assert booked.status == Appointment.STATUS_PENDING_APPROVAL
    assert not AppointmentEvent.objects.filter(appointment=booked, action="approved").exists()


def test_manager_lists(booked, client_for, manager, doctor, patient):
    r = client_for(manager).get("/api/appointments/pending-approval")
    assert [a["appointmentId"] for a in r.data["data"]] == [booked.appointment_id]
    r = client_for(manager).get("/api/appointments/health-manager/all", {"status": "approved"})
    assert r.data["data"] == []
    r = client_for(manager).get("/api/appointments/stats")
    assert r.data["data"]["byStatus"]["pending_approval"] == 1
    r = client_for(doctor).get(f"/api/appointments/doctor/{doctor.public_id}")
    assert len(r.data["data"]) == 1
    r = client_for(patient).get(f"/api/appointments/patient/{patient.public_id}")
    assert len(r.data["data"]) == 1


def test_departments_and_doctors(client_for, patient, doctor, make_doctor):
    make_doctor(name="Derma Doc", specialization="Dermatology")
    r = client_for(patient).get("/api/appointments/departments")
    assert {d["name"] for d in r.data["data"]} == {"Cardiology", "Dermatology"}
    r = client_for(patient).get("/api/appointments/doctors/cardiology")
    assert [d["empID"] for d in r.data["data"]] == [doctor.public_id]


def test_reschedule_same_day_when_doctor_is_at_daily_cap(booked, client_for, patient, make_patient, doctor,
                                                         next_weekday_slot):
    DoctorProfile.objects.filter(user=doctor).update(max_patients_per_day=1)
    r = client_for(patient).put(f"/api/appointments/{booked.appointment_id}/reschedule",
                                {"dateTime": next_weekday_slot(hour=11).isoformat()}, format="json")
    assert r.status_code == 200, r.data

    other = make_patient(name="Gina Other")
    r = _book(client_for(other), doctor, next_weekday_slot(hour=15))
    assert r.status_code == 409
    assert r.data["error"]["message"] == "Doctor is fully booked on that day"


def test_confirm_endpoint(booked, client_for, manager, doctor, patient):
    aid = booked.appointment_id
    r = client_for(doctor).put(f"/api/appointments/{aid}/confirm", {}, format="json")
    assert r.status_code == 400
    client_for(manager).put(f"/api/appointments/{aid}/approve", {}, format="json")
    assert client_for(patient).put(f"/api/appointments/{aid}/confirm", {}, format="json").status_code == 403
    r = client_for(doctor).put(f"/api/appointments/{aid}/confirm", {"notes": "See you then"}, format="json")
    assert r.status_code == 200
    assert r.data["data"]["status"] == "confirmed"
    assert Notification.objects.filter(recipient=patient, type="appointment_confirmed").exists()


def test_start_requires_confirmed(booked, client_for, manager, doctor):
    client_for(manager).put(f"/api/appointments/{booked.appointment_id}/approve", {}, format="json")
    r = client_for(doctor).put(f"/api/appointments/{booked.appointment_id}/start", {}, format="json")
    assert r.status_code == 400
    assert r.data["error"]["code"] == "invalid_transition"


def test_only_the_assigned_doctor_starts_and_completes(booked, client_for, manager, doctor, make_doctor):
    aid = booked.appointment_id
    other = make_doctor(name="Other Doctor")
    client_for(manager).put(f"/api/appointments/{aid}/approve", {}, format="json")
    client_for(doctor).put(f"/api/appointments/{aid}/confirm", {}, format="json")

    assert client_for(other).put(f"/api/appointments/{aid}/start", {}, format="json").status_code == 403
    assert client_for(doctor).put(f"/api/appointments/{aid}/start", {}, format="json").status_code == 200
    r = client_for(other).put(f"/api/appointments/{aid}/complete", {"diagnosis": "n/a"}, format="json")
    assert r.status_code == 403
    booked.refresh_from_db()
    assert booked.status == Appointment.STATUS_IN_PROGRESS


def test_no_show_rules(booked, client_for, manager, doctor, patient):
    aid = booked.appointment_id
    assert client_for(doctor).put(f"/api/appointments/{aid}/no-show", {}, format="json").status_code == 400
    client_for(manager).put(f"/api/appointments/{aid}/approve", {}, format="json")
    assert client_for(patient).put(f"/api/appointments/{aid}/no-show", {}, format="json").status_code == 403
    r = client_for(doctor).put(f"/api/appointments/{aid}/no-show", {"notes": "Did not arrive"}, format="json")
    assert r.status_code == 200
    assert r.data["data"]["status"] == "no_show"
    assert Notification.objects.filter(recipient=patient, type="appointment_no_show").exists()


def test_manager_can_mark_confirmed_appointment_no_show(booked, client_for, manager, doctor):
    aid = booked.appointment_id
    client_for(manager).put(f"/api/appointments/{aid}/approve", {}, format="json")
    client_for(doctor).put(f"/api/appointments/{aid}/confirm", {}, format="json")
    r = client_for(manager).put(f"/api/appointments/{aid}/no-show", {}, format="json")
    assert r.status_code == 200
    assert r.data["data"]["status"] == "no_show"


def test_generic_complete_needs_follow_up_date(booked, client_for, doctor):
    r = client_for(doctor).put(f"/api/appointments/{booked.appointment_id}/status",
                               {"status": "completed", "followUpRequired": True}, format="json")
    assert r.status_code == 400
    assert r.data["error"]["fields"][0]["field"] == "followUpDate"


def test_reminders_are_sent_once_per_window(booked, patient, doctor):
    reminders = Notification.objects.filter(type="appointment_reminder")
    Appointment.objects.filter(pk=booked.pk).update(date_time=timezone.now() + timedelta(hours=20))
    call_command("send_appointment_reminders")
    assert not reminders.exists()

    Appointment.objects.filter(pk=booked.pk).update(status=Appointment.STATUS_APPROVED)
    call_command("send_appointment_reminders")
    call_command("send_appointment_reminders")
    assert set(reminders.values_list("recipient", flat=True)) == {patient.pk, doctor.pk}
    assert reminders.get(recipient=patient).data["reminderType"] == "24h"
    assert AppointmentEvent.objects.filter(appointment=booked, action="reminder_24h").count() == 1

    Appointment.objects.filter(pk=booked.pk).update(date_time=timezone.now() + timedelta(minutes=90))
    assert service.send_reminders() == [(booked.appointment_id, "reminder_2h")]
    assert service.send_reminders() == []
    assert reminders.filter(recipient=patient, title="Appointment Reminder - In 2 Hours").count() == 1


def test_late_booking_skips_day_ahead_reminder(booked):
    Appointment.objects.filter(pk=booked.pk).update(status=Appointment.STATUS_CONFIRMED,
                                                    date_time=timezone.now() + timedelta(hours=1))
    assert service.send_reminders() == [(booked.appointment_id, "reminder_2h")]
    assert not AppointmentEvent.objects.filter(appointment=booked, action="reminder_24h").exists()
