import pytest

from clinic.models import Appointment, EmployeeProfile
from clinic.services import appointments as appointment_service

pytestmark = pytest.mark.django_db


def test_medical_history_and_allergies(client_for, patient):
    client = client_for(patient)
    r = client.put("/api/patient/medical-history", {"medicalHistory": [
        {"condition": "Asthma", "diagnosedDate": "2010-04-01", "status": "chronic"},
    ]}, format="json")
    assert r.status_code == 200
    assert r.data["medicalHistory"][0]["diagnosedDate"] == "2010-04-01"

    r = client.put("/api/patient/allergies", {"allergies": [{"allergen": "Penicillin", "severity": "severe"}]},
                   format="json")
    assert r.status_code == 200

    r = client.get("/api/patient/medical-records")
    assert r.data["data"]["medicalHistory"][0]["condition"] == "Asthma"
    assert r.data["data"]["allergies"][0]["allergen"] == "Penicillin"


def test_patient_dashboard(client_for, patient, doctor, next_weekday_slot):
    appointment_service.book(booker=patient, patient=patient, doctor=doctor, data={
        "dateTime": next_weekday_slot(), "reasonForVisit": "Annual checkup", "department": "Cardiology",
    })
    client = client_for(patient)
    stats = client.get("/api/patient/dashboard/stats").data["data"]
    assert stats["totalAppointments"] == 1
    assert stats["pendingApproval"] == 1
    assert stats["nextAppointment"]["doctorName"] == doctor.name
    activity = client.get("/api/patient/dashboard/recent-activity").data["data"]
    assert activity[0]["kind"] == "appointment" and activity[0]["action"] == "booked"
    assert len(client.get("/api/patient/appointments").data["data"]) == 1
    assert client.get("/api/patient/notifications").data["data"][0]["type"] == "appointment_booked"


def test_patient_endpoints_are_role_checked(client_for, doctor, patient):
    assert client_for(doctor).get("/api/patient/medical-records").status_code == 403
    assert client_for(patient).get("/api/patient/search", {"q": "x"}).status_code == 403


def test_staff_search_and_detail(client_for, doctor, patient):
    client = client_for(doctor)
    r = client.get("/api/patient/search", {"q": patient.public_id})
    assert [p["patientId"] for p in r.data["data"]] == [patient.public_id]
    r = client.get(f"/api/patient/{patient.public_id}")
    assert r.status_code == 200
    assert "medicalRecord" in r.data["data"]
    assert client.get("/api/patient/PAT000000").status_code == 404


def test_employee_directory(client_for, nurse, doctor, manager):
    client = client_for(nurse)
    r = client.get("/api/employee/doctor")
    assert [d["empID"] for d in r.data["data"]] == [doctor.public_id]
    r = client.get(f"/api/employee/doctor/{doctor.public_id}")
    assert r.data["data"]["specialization"] == "Cardiology"
    assert client.get("/api/employee/dentist").status_code == 404


def test_employee_status_change(client_for, nurse, doctor, manager):
    r = client_for(nurse).put(f"/api/employee/doctor/{doctor.public_id}/status", {"status": "on_leave"},
                              format="json")
    assert r.status_code == 403
    r = client_for(manager).put(f"/api/employee/doctor/{doctor.public_id}/status",
                                {"status": "inactive", "reason": "Sabbatical"}, format="json")
    assert r.status_code == 200
    assert EmployeeProfile.objects.get(user=doctor).status == "inactive"
    # an access token issued earlier no longer works
    assert client_for(doctor).get("/api/employee/dashboard/stats").status_code == 401


def test_doctor_availability_and_dashboard(client_for, doctor):
    client = client_for(doctor)
    r = client.put("/api/employee/doctor/availability",
                   {"availability": {"monday": [{"start": "08:00", "end": "12:00"}], "sunday": []}}, format="json")
    assert r.status_code == 200
    assert r.data["availability"]["monday"] == [{"start": "08:00", "end": "12:00"}]
    r = client.put("/api/employee/doctor/availability",
                   {"availability": {"funday": []}}, format="json")
    assert r.status_code == 400
    stats = client.get("/api/employee/dashboard/stats").data["data"]
    assert stats["role"] == "doctor"
    assert stats["upcomingAppointments"] == 0


def test_rate_doctor_requires_completed_visit(client_for, patient, doctor, next_weekday_slot):
    client = client_for(patient)
    r = client.post(f"/api/employee/doctor/{doctor.public_id}/rate", {"rating": 5}, format="json")
    assert r.status_code == 400
    appt = appointment_service.book(booker=patient, patient=patient, doctor=doctor, data={
        "dateTime": next_weekday_slot(), "reasonForVisit": "Follow-up visit", "department": "Cardiology",
    })
    Appointment.objects.filter(pk=appt.pk).update(status=Appointment.STATUS_COMPLETED)
    r = client.post(f"/api/employee/doctor/{doctor.public_id}/rate", {"rating": 4, "comment": "Thorough"},
                    format="json")
    assert r.status_code == 200
    assert r.data["averageRating"] == 4.0
    assert r.data["totalRatings"] == 1


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "db": True}


def test_ensure_staff_users_is_idempotent():
    from django.core.management import call_command

    from clinic.models import User

    call_command("ensure_staff_users", "--password", "Seeded-Pass-42")
    assert User.objects.exclude(role=User.ROLE_PATIENT).count() == 6
    doc = User.objects.get(username="doctor@carehub.local")
    doc.is_active = False
    doc.save(update_fields=["is_active"])

    call_command("ensure_staff_users", "--password", "Seeded-Pass-42")
    assert User.objects.exclude(role=User.ROLE_PATIENT).count() == 6
    doc.refresh_from_db()
    assert doc.is_active and doc.check_password("Seeded-Pass-42")


def test_purge_slot_reservations(patient, doctor, next_weekday_slot):
    from datetime import timedelta

    from django.core.management import call_command
    from django.utils import timezone

    from clinic.models import SlotReservation

    slot = next_weekday_slot()
    now = timezone.now()
    SlotReservation.objects.create(token="old", doctor=doctor, patient=patient, date_time=slot,
                                   expires_at=now - timedelta(minutes=1))
    SlotReservation.objects.create(token="live", doctor=doctor, patient=patient, date_time=slot,
                                   expires_at=now + timedelta(minutes=4))
    call_command("purge_slot_reservations")
    assert list(SlotReservation.objects.values_list("token", flat=True)) == ["live"]


def test_recent_activity_limit_is_validated(client_for, patient, doctor, next_weekday_slot):
    for hour in (10, 11):
        appointment_service.book(booker=patient, patient=patient, doctor=doctor, data={
            "dateTime": next_weekday_slot(hour=hour), "reasonForVisit": "Routine review", "department": "Cardiology",
        })
    client = client_for(patient)
    r = client.get("/api/patient/dashboard/recent-activity", {"limit": -1})
    assert r.status_code == 400
    assert r.data["error"]["fields"][0]["field"] == "limit"
    assert client.get("/api/patient/dashboard/recent-activity", {"limit": 51}).status_code == 400
    r = client.get("/api/patient/dashboard/recent-activity", {"limit": 1})
    assert r.status_code == 200
    assert len(r.data["data"]) == 1
