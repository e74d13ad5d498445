from datetime import timedelta

import pytest
from django.core.management import call_command
from django.utils import timezone

from clinic.models import Notification, Prescription

pytestmark = pytest.mark.django_db


def _rx_body(patient, **extra):
    body = {
        "patientId": patient.public_id,
        "diagnosis": "Seasonal allergic rhinitis",
        "symptoms": ["sneezing", "itchy eyes"],
        "medicineList": [
            {"medicineName": "Cetirizine", "strength": "10mg", "quantity": 30, "frequency": "once daily",
             "refillsAllowed": 1},
            {"medicineName": "Fluticasone spray", "quantity": 1},
        ],
    }
    body.update(extra)
    return body


@pytest.fixture
def rx(client_for, doctor, patient):
    r = client_for(doctor).post("/api/prescriptions", _rx_body(patient), format="json")
    assert r.status_code == 201, r.data
    return r.data["data"]["prescriptionId"]


def _status(client, rx_id, status, **extra):
    return client.put(f"/api/prescriptions/{rx_id}/status", {"status": status, **extra}, format="json")


def test_doctor_creates_prescription(rx, patient):
    p = Prescription.objects.get(prescription_id=rx)
    assert rx.startswith("RX")
    assert p.status == "pending"
    assert p.items.count() == 2
    assert p.items.get(medicine_name="Fluticasone spray").dosage_instruction == "As directed by doctor"
    assert (p.expires_at - p.issued_at) == timedelta(days=30)
    assert Notification.objects.filter(recipient=patient, type="prescription_created").exists()


def test_only_doctors_create(client_for, patient, pharmacist):
    r = client_for(pharmacist).post("/api/prescriptions", _rx_body(patient), format="json")
    assert r.status_code == 403


def test_empty_medicine_list_is_rejected(client_for, doctor, patient):
    r = client_for(doctor).post("/api/prescriptions", _rx_body(patient, medicineList=[]), format="json")
    assert r.status_code == 400


def test_pharmacy_flow_and_no_regression(rx, client_for, pharmacist, doctor):
    client = client_for(pharmacist)
    r = _status(client, rx, "sent_to_pharmacy")
    assert r.status_code == 200
    assert r.data["data"]["pharmacyInfo"]["pharmacyId"] == "PHARM001"

    r = _status(client, rx, "dispensed")
    assert r.status_code == 200
    assert r.data["data"]["pharmacyInfo"]["pharmacist"] == pharmacist.name

    r = _status(client, rx, "pending")
    assert r.status_code == 400
    assert r.data["error"]["code"] == "invalid_transition"
    assert Prescription.objects.get(prescription_id=rx).status == "dispensed"

    # doctors cannot drive pharmacy steps
    assert _status(client_for(doctor), rx, "completed").status_code == 403
    assert _status(client, rx, "completed").status_code == 200


def test_expired_prescription_cannot_be_dispensed(rx, client_for, pharmacist):
    _status(client_for(pharmacist), rx, "sent_to_pharmacy")
    Prescription.objects.filter(prescription_id=rx).update(expires_at=timezone.now() - timedelta(minutes=1))
    r = _status(client_for(pharmacist), rx, "dispensed")
    assert r.status_code == 400
    assert r.data["error"]["message"] == "Prescription has expired"


def test_doctor_can_cancel_own_prescription(rx, client_for, doctor, make_doctor):
    other = make_doctor(name="Other Doc")
    assert _status(client_for(other), rx, "cancelled").status_code == 403
    r = _status(client_for(doctor), rx, "cancelled", notes="Wrong patient")
    assert r.status_code == 200
    assert r.data["data"]["cancellationReason"] == "Wrong patient"


def test_update_only_while_pending(rx, client_for, doctor, pharmacist):
    r = client_for(doctor).put(f"/api/prescriptions/{rx}", {"diagnosis": "Allergic conjunctivitis"}, format="json")
    assert r.status_code == 200
    assert r.data["data"]["prescriptionDetails"]["diagnosis"] == "Allergic conjunctivitis"
    _status(client_for(pharmacist), rx, "sent_to_pharmacy")
    r = client_for(doctor).put(f"/api/prescriptions/{rx}", {"diagnosis": "Something else"}, format="json")
    assert r.status_code == 400


def test_refill(rx, client_for, pharmacist):
    client = client_for(pharmacist)
    assert client.post(f"/api/prescriptions/{rx}/refill").status_code == 400
    _status(client, rx, "sent_to_pharmacy")
    _status(client, rx, "dispensed")
    r = client.post(f"/api/prescriptions/{rx}/refill")
    assert r.status_code == 200
    items = {i["medicineName"]: i for i in r.data["data"]["medicineList"]}
    assert items["Cetirizine"]["refillsUsed"] == 1
    assert r.data["data"]["refillEligible"] is False
    r = client.post(f"/api/prescriptions/{rx}/refill")
    assert r.status_code == 400
    assert r.data["error"]["message"] == "No refills remaining"


def test_visibility(rx, client_for, patient, make_patient, pharmacist, doctor):
    assert client_for(patient).get(f"/api/prescriptions/{rx}").status_code == 200
    stranger = make_patient(name="Sam Stranger")
    assert client_for(stranger).get(f"/api/prescriptions/{rx}").status_code == 403
    assert client_for(stranger).get(f"/api/prescriptions/patient/{patient.public_id}").status_code == 403

    r = client_for(pharmacist).get("/api/prescriptions/pharmacist")
    assert [p["prescriptionId"] for p in r.data["data"]] == [rx]
    r = client_for(doctor).get("/api/prescriptions/doctor")
    assert len(r.data["data"]) == 1
    r = client_for(doctor).get("/api/prescriptions/stats")
    assert r.data["data"]["awaitingPharmacy"] == 1


def test_expire_command(rx, patient):
    Prescription.objects.filter(prescription_id=rx).update(expires_at=timezone.now() - timedelta(days=1))
    call_command("expire_prescriptions")
    assert Prescription.objects.get(prescription_id=rx).status == "expired"
    assert Notification.objects.filter(recipient=patient, title="Prescription expired").exists()
