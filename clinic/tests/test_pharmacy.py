from datetime import timedelta

import pytest
from django.utils import timezone

from clinic.models import MedicineStock, Notification, Prescription, StockMovement

pytestmark = pytest.mark.django_db


def _medicine(**extra):
    body = {
        "name": "Cetirizine",
        "genericName": "Cetirizine hydrochloride",
        "quantityAvailable": 12,
        "expiryDate": (timezone.localdate() + timedelta(days=200)).isoformat(),
        "dosageForm": "tablet",
        "strength": "10mg",
        "unit": "pieces",
        "category": "over_the_counter",
        "costPrice": "0.20",
        "sellingPrice": "0.50",
        "minimumStockLevel": 10,
    }
    body.update(extra)
    return body


@pytest.fixture
def stocked(client_for, pharmacist):
    r = client_for(pharmacist).post("/api/pharmacy/medicines", _medicine(), format="json")
    assert r.status_code == 201, r.data
    return r.data["data"]["medicineId"]


def _move(client, med_id, action, quantity, **extra):
    return client.post(f"/api/pharmacy/medicines/{med_id}/stock",
                       {"action": action, "quantity": quantity, **extra}, format="json")


def test_pharmacist_adds_medicine(stocked, client_for, pharmacist):
    assert stocked.startswith("MED")
    m = MedicineStock.objects.get(medicine_id=stocked)
    assert m.quantity_available == 12
    first = m.movements.get()
    assert (first.action, first.quantity, first.new_quantity) == ("stock_in", 12, 12)

    r = client_for(pharmacist).get(f"/api/pharmacy/medicines/{stocked}")
    assert r.data["data"]["pricing"]["margin"] == "0.30"
    assert r.data["data"]["movements"][0]["reason"] == "Initial stock"


def test_selling_below_cost_is_rejected(client_for, pharmacist):
    r = client_for(pharmacist).post("/api/pharmacy/medicines", _medicine(sellingPrice="0.10"), format="json")
    assert r.status_code == 400
    assert r.data["error"]["fields"][0]["field"] == "sellingPrice"


def test_inventory_roles(stocked, client_for, nurse, patient):
    nurse_client = client_for(nurse)
    assert nurse_client.post("/api/pharmacy/medicines", _medicine(name="Ibuprofen"), format="json").status_code == 403
    assert _move(nurse_client, stocked, "stock_in", 5).status_code == 403
    assert nurse_client.get("/api/pharmacy/medicines/stats").status_code == 403
    r = nurse_client.get("/api/pharmacy/medicines")
    assert r.status_code == 200
    assert [m["medicineId"] for m in r.data["data"]] == [stocked]
    assert client_for(patient).get("/api/pharmacy/medicines").status_code == 403


def test_stock_out_cannot_go_negative(stocked, client_for, pharmacist):
    r = _move(client_for(pharmacist), stocked, "stock_out", 13)
    assert r.status_code == 400
    assert r.data["error"]["message"].startswith("Insufficient stock for Cetirizine")
    assert MedicineStock.objects.get(medicine_id=stocked).quantity_available == 12


def test_adjustment_and_restock(stocked, client_for, pharmacist):
    client = client_for(pharmacist)
    r = _move(client, stocked, "adjustment", 40, reason="Cycle count")
    assert r.status_code == 201
    assert r.data["data"]["quantityAvailable"] == 40
    r = _move(client, stocked, "stock_in", 60, batchNumber="B-2207")
    assert r.data["data"]["quantityAvailable"] == 100
    latest = r.data["data"]["movements"][0]
    assert (latest["action"], latest["previousQuantity"], latest["newQuantity"]) == ("stock_in", 40, 100)
    assert _move(client, stocked, "stock_in", 0).status_code == 400


def test_low_stock_notifies_once(stocked, client_for, pharmacist, manager):
    client = client_for(pharmacist)
    _move(client, stocked, "stock_out", 2)
    low = Notification.objects.filter(type="stock_low")
    assert set(low.values_list("recipient", flat=True)) == {pharmacist.pk, manager.pk}
    _move(client, stocked, "stock_out", 1)
    assert low.count() == 2

    r = client.get("/api/pharmacy/medicines", {"lowStock": "true"})
    assert [m["medicineId"] for m in r.data["data"]] == [stocked]
    assert r.data["data"][0]["isLowStock"] is True


def test_expired_medicine_is_not_dispensed(stocked, client_for, pharmacist):
    MedicineStock.objects.filter(medicine_id=stocked).update(expiry_date=timezone.localdate() - timedelta(days=1))
    r = _move(client_for(pharmacist), stocked, "stock_out", 1)
    assert r.status_code == 400
    assert r.data["error"]["message"] == "Cetirizine is not available for dispensing"
    assert _move(client_for(pharmacist), stocked, "expiry", 12).status_code == 201


def test_stats_and_pharmacist_dashboard(stocked, client_for, pharmacist):
    client = client_for(pharmacist)
    client.post("/api/pharmacy/medicines", _medicine(name="Amoxicillin", quantityAvailable=0,
                                                     category="prescription"), format="json")
    stats = client.get("/api/pharmacy/medicines/stats").data["data"]
    assert stats["totalMedicines"] == 2
    assert stats["outOfStockCount"] == 1
    assert stats["lowStockCount"] == 1
    assert stats["totalStockValue"] == "2.40"

    dash = client.get("/api/employee/dashboard/stats").data["data"]
    assert dash["totalMedicines"] == 2
    assert dash["lowStockMedicines"] == 1


def test_catalogue_edit_keeps_quantity(stocked, client_for, pharmacist):
    r = client_for(pharmacist).put(f"/api/pharmacy/medicines/{stocked}",
                                   {"strength": "5mg", "quantityAvailable": 999}, format="json")
    assert r.status_code == 200
    assert r.data["data"]["strength"] == "5mg"
    assert r.data["data"]["quantityAvailable"] == 12


def _prescribe(client_for, doctor, patient, med_id, quantity):
    body = {
        "patientId": patient.public_id,
        "diagnosis": "Seasonal allergic rhinitis",
        "medicineList": [
            {"medicineId": med_id, "medicineName": "Cetirizine", "quantity": quantity},
            {"medicineName": "Saline rinse", "quantity": 1},
        ],
    }
    r = client_for(doctor).post("/api/prescriptions", body, format="json")
    assert r.status_code == 201, r.data
    rx = r.data["data"]["prescriptionId"]
    return rx


def test_dispensing_takes_stock(stocked, client_for, pharmacist, doctor, patient):
    rx = _prescribe(client_for, doctor, patient, stocked, 5)
    client = client_for(pharmacist)
    client.put(f"/api/prescriptions/{rx}/status", {"status": "sent_to_pharmacy"}, format="json")
    r = client.put(f"/api/prescriptions/{rx}/status", {"status": "dispensed"}, format="json")
    assert r.status_code == 200
    assert MedicineStock.objects.get(medicine_id=stocked).quantity_available == 7
    out = StockMovement.objects.get(action="stock_out")
    assert (out.prescription_id, out.reason) == (rx, "Dispensed")


def test_shortage_blocks_dispensing(stocked, client_for, pharmacist, doctor, patient):
    rx = _prescribe(client_for, doctor, patient, stocked, 30)
    client = client_for(pharmacist)
    client.put(f"/api/prescriptions/{rx}/status", {"status": "sent_to_pharmacy"}, format="json")
    r = client.put(f"/api/prescriptions/{rx}/status", {"status": "dispensed"}, format="json")
    assert r.status_code == 400
    assert Prescription.objects.get(prescription_id=rx).status == "sent_to_pharmacy"
    assert MedicineStock.objects.get(medicine_id=stocked).quantity_available == 12
