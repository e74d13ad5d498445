"""
Integration tests for registration, sign-in and token handling.
"""
from datetime import timedelta

import pytest
from rest_framework import status
from rest_framework.test import APIClient, APITestCase
from rest_framework_simplejwt.tokens import AccessToken

from clinic.models import AuditEvent, EmployeeProfile, User
from clinic.services import accounts

pytestmark = pytest.mark.django_db

PASSWORD = "Xq7vLm2pRt"


def _patient_body(**overrides):
    body = {
        "name": "Alice Walker",
        "email": "Alice@Example.com",
        "password": PASSWORD,
        "confirmPassword": PASSWORD,
        "dateOfBirth": "1985-03-02",
        "gender": "female",
        "phone": "+15550100",
    }
    body.update(overrides)
    return body


class PatientRegistrationTests(APITestCase):
    def test_register_returns_201_with_patient_id(self):
        r = self.client.post("/api/patient/register", _patient_body(), format="json")
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertTrue(r.data["ok"])
        self.assertRegex(r.data["patientId"], r"^PAT\d{6}$")
        self.assertEqual(r.data["userType"], "patient")
        self.assertTrue(r.data["accessToken"])
        self.assertTrue(r.data["refreshToken"])
        user = User.objects.get(username="alice@example.com")
        self.assertEqual(user.patient_profile.patient_id, r.data["patientId"])

    def test_duplicate_email_is_rejected(self):
        self.client.post("/api/patient/register", _patient_body(), format="json")
        r = self.client.post("/api/patient/register", _patient_body(), format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data["error"]["code"], "validation_error")
        self.assertIn("email", [f["field"] for f in r.data["error"]["fields"]])

    def test_weak_password_and_mismatch(self):
        r = self.client.post("/api/patient/register",
                             _patient_body(password="alllowercase1", confirmPassword="alllowercase1"), format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        r = self.client.post("/api/patient/register", _patient_body(confirmPassword="Different9Pass"), format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("confirmPassword", [f["field"] for f in r.data["error"]["fields"]])

    def test_invalid_name_and_future_birth_date(self):
        r = self.client.post("/api/patient/register",
                             _patient_body(name="R2D2", dateOfBirth="2999-01-01"), format="json")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        fields = {f["field"] for f in r.data["error"]["fields"]}
        self.assertTrue({"name", "dateOfBirth"} <= fields)


def test_patient_login_wrong_password_is_401(patient):
    client = APIClient()
    r = client.post("/api/patient/login", {"email": patient.email, "password": "Wrong1Password"}, format="json")
    assert r.status_code == 401
    assert r.data["error"]["code"] == "invalid_credentials"
    assert AuditEvent.objects.filter(action="login", detail__result="fail").exists()


def test_patient_login_success(patient):
    client = APIClient()
    r = client.post("/api/patient/login", {"email": patient.email.upper(), "password": PASSWORD}, format="json")
    assert r.status_code == 200
    assert r.data["userType"] == "patient"
    assert r.data["user"]["patientId"] == patient.public_id
    assert r.data["expiresIn"] == 15 * 60


def test_login_surfaces_are_separate(patient, doctor):
    client = APIClient()
    r = client.post("/api/auth/authority/login", {"email": patient.email, "password": PASSWORD}, format="json")
    assert r.status_code == 401
    r = client.post("/api/patient/login", {"email": doctor.email, "password": PASSWORD}, format="json")
    assert r.status_code == 401
    r = client.post("/api/employee/login", {"email": doctor.email, "password": PASSWORD}, format="json")
    assert r.status_code == 200
    assert r.data["user"]["empID"].startswith("D")


def test_inactive_employee_cannot_login(doctor):
    EmployeeProfile.objects.filter(user=doctor).update(status="terminated")
    r = APIClient().post("/api/auth/authority/login", {"email": doctor.email, "password": PASSWORD}, format="json")
    assert r.status_code == 403
    assert r.data["error"]["code"] == "account_inactive"


def test_expired_access_token_is_rejected(patient):
    token = AccessToken.for_user(patient)
    token.set_exp(lifetime=-timedelta(seconds=5))
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    r = client.get("/api/user/verify-token")
    assert r.status_code == 401
    assert r.data["error"] == {"code": "token_expired", "message": "Token expired"}


def test_garbage_token_is_rejected():
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION="Bearer not-a-jwt")
    r = client.get("/api/user/verify-token")
    assert r.status_code == 401
    assert r.data["error"]["code"] == "token_invalid"


def test_missing_token_is_401():
    r = APIClient().get("/api/user/profile")
    assert r.status_code == 401


def test_verify_and_profile(client_for, patient):
    client = client_for(patient)
    r = client.get("/api/user/verify-token")
    assert r.status_code == 200 and r.data["valid"] is True
    r = client.put("/api/patient/profile", {"phone": "+15550199", "bloodType": "O+"}, format="json")
    assert r.status_code == 200
    assert r.data["data"]["phone"] == "+15550199"
    assert r.data["data"]["bloodType"] == "O+"


def test_refresh_rotates_and_blacklists(patient):
    tokens = accounts.issue_tokens(patient)
    client = APIClient()
    r = client.post("/api/auth/refresh-token", {"refreshToken": tokens["refreshToken"]}, format="json")
    assert r.status_code == 200
    assert r.data["accessToken"]
    assert r.data["refreshToken"] != tokens["refreshToken"]
    # the rotated-out token is blacklisted
    r = client.post("/api/auth/refresh-token", {"refreshToken": tokens["refreshToken"]}, format="json")
    assert r.status_code == 401


def test_logout_blacklists_refresh_token(client_for, patient):
    tokens = accounts.issue_tokens(patient)
    client = client_for(patient)
    r = client.post("/api/user/logout", {"refreshToken": tokens["refreshToken"]}, format="json")
    assert r.status_code == 200
    r = APIClient().post("/api/user/refresh-token", {"refreshToken": tokens["refreshToken"]}, format="json")
    assert r.status_code == 401


def test_change_password(client_for, patient):
    client = client_for(patient)
    new = "Nw8pLq3vZs"
    r = client.post("/api/user/change-password",
                    {"currentPassword": "Wrong1Password", "newPassword": new, "confirmPassword": new}, format="json")
    assert r.status_code == 400
    r = client.post("/api/user/change-password",
                    {"currentPassword": PASSWORD, "newPassword": new, "confirmPassword": new}, format="json")
    assert r.status_code == 200
    patient.refresh_from_db()
    assert patient.check_password(new)


def test_authority_register_requires_management(client_for, manager, doctor, admin_user):
    body = {
        "name": "Nina Nurse", "email": "nina@example.com", "password": PASSWORD, "confirmPassword": PASSWORD,
        "userType": "nurse", "department": "Cardiology", "ward": "B2", "shift": "night",
    }
    r = client_for(doctor).post("/api/auth/authority/register", body, format="json")
    assert r.status_code == 403

    r = client_for(manager).post("/api/auth/authority/register", body, format="json")
    assert r.status_code == 201
    assert r.data["empID"].startswith("N")
    assert r.data["user"]["details"] == {"ward": "B2", "shift": "night"}

    mgr_body = {k: v for k, v in body.items() if k not in ("ward", "shift")}
    mgr_body.update(email="boss@example.com", userType="healthCareManager", name="Big Boss")
    r = client_for(manager).post("/api/auth/authority/register", mgr_body, format="json")
    assert r.status_code == 403
    r = client_for(admin_user).post("/api/employee/healthcare-manager/register", mgr_body, format="json")
    assert r.status_code == 201
    assert r.data["empID"].startswith("HM")


def test_doctor_registration_requires_doctor_fields(client_for, manager, doctor):
    body = {
        "name": "Derek Doc", "email": "derek@example.com", "password": PASSWORD, "confirmPassword": PASSWORD,
    }
    r = client_for(manager).post("/api/employee/doctor/register", body, format="json")
    assert r.status_code == 400
    missing = {f["field"] for f in r.data["error"]["fields"]}
    assert {"specialization", "licenseNumber", "experience", "consultationFee"} <= missing

    body.update(specialization="Neurology", licenseNumber=doctor.doctor_profile.license_number,
                experience=3, consultationFee="120.00")
    r = client_for(manager).post("/api/employee/doctor/register", body, format="json")
    assert r.status_code == 400
    assert "licenseNumber" in {f["field"] for f in r.data["error"]["fields"]}

    body["licenseNumber"] = "LIC-NEW-1"
    r = client_for(manager).post("/api/employee/doctor/register", body, format="json")
    assert r.status_code == 201
    assert r.data["user"]["specialization"] == "Neurology"
    assert r.data["user"]["availability"]["monday"] == [{"start": "09:00", "end": "17:00"}]
