"""Shared pytest fixtures: seeded accounts and authenticated API clients."""
from datetime import date, datetime, time, timedelta

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from clinic.models import User
from clinic.services import accounts

PASSWORD = "Xq7vLm2pRt"


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters and the department list live in the cache
    cache.clear()
    yield
    cache.clear()


def _employee(email, name, role, **extra):
    return accounts.register_employee({
        "email": email, "name": name, "password": PASSWORD, "userType": role, **extra,
    })


@pytest.fixture
def make_patient(db):
    counter = {"n": 0}

    def make(name="Jane Patient", email=None):
        counter["n"] += 1
        return accounts.register_patient({
            "email": email or f"patient{counter['n']}@example.com",
            "name": name,
            "password": PASSWORD,
            "dateOfBirth": date(1990, 5, 17),
            "gender": "female",
        })
    return make


@pytest.fixture
def patient(make_patient):
    return make_patient()


@pytest.fixture
def make_doctor(db):
    counter = {"n": 0}

    def make(name="Gregory House", specialization="Cardiology", **extra):
        counter["n"] += 1
        return _employee(f"doctor{counter['n']}@example.com", name, User.ROLE_DOCTOR,
                         specialization=specialization, licenseNumber=f"LIC-{counter['n']:04d}",
                         experience=10, consultationFee=150, **extra)
    return make


@pytest.fixture
def doctor(make_doctor):
    return make_doctor()


@pytest.fixture
def manager(db):
    return _employee("manager@example.com", "Martha Manager", User.ROLE_MANAGER)


@pytest.fixture
def admin_user(db):
    return _employee("admin@example.com", "Sam Admin", User.ROLE_ADMIN)


@pytest.fixture
def pharmacist(db):
    return _employee("pharmacist@example.com", "Paul Pharmacist", User.ROLE_PHARMACIST)


@pytest.fixture
def nurse(db):
    return _employee("nurse@example.com", "Nora Nurse", User.ROLE_NURSE)


@pytest.fixture
def staff(db):
    return _employee("staff@example.com", "Stan Staff", User.ROLE_STAFF)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    """Return an APIClient carrying a Bearer access token for ``user``."""
    def make(user):
        c = APIClient()
        c.credentials(HTTP_AUTHORIZATION=f"Bearer {accounts.issue_tokens(user)['accessToken']}")
        return c
    return make


@pytest.fixture
def next_weekday_slot():
    """A 10:00 slot (server time) on the next Monday to Friday at least two days away."""
    def make(hour=10, minute=0, days_ahead=2):
        day = timezone.localdate() + timedelta(days=days_ahead)
        while day.weekday() >= 5:
            day += timedelta(days=1)
        return timezone.make_aware(datetime.combine(day, time(hour, minute)))
    return make
