"""Human readable identifiers (``PAT123456``, ``D04211``, ``APT...``)."""
from __future__ import annotations

import secrets
import time

from django.db import models

EMPLOYEE_PREFIXES = {
    'doctor': 'D',
    'nurse': 'N',
    'pharmacist': 'P',
    'healthCareManager': 'HM',
    'systemAdmin': 'SA',
    'hospitalStaff': 'HS',
}


def _random_digits(n: int) -> str:
    return ''.join(str(secrets.randbelow(10)) for _ in range(n))


def _unique(model: type[models.Model], field: str, make) -> str:
    for _ in range(20):
        candidate = make()
        if not model.objects.filter(**{field: candidate}).exists():
            return candidate
    raise RuntimeError(f"Could not allocate a unique {model.__name__}.{field}")


def new_patient_id() -> str:
    from clinic.models import PatientProfile
    return _unique(PatientProfile, 'patient_id', lambda: f"PAT{_random_digits(6)}")


def new_emp_id(role: str) -> str:
    from clinic.models import EmployeeProfile
    prefix = EMPLOYEE_PREFIXES[role]
    return _unique(EmployeeProfile, 'emp_id', lambda: f"{prefix}{_random_digits(5)}")


def _stamped(prefix: str) -> str:
    return f"{prefix}{int(time.time() * 1000)}{_random_digits(3)}"


def new_appointment_id() -> str:
    from clinic.models import Appointment
    return _unique(Appointment, 'appointment_id', lambda: _stamped('APT'))


def new_prescription_id() -> str:
    from clinic.models import Prescription
    return _unique(Prescription, 'prescription_id', lambda: _stamped('RX'))


def new_ticket_id() -> str:
    from clinic.models import SupportTicket
    return _unique(SupportTicket, 'ticket_id', lambda: _stamped('TKT'))


def new_notification_id() -> str:
    from clinic.models import Notification
    return _unique(Notification, 'notification_id', lambda: _stamped('NTF'))


def new_medicine_id() -> str:
    from clinic.models import MedicineStock
    return _unique(MedicineStock, 'medicine_id', lambda: _stamped('MED'))


def new_reference(prefix: str) -> str:
    return f"{prefix}{secrets.token_hex(8).upper()}"
