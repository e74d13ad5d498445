"""
Account lifecycle: registration, sign-in, token issuance and profile
maintenance for both patients and staff.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings
from django.contrib.auth import authenticate
from django.core.cache import cache
from django.db import transaction
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.exceptions import AccountInactive
from clinic.models import DoctorProfile, EmployeeProfile, PatientProfile, User
from clinic.services.audit import log_action
from clinic.services.identifiers import new_emp_id, new_patient_id

logger = logging.getLogger(__name__)

DEPARTMENTS_CACHE_KEY = 'appointments:departments'


def format_user(user: User) -> dict:
    data: dict = {
        'id': user.public_id,
        'name': user.name,
        'email': user.email,
        'role': user.role,
        'isActive': user.is_active,
    }
    if user.is_patient:
        prof = getattr(user, 'patient_profile', None)
        if prof:
            data.update({
                'patientId': prof.patient_id,
                'dateOfBirth': prof.date_of_birth.isoformat(),
                'gender': prof.gender,
                'phone': prof.phone,
                'address': prof.address,
                'emergencyContact': prof.emergency_contact,
                'bloodType': prof.blood_type,
                'status': prof.status,
            })
        return data
    prof = getattr(user, 'employee_profile', None)
    if prof:
        data.update({
            'empID': prof.emp_id,
            'employeeType': prof.employee_type,
            'department': prof.department,
            'phone': prof.phone,
            'hireDate': prof.hire_date.isoformat() if prof.hire_date else None,
            'status': prof.status,
            'details': prof.details,
        })
    doc = getattr(user, 'doctor_profile', None)
    if doc:
        data.update(format_doctor_fields(doc))
    return data


def format_doctor_fields(doc: DoctorProfile) -> dict:
    return {
        'specialization': doc.specialization,
        'licenseNumber': doc.license_number,
        'experience': doc.experience_years,
        'consultationFee': str(doc.consultation_fee),
        'availability': doc.availability,
        'maxPatientsPerDay': doc.max_patients_per_day,
        'bio': doc.bio,
        'averageRating': float(doc.average_rating),
        'totalRatings': doc.total_ratings,
    }


def issue_tokens(user: User) -> dict:
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role
    refresh['userId'] = user.public_id
    access = refresh.access_token
    return {
        'accessToken': str(access),
        'refreshToken': str(refresh),
        'expiresIn': int(settings.SIMPLE_JWT['ACCESS_TOKEN_LIFETIME'].total_seconds()),
    }


@transaction.atomic
def register_patient(data: dict) -> User:
    user = User.objects.create_user(
        username=data['email'], email=data['email'], password=data['password'],
        name=data['name'], first_name=data['name'][:150], role=User.ROLE_PATIENT,
    )
    PatientProfile.objects.create(
        user=user,
        patient_id=new_patient_id(),
        date_of_birth=data['dateOfBirth'],
        gender=data['gender'],
        phone=data.get('phone', ''),
        address=data.get('address') or {},
        emergency_contact=data.get('emergencyContact') or {},
        blood_type=data.get('bloodType', ''),
    )
    log_action(user=user, action='register', object_type='patient', object_id=user.public_id)
    logger.info("Registered patient %s", user.public_id)
    return user


@transaction.atomic
def register_employee(data: dict, *, created_by: Optional[User] = None) -> User:
    role = data['userType']
    user = User.objects.create_user(
        username=data['email'], email=data['email'], password=data['password'],
        name=data['name'], first_name=data['name'][:150], role=role,
    )
    details = {k: data[k] for k in ('ward', 'shift', 'pharmacyLicense', 'managedDepartments') if k in data}
    department = data.get('department', '')
    if role == User.ROLE_DOCTOR and not department:
        department = data['specialization']
    EmployeeProfile.objects.create(
        user=user,
        emp_id=new_emp_id(role),
        employee_type=role,
        department=department,
        phone=data.get('phone', ''),
        hire_date=data.get('hireDate'),
        details=details,
    )
    if role == User.ROLE_DOCTOR:
        DoctorProfile.objects.create(
            user=user,
            specialization=data['specialization'],
            license_number=data['licenseNumber'],
            experience_years=data['experience'],
            consultation_fee=data['consultationFee'],
            availability=data.get('availability') or DoctorProfile.default_availability(),
            max_patients_per_day=data.get('maxPatientsPerDay', 20),
            bio=data.get('bio', ''),
        )
        transaction.on_commit(lambda: cache.delete(DEPARTMENTS_CACHE_KEY))
    log_action(user=created_by, action='register', object_type=role, object_id=user.public_id)
    logger.info("Registered %s %s", role, user.public_id)
    return user


def login(request, email: str, password: str, *, patient: bool) -> Optional[User]:
    """Authenticate and enforce the patient/authority split.

    Returns None on bad credentials or when the account belongs to the
    other login surface.  Raises :class:`AccountInactive` for staff
    whose employment status forbids sign-in.
    """
    ip = request.META.get('REMOTE_ADDR')
    user = authenticate(request, username=email, password=password)
    if user is None or user.is_patient != patient:
        log_action(user=None, action='login', object_type='user', object_id=None,
                   detail={'result': 'fail', 'email': email, 'ip': ip})
        logger.warning("Failed login for %s from %s", email, ip)
        return None
    if user.is_authority:
        prof = getattr(user, 'employee_profile', None)
        if prof is not None and prof.status not in EmployeeProfile.LOGIN_STATUSES:
            log_action(user=user, action='login', object_type='user', object_id=user.public_id,
                       detail={'result': 'inactive', 'ip': ip})
            raise AccountInactive()
    log_action(user=user, action='login', object_type='user', object_id=user.public_id,
               detail={'result': 'ok', 'ip': ip})
    return user


PATIENT_EDITABLE = {'phone': 'phone', 'address': 'address', 'emergencyContact': 'emergency_contact',
                    'bloodType': 'blood_type'}
EMPLOYEE_EDITABLE = {'phone': 'phone', 'department': 'department'}
DOCTOR_EDITABLE = {'bio': 'bio', 'consultationFee': 'consultation_fee', 'availability': 'availability',
                   'maxPatientsPerDay': 'max_patients_per_day'}


@transaction.atomic
def update_profile(user: User, data: dict) -> User:
    if 'name' in data:
        user.name = data['name']
        user.first_name = data['name'][:150]
        user.save(update_fields=['name', 'first_name'])
    if user.is_patient:
        prof = user.patient_profile
        for key, attr in PATIENT_EDITABLE.items():
            if key in data:
                setattr(prof, attr, data[key])
        prof.save()
    else:
        prof = getattr(user, 'employee_profile', None)
        if prof is not None:
            for key, attr in EMPLOYEE_EDITABLE.items():
                if key in data:
                    setattr(prof, attr, data[key])
            prof.save()
        doc = getattr(user, 'doctor_profile', None)
        if doc is not None:
            for key, attr in DOCTOR_EDITABLE.items():
                if key in data:
                    setattr(doc, attr, data[key])
            doc.save()
            transaction.on_commit(lambda: cache.delete(DEPARTMENTS_CACHE_KEY))
    log_action(user=user, action='profile_update', object_type=user.role, object_id=user.public_id,
               detail={'fields': sorted(data)})
    return user


def revoke_refresh_tokens(user: User, refresh: Optional[str] = None) -> int:
    """Blacklist one refresh token, or all outstanding ones for ``user``."""
    if refresh:
        RefreshToken(refresh).blacklist()
        return 1
    count = 0
    for token in OutstandingToken.objects.filter(user=user):
        _, created = BlacklistedToken.objects.get_or_create(token=token)
        count += int(created)
    return count


@transaction.atomic
def change_password(user: User, current: str, new: str) -> bool:
    if not user.check_password(current):
        return False
    user.set_password(new)
    user.save(update_fields=['password'])
    revoke_refresh_tokens(user)
    log_action(user=user, action='change_password', object_type='user', object_id=user.public_id)
    return True
