import re
from datetime import date

import bleach
from django.contrib.auth import password_validation
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from clinic.models import DoctorProfile, PatientProfile, User

NAME_RE = re.compile(r"^[A-Za-z][A-Za-z\s]*$")
STRONG_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{8,}$")
TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

# URL slug -> role
EMPLOYEE_TYPES = {
    'doctor': User.ROLE_DOCTOR,
    'nurse': User.ROLE_NURSE,
    'pharmacist': User.ROLE_PHARMACIST,
    'hospital-staff': User.ROLE_STAFF,
    'healthcare-manager': User.ROLE_MANAGER,
}
REGISTRABLE_ROLES = set(EMPLOYEE_TYPES.values())


def clean_text(v: str) -> str:
    return bleach.clean((v or '').strip(), strip=True)


def validate_person_name(v: str) -> str:
    v = clean_text(v)
    if not (2 <= len(v) <= 50) or not NAME_RE.match(v):
        raise serializers.ValidationError('Name must be 2-50 letters')
    return v


def validate_availability(value) -> dict:
    if not isinstance(value, dict):
        raise serializers.ValidationError('Availability must be an object keyed by weekday')
    out: dict[str, list] = {}
    for day, windows in value.items():
        day = str(day).lower()
        if day not in DoctorProfile.WEEKDAYS:
            raise serializers.ValidationError(f"Unknown weekday '{day}'")
        if not isinstance(windows, list):
            raise serializers.ValidationError(f"{day}: expected a list of windows")
        cleaned = []
        for w in windows:
            start, end = (w or {}).get('start', ''), (w or {}).get('end', '')
            if not TIME_RE.match(start) or not TIME_RE.match(end) or start >= end:
                raise serializers.ValidationError(f"{day}: windows need HH:MM start before end")
            cleaned.append({'start': start, 'end': end})
        out[day] = cleaned
    return out


class _PasswordPairMixin:
    def _check_password_pair(self, attrs, field='password', confirm='confirmPassword', name='', email=''):
        if attrs[field] != attrs.get(confirm):
            raise serializers.ValidationError({confirm: 'Passwords do not match'})
        try:
            password_validation.validate_password(attrs[field], User(username=email, email=email, name=name))
        except DjangoValidationError as e:
            raise serializers.ValidationError({field: list(e.messages)})


class RegisterBaseSerializer(_PasswordPairMixin, serializers.Serializer):
    name = serializers.CharField()
    email = serializers.EmailField(max_length=254)
    password = serializers.RegexField(STRONG_PASSWORD_RE, write_only=True, error_messages={
        'invalid': 'Password needs at least 8 characters with upper case, lower case and a digit',
    })
    confirmPassword = serializers.CharField(write_only=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)

    def validate_name(self, v):
        return validate_person_name(v)

    def validate_email(self, v):
        v = v.strip().lower()
        if User.objects.filter(username=v).exists():
            raise serializers.ValidationError('Email is already registered')
        return v

    def validate_phone(self, v):
        return clean_text(v)

    def validate(self, attrs):
        self._check_password_pair(attrs, name=attrs.get('name', ''), email=attrs.get('email', ''))
        return attrs


class PatientRegisterSerializer(RegisterBaseSerializer):
    dateOfBirth = serializers.DateField()
    gender = serializers.ChoiceField(choices=[c for c, _ in PatientProfile.GENDER_CHOICES])
    address = serializers.DictField(required=False)
    emergencyContact = serializers.DictField(required=False)
    bloodType = serializers.ChoiceField(required=False, allow_blank=True,
                                        choices=['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-'])

    def validate_dateOfBirth(self, v):
        today = date.today()
        if v > today:
            raise serializers.ValidationError('Date of birth cannot be in the future')
        age = today.year - v.year - ((today.month, today.day) < (v.month, v.day))
        if age > 150:
            raise serializers.ValidationError('Age must be between 0 and 150')
        return v


class AuthorityRegisterSerializer(RegisterBaseSerializer):
    userType = serializers.ChoiceField(choices=sorted(REGISTRABLE_ROLES))
    department = serializers.CharField(required=False, allow_blank=True, max_length=50)
    hireDate = serializers.DateField(required=False)
    # doctor
    specialization = serializers.ChoiceField(required=False, choices=DoctorProfile.SPECIALIZATIONS)
    licenseNumber = serializers.CharField(required=False, max_length=50)
    experience = serializers.IntegerField(required=False, min_value=0, max_value=70)
    consultationFee = serializers.DecimalField(required=False, max_digits=10, decimal_places=2, min_value=0)
    availability = serializers.DictField(required=False)
    maxPatientsPerDay = serializers.IntegerField(required=False, min_value=1, max_value=100)
    bio = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    # nurse / pharmacist / manager
    ward = serializers.CharField(required=False, allow_blank=True, max_length=50)
    shift = serializers.ChoiceField(required=False, choices=['morning', 'evening', 'night', 'rotating'])
    pharmacyLicense = serializers.CharField(required=False, allow_blank=True, max_length=50)
    managedDepartments = serializers.ListField(child=serializers.CharField(max_length=50), required=False)

    def validate_department(self, v):
        return clean_text(v)

    def validate_availability(self, v):
        return validate_availability(v)

    def validate(self, attrs):
        attrs = super().validate(attrs)
        if attrs['userType'] == User.ROLE_DOCTOR:
            missing = [f for f in ('specialization', 'licenseNumber', 'experience', 'consultationFee') if f not in attrs]
            if missing:
                raise serializers.ValidationError({f: 'This field is required for doctors.' for f in missing})
            if DoctorProfile.objects.filter(license_number=attrs['licenseNumber']).exists():
                raise serializers.ValidationError({'licenseNumber': 'License number already registered'})
        return attrs


class LoginSerializer(serializers.Serializer):
    email = serializers.CharField()
    password = serializers.CharField()

    def validate_email(self, v):
        v = (v or '').strip().lower()
        if not v:
            raise serializers.ValidationError('Email is required')
        return v


class RefreshSerializer(serializers.Serializer):
    refreshToken = serializers.CharField()


class ChangePasswordSerializer(_PasswordPairMixin, serializers.Serializer):
    currentPassword = serializers.CharField()
    newPassword = serializers.RegexField(STRONG_PASSWORD_RE, error_messages={
        'invalid': 'Password needs at least 8 characters with upper case, lower case and a digit',
    })
    confirmPassword = serializers.CharField()

    def validate(self, attrs):
        user = self.context['user']
        self._check_password_pair(attrs, field='newPassword', name=user.name, email=user.email)
        if attrs['currentPassword'] == attrs['newPassword']:
            raise serializers.ValidationError({'newPassword': 'New password must differ from the current one'})
        return attrs


class LogoutSerializer(serializers.Serializer):
    refreshToken = serializers.CharField(required=False, allow_blank=True)
