"""
Patient self-service and patient lookup for staff.

Patients manage their own profile, medical history and allergies and
read their dashboard.  Staff can search patients and open a record by
``patientId``.
"""
from __future__ import annotations

from django.db import transaction
from django.db.models import Q
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Notification, PatientProfile, User
from ..permissions import IsAuthorityRole, IsPatientRole
from ..serializers.appointment import AppointmentListQuerySerializer
from ..serializers.patient import ActivityQuerySerializer, AllergiesSerializer, MedicalHistorySerializer
from ..services import appointments as appointment_service
from ..services import dashboard
from ..services import prescriptions as prescription_service
from ..services.accounts import format_user
from ..services.audit import log_action
from ..services.notifications import format_notification


def _json_dates(rows: list[dict]) -> list[dict]:
    return [{k: (v.isoformat() if hasattr(v, 'isoformat') else v) for k, v in row.items()} for row in rows]


def _medical_record(user: User) -> dict:
    prof = user.patient_profile
    completed = (appointment_service.base_queryset()
                 .filter(patient=user, status='completed').order_by('-date_time')[:50])
    return {
        'patient': format_user(user),
        'medicalHistory': prof.medical_history,
        'allergies': prof.allergies,
        'visits': [appointment_service.format_appointment(a)['completion'] | {
            'appointmentId': a.appointment_id,
            'dateTime': a.date_time.isoformat(),
            'doctorName': a.doctor.name,
            'department': a.department,
        } for a in completed],
        'prescriptions': [prescription_service.format_prescription(p)
                          for p in prescription_service.base_queryset().filter(patient=user)[:50]],
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def medical_records(request):
    return Response({'ok': True, 'data': _medical_record(request.user)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsPatientRole])
def update_medical_history(request):
    s = MedicalHistorySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    with transaction.atomic():
        prof = PatientProfile.objects.select_for_update().get(user=request.user)
        prof.medical_history = _json_dates(s.validated_data['medicalHistory'])
        prof.save(update_fields=['medical_history', 'updated_at'])
        log_action(user=request.user, action='medical_history_update', object_type='patient',
                   object_id=prof.patient_id, detail={'entries': len(prof.medical_history)})
    return Response({'ok': True, 'medicalHistory': prof.medical_history})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsPatientRole])
def update_allergies(request):
    s = AllergiesSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    with transaction.atomic():
        prof = PatientProfile.objects.select_for_update().get(user=request.user)
        prof.allergies = [dict(a) for a in s.validated_data['allergies']]
        prof.save(update_fields=['allergies', 'updated_at'])
        log_action(user=request.user, action='allergies_update', object_type='patient',
                   object_id=prof.patient_id, detail={'entries': len(prof.allergies)})
    return Response({'ok': True, 'allergies': prof.allergies})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def dashboard_stats(request):
    return Response({'ok': True, 'data': dashboard.patient_stats(request.user)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def recent_activity(request):
    q = ActivityQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response({'ok': True, 'data': dashboard.recent_activity(request.user, q.validated_data['limit'])})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def my_appointments(request):
    q = AppointmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = appointment_service.filter_queryset(
        appointment_service.base_queryset().filter(patient=request.user),
        status=q.validated_data.get('status'), day=q.validated_data.get('date'),
        upcoming=q.validated_data['upcoming'],
    )
    return Response({'ok': True, 'data': [appointment_service.format_appointment(a) for a in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def my_notifications(request):
    qs = Notification.objects.filter(recipient=request.user)
    if request.query_params.get('status') in ('read', 'unread'):
        qs = qs.filter(status=request.query_params['status'])
    return Response({'ok': True, 'data': [format_notification(n) for n in qs[:100]]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAuthorityRole])
def search_patients(request):
    term = (request.query_params.get('q') or '').strip()
    qs = User.objects.filter(role=User.ROLE_PATIENT).select_related('patient_profile')
    if term:
        qs = qs.filter(Q(name__icontains=term) | Q(email__icontains=term)
                       | Q(patient_profile__patient_id__iexact=term) | Q(patient_profile__phone__icontains=term))
    return Response({'ok': True, 'data': [format_user(u) for u in qs.order_by('name')[:50]]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAuthorityRole])
def patient_detail(request, patient_id: str):
    user = User.objects.select_related('patient_profile').get(
        role=User.ROLE_PATIENT, patient_profile__patient_id=patient_id)
    data = format_user(user)
    if request.user.role in (User.ROLE_DOCTOR, User.ROLE_NURSE, User.ROLE_MANAGER):
        data['medicalRecord'] = _medical_record(user)
    return Response({'ok': True, 'data': data})
