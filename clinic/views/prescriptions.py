"""
Prescription endpoints.

Doctors issue and edit their prescriptions, pharmacists move them
through the pharmacy steps and dispense refills, patients read their
own.
"""
from __future__ import annotations

from rest_framework import exceptions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Prescription, User
from ..permissions import IsAuthorityRole, IsDoctorRole, IsPharmacistRole
from ..serializers.prescription import (
    PrescriptionCreateSerializer, PrescriptionStatusSerializer, PrescriptionUpdateSerializer,
)
from ..services import prescriptions as service


def _ok(p: Prescription, *, message: str = '', code: int = 200) -> Response:
    p = service.base_queryset().get(pk=p.pk)
    body = {'ok': True, 'data': service.format_prescription(p, with_history=True)}
    if message:
        body['message'] = message
    return Response(body, status=code)


def _listing(qs, request) -> Response:
    status_filter = request.query_params.get('status')
    if status_filter:
        qs = qs.filter(status__in=status_filter.split(','))
    return Response({'ok': True, 'data': [service.format_prescription(p) for p in qs[:200]]})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def create_prescription(request):
    s = PrescriptionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = User.objects.get(role=User.ROLE_PATIENT, patient_profile__patient_id=s.validated_data['patientId'])
    p = service.create(request.user, patient, s.validated_data)
    return _ok(p, message='Prescription created', code=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def doctor_prescriptions(request):
    return _listing(service.base_queryset().filter(doctor=request.user), request)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPharmacistRole])
def pharmacist_queue(request):
    """Prescriptions waiting on the pharmacy (pending and sent_to_pharmacy)."""
    qs = service.base_queryset().filter(
        status__in=(Prescription.STATUS_PENDING, Prescription.STATUS_SENT)).order_by('issued_at')
    return Response({'ok': True, 'data': [service.format_prescription(p) for p in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAuthorityRole])
def prescription_stats(request):
    qs = Prescription.objects.all()
    if request.user.role == User.ROLE_DOCTOR:
        qs = qs.filter(doctor=request.user)
    return Response({'ok': True, 'data': service.statistics(qs)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_prescriptions(request, patient_id: str):
    user: User = request.user
    qs = service.base_queryset().filter(patient__patient_profile__patient_id=patient_id)
    if user.is_patient:
        if user.public_id != patient_id:
            raise exceptions.PermissionDenied('You can only view your own prescriptions')
    elif user.role == User.ROLE_DOCTOR:
        qs = qs.filter(doctor=user)
    elif user.role == User.ROLE_STAFF:
        raise exceptions.PermissionDenied()
    return _listing(qs, request)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def prescription_detail(request, prescription_id: str):
    if request.method == 'PUT':
        if request.user.role != User.ROLE_DOCTOR:
            raise exceptions.PermissionDenied('Only doctors may edit prescriptions')
        s = PrescriptionUpdateSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        return _ok(service.update(prescription_id, request.user, s.validated_data), message='Prescription updated')
    p = service.get_for_user(request.user, prescription_id)
    return Response({'ok': True, 'data': service.format_prescription(p, with_history=True)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAuthorityRole])
def update_prescription_status(request, prescription_id: str):
    s = PrescriptionStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    p = service.change_status(prescription_id, request.user, vd['status'], notes=vd['notes'],
                              pharmacy_id=vd['pharmacyId'])
    return _ok(p, message=f"Prescription {p.status.replace('_', ' ')}")


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPharmacistRole])
def refill_prescription(request, prescription_id: str):
    return _ok(service.refill(prescription_id, request.user), message='Refill dispensed')
