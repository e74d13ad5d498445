"""
Staff directory and employment status.

Lists are grouped by the URL ``type`` slug (``doctor``, ``nurse``,
``pharmacist``, ``hospital-staff``, ``healthcare-manager``).  Any staff
member can browse the directory; status changes are reserved for
health care managers and system administrators.
"""
from __future__ import annotations

from django.core.cache import cache
from django.db import transaction
from rest_framework import exceptions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import DoctorProfile, EmployeeProfile, User
from ..permissions import IsAuthorityRole, IsDoctorRole, IsManagementRole, IsPatientRole
from ..serializers.auth import EMPLOYEE_TYPES
from ..serializers.employee import AvailabilitySerializer, DoctorRatingSerializer, EmployeeStatusSerializer
from ..services import dashboard, doctors
from ..services.accounts import DEPARTMENTS_CACHE_KEY, format_user
from ..services.audit import log_action


def _role_for(employee_type: str) -> str:
    try:
        return EMPLOYEE_TYPES[employee_type]
    except KeyError:
        raise exceptions.NotFound(f"Unknown employee type '{employee_type}'")


def _employee(employee_type: str, emp_id: str) -> User:
    return User.objects.select_related('employee_profile', 'doctor_profile').get(
        role=_role_for(employee_type), employee_profile__emp_id=emp_id)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAuthorityRole])
def list_employees(request, employee_type: str):
    qs = User.objects.filter(role=_role_for(employee_type)).select_related('employee_profile', 'doctor_profile')
    status_filter = request.query_params.get('status')
    if status_filter:
        qs = qs.filter(employee_profile__status=status_filter)
    department = request.query_params.get('department')
    if department:
        qs = qs.filter(employee_profile__department__iexact=department)
    return Response({'ok': True, 'data': [format_user(u) for u in qs.order_by('name')]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAuthorityRole])
def employee_detail(request, employee_type: str, emp_id: str):
    return Response({'ok': True, 'data': format_user(_employee(employee_type, emp_id))})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsManagementRole])
def update_employee_status(request, employee_type: str, emp_id: str):
    s = EmployeeStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    target = _employee(employee_type, emp_id)
    if target.id == request.user.id:
        raise exceptions.PermissionDenied('You cannot change your own employment status')
    if target.role == User.ROLE_MANAGER and request.user.role != User.ROLE_ADMIN:
        raise exceptions.PermissionDenied('Only a system administrator can change a manager\'s status')
    with transaction.atomic():
        prof = EmployeeProfile.objects.select_for_update().get(user=target)
        old = prof.status
        prof.status = s.validated_data['status']
        prof.save(update_fields=['status', 'updated_at'])
        log_action(user=request.user, action='employee_status', object_type=target.role, object_id=emp_id,
                   detail={'from': old, 'to': prof.status, 'reason': s.validated_data.get('reason', '')})
        if target.role == User.ROLE_DOCTOR:
            transaction.on_commit(lambda: cache.delete(DEPARTMENTS_CACHE_KEY))
    target.refresh_from_db()
    return Response({'ok': True, 'message': 'Status updated', 'data': format_user(target)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAuthorityRole])
def employee_dashboard(request):
    return Response({'ok': True, 'data': dashboard.employee_stats(request.user)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def update_availability(request):
    s = AvailabilitySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    with transaction.atomic():
        prof = DoctorProfile.objects.select_for_update().get(user=request.user)
        prof.availability = s.validated_data['availability']
        prof.save(update_fields=['availability'])
        log_action(user=request.user, action='availability_update', object_type='doctor',
                   object_id=request.user.public_id)
    return Response({'ok': True, 'availability': prof.availability})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
def rate_doctor(request, emp_id: str):
    s = DoctorRatingSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor = doctors.get_doctor(emp_id)
    prof = doctors.rate_doctor(request.user, doctor, s.validated_data['rating'], s.validated_data.get('comment', ''))
    return Response({'ok': True, 'averageRating': float(prof.average_rating), 'totalRatings': prof.total_ratings})
