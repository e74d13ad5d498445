"""
Appointment endpoints: discovery (departments, doctors, free slots),
reservation and booking, the Health-Manager approval queue and the
per-appointment workflow actions.
"""
from __future__ import annotations

from rest_framework import exceptions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment, User
from ..permissions import IsDoctorRole, IsHealthCareManager, IsManagementRole, MANAGEMENT_ROLES
from ..serializers.appointment import (
    AppointmentListQuerySerializer, BookAppointmentSerializer, CompleteSerializer, DeclineSerializer,
    PaymentSerializer, ReasonSerializer, RescheduleSerializer, ReserveSlotSerializer, SlotQuerySerializer,
    StatusUpdateSerializer,
)
from ..services import appointments as service
from ..services import availability, doctors

# roles allowed to book on behalf of a patient
BOOKING_STAFF = MANAGEMENT_ROLES | {User.ROLE_STAFF, User.ROLE_NURSE}


def _ok(appt: Appointment, *, message: str = '', code: int = 200) -> Response:
    appt = service.base_queryset().get(pk=appt.pk)
    body = {'ok': True, 'data': service.format_appointment(appt, with_history=True)}
    if message:
        body['message'] = message
    return Response(body, status=code)


def _patient_for(request, patient_id: str | None) -> User:
    user: User = request.user
    if user.is_patient:
        if patient_id and patient_id != user.public_id:
            raise exceptions.PermissionDenied('Patients can only book for themselves')
        return user
    if user.role not in BOOKING_STAFF:
        raise exceptions.PermissionDenied('Your role cannot book appointments')
    if not patient_id:
        raise exceptions.ValidationError({'patientId': 'This field is required.'})
    return User.objects.get(role=User.ROLE_PATIENT, patient_profile__patient_id=patient_id)


def _list(qs, request) -> Response:
    q = AppointmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    if vd.get('doctorId'):
        qs = qs.filter(doctor__employee_profile__emp_id=vd['doctorId'])
    qs = service.filter_queryset(qs, status=vd.get('status'), day=vd.get('date'), upcoming=vd['upcoming'])
    return Response({'ok': True, 'data': [service.format_appointment(a) for a in qs[:200]]})


# ---------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def departments(request):
    return Response({'ok': True, 'data': doctors.list_departments()})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def doctors_by_department(request, department: str):
    return Response({'ok': True, 'data': doctors.list_doctors(department, q=request.query_params.get('q'))})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def available_slots(request, doctor_id: str):
    q = SlotQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    doctor = doctors.get_doctor(doctor_id)
    day = q.validated_data['date']
    patient = request.user if request.user.is_patient else None
    return Response({
        'ok': True,
        'doctorId': doctor_id,
        'date': day.isoformat(),
        'slotMinutes': availability.slot_length().seconds // 60,
        'data': availability.available_slots(doctor, day, patient=patient),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def reserve_slot(request):
    s = ReserveSlotSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = _patient_for(request, s.validated_data.get('patientId'))
    doctor = doctors.get_doctor(s.validated_data['doctorId'])
    hold = service.reserve_slot(patient, doctor, s.validated_data['dateTime'])
    return Response({
        'ok': True,
        'message': 'Slot reserved',
        'reservationToken': hold.token,
        'doctorId': s.validated_data['doctorId'],
        'dateTime': hold.date_time.isoformat(),
        'expiresAt': hold.expires_at.isoformat(),
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def book(request):
    s = BookAppointmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = _patient_for(request, s.validated_data.get('patientId'))
    doctor = doctors.get_doctor(s.validated_data['doctorId'])
    appt = service.book(booker=request.user, patient=patient, doctor=doctor, data=s.validated_data)
    return _ok(appt, message='Appointment booked and awaiting approval', code=status.HTTP_201_CREATED)


# ---------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_appointments(request, patient_id: str):
    user: User = request.user
    if user.is_patient and user.public_id != patient_id:
        raise exceptions.PermissionDenied('You can only view your own appointments')
    qs = service.base_queryset().filter(patient__patient_profile__patient_id=patient_id)
    if user.role == User.ROLE_DOCTOR:
        qs = qs.filter(doctor=user)
    elif user.role == User.ROLE_PHARMACIST:
        raise exceptions.PermissionDenied()
    return _list(qs, request)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def doctor_appointments(request, doctor_id: str):
    user: User = request.user
    if user.role == User.ROLE_DOCTOR and user.public_id != doctor_id:
        raise exceptions.PermissionDenied('You can only view your own schedule')
    if user.is_patient or user.role == User.ROLE_PHARMACIST:
        raise exceptions.PermissionDenied()
    return _list(service.base_queryset().filter(doctor__employee_profile__emp_id=doctor_id), request)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsHealthCareManager])
def pending_approval(request):
    qs = service.base_queryset().filter(status=Appointment.STATUS_PENDING_APPROVAL).order_by('date_time')
    return Response({'ok': True, 'data': [service.format_appointment(a) for a in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsHealthCareManager])
def manager_all(request):
    return _list(service.base_queryset(), request)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManagementRole])
def appointment_stats(request):
    return Response({'ok': True, 'data': service.statistics()})


# ---------------------------------------------------------------------
# Single appointment
# ---------------------------------------------------------------------
@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, appointment_id: str):
    if request.method == 'DELETE':
        s = ReasonSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        appt = service.cancel(appointment_id, request.user, s.validated_data['reason'])
        return _ok(appt, message='Appointment cancelled')
    appt = service.get_for_user(request.user, appointment_id)
    return Response({'ok': True, 'data': service.format_appointment(appt, with_history=True)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def payment(request, appointment_id: str):
    s = PaymentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = service.pay(appointment_id, request.user, method=s.validated_data['paymentMethod'],
                       amount=s.validated_data['amount'])
    return _ok(appt, message='Payment recorded')


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_status(request, appointment_id: str):
    s = StatusUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    appt = service.update_status(appointment_id, request.user, vd['status'], vd)
    return _ok(appt, message=f"Appointment {appt.status.replace('_', ' ')}")


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsHealthCareManager])
def approve(request, appointment_id: str):
    s = ReasonSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = service.approve(appointment_id, request.user, s.validated_data['notes'] or s.validated_data['reason'])
    return _ok(appt, message='Appointment approved')


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsHealthCareManager])
def decline(request, appointment_id: str):
    s = DeclineSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = service.decline(appointment_id, request.user, s.validated_data['reason'])
    return _ok(appt, message='Appointment declined')


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def confirm(request, appointment_id: str):
    s = ReasonSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return _ok(service.confirm(appointment_id, request.user, s.validated_data['notes']),
               message='Appointment confirmed')


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def reschedule(request, appointment_id: str):
    s = RescheduleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = service.reschedule(appointment_id, request.user, s.validated_data['dateTime'], s.validated_data['reason'])
    return _ok(appt, message='Appointment rescheduled and awaiting approval')


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def start(request, appointment_id: str):
    return _ok(service.start(appointment_id, request.user), message='Appointment started')


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def complete(request, appointment_id: str):
    s = CompleteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return _ok(service.complete(appointment_id, request.user, s.validated_data), message='Appointment completed')


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def no_show(request, appointment_id: str):
    s = ReasonSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return _ok(service.mark_no_show(appointment_id, request.user, s.validated_data['notes']),
               message='Appointment marked as no-show')
