"""Per-role dashboard figures and the patient activity feed."""
from __future__ import annotations

from django.db.models import Count
from django.utils import timezone

from clinic.models import (
    Appointment, AppointmentEvent, EmployeeProfile, Notification, Prescription, PrescriptionEvent,
    SupportTicket, TicketEvent, User,
)
from clinic.services import appointments as appointment_service
from clinic.services import pharmacy as pharmacy_service
from clinic.services import prescriptions as prescription_service
from clinic.services import tickets as ticket_service

OPEN_TICKET_STATUSES = (SupportTicket.STATUS_OPEN, SupportTicket.STATUS_IN_PROGRESS,
                        SupportTicket.STATUS_ASSIGNED, SupportTicket.STATUS_RESOLVED)


def _unread(user: User) -> int:
    return Notification.objects.filter(recipient=user, status='unread').count()


def patient_stats(user: User) -> dict:
    now = timezone.now()
    appts = Appointment.objects.filter(patient=user)
    upcoming = (appointment_service.base_queryset()
                .filter(patient=user, date_time__gte=now, status__in=Appointment.ACTIVE_STATUSES)
                .order_by('date_time').first())
    return {
        'totalAppointments': appts.count(),
        'upcomingAppointments': appts.filter(date_time__gte=now, status__in=Appointment.ACTIVE_STATUSES).count(),
        'completedAppointments': appts.filter(status=Appointment.STATUS_COMPLETED).count(),
        'pendingApproval': appts.filter(status=Appointment.STATUS_PENDING_APPROVAL).count(),
        'activePrescriptions': Prescription.objects.filter(
            patient=user, expires_at__gt=now,
            status__in=(Prescription.STATUS_PENDING, Prescription.STATUS_SENT, Prescription.STATUS_DISPENSED),
        ).count(),
        'openTickets': SupportTicket.objects.filter(patient=user, status__in=OPEN_TICKET_STATUSES).count(),
        'unreadNotifications': _unread(user),
        'nextAppointment': appointment_service.format_appointment(upcoming) if upcoming else None,
    }


def recent_activity(user: User, limit: int = 10) -> list[dict]:
    """Merge the latest appointment, prescription and ticket events for a patient."""
    items: list[dict] = []
    for e in AppointmentEvent.objects.filter(appointment__patient=user) \
            .select_related('appointment').order_by('-timestamp')[:limit]:
        items.append({'kind': 'appointment', 'refId': e.appointment.appointment_id, 'action': e.action,
                      'status': e.to_status, 'timestamp': e.timestamp})
    for e in PrescriptionEvent.objects.filter(prescription__patient=user) \
            .select_related('prescription').order_by('-timestamp')[:limit]:
        items.append({'kind': 'prescription', 'refId': e.prescription.prescription_id, 'action': e.action,
                      'status': e.to_status, 'timestamp': e.timestamp})
    for e in TicketEvent.objects.filter(ticket__patient=user).select_related('ticket').order_by('-timestamp')[:limit]:
        items.append({'kind': 'ticket', 'refId': e.ticket.ticket_id, 'action': e.action,
                      'status': e.to_status, 'timestamp': e.timestamp})
    items.sort(key=lambda x: x['timestamp'], reverse=True)
    return [{**i, 'timestamp': i['timestamp'].isoformat()} for i in items[:limit]]


def employee_stats(user: User) -> dict:
    today = timezone.localdate()
    data: dict = {'role': user.role, 'unreadNotifications': _unread(user)}
    if user.role == User.ROLE_DOCTOR:
        mine = Appointment.objects.filter(doctor=user)
        data.update({
            'todayAppointments': appointment_service.filter_queryset(mine, day=today)
            .exclude(status__in=(Appointment.STATUS_CANCELLED, Appointment.STATUS_DECLINED)).count(),
            'upcomingAppointments': mine.filter(date_time__gte=timezone.now(),
                                                status__in=Appointment.ACTIVE_STATUSES).count(),
            'completedAppointments': mine.filter(status=Appointment.STATUS_COMPLETED).count(),
            'prescriptionsIssued': Prescription.objects.filter(doctor=user).count(),
            'averageRating': float(user.doctor_profile.average_rating) if hasattr(user, 'doctor_profile') else None,
        })
    elif user.role == User.ROLE_PHARMACIST:
        data['prescriptions'] = prescription_service.statistics()
        data['dispensedByMe'] = Prescription.objects.filter(pharmacist=user).count()
        stock = pharmacy_service.statistics()
        data['lowStockMedicines'] = stock['lowStockCount']
        data['totalMedicines'] = stock['totalMedicines']
    elif user.role == User.ROLE_MANAGER:
        data.update({
            'pendingApprovals': Appointment.objects.filter(status=Appointment.STATUS_PENDING_APPROVAL).count(),
            'appointments': appointment_service.statistics(),
            'tickets': ticket_service.statistics(),
            'activeStaff': EmployeeProfile.objects.filter(status=EmployeeProfile.STATUS_ACTIVE).count(),
        })
    elif user.role == User.ROLE_ADMIN:
        data.update({
            'usersByRole': {r['role']: r['n'] for r in User.objects.values('role').annotate(n=Count('id'))},
            'staffByStatus': {r['status']: r['n'] for r in EmployeeProfile.objects.values('status').annotate(n=Count('id'))},
            'appointments': appointment_service.statistics(),
        })
    else:
        data.update({
            'todayAppointments': appointment_service.filter_queryset(Appointment.objects.all(), day=today).count(),
            'assignedTickets': SupportTicket.objects.filter(assigned_staff=user,
                                                            status__in=OPEN_TICKET_STATUSES).count(),
        })
    return data
