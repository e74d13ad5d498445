"""
Appointment booking and the approval workflow.

Every operation that changes an appointment runs in one database
transaction holding a row lock on the appointment: the status check,
the new field values, the history event, the notifications and the
audit entry are committed together or not at all.
"""
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from clinic.exceptions import DomainError, NotOwner, SlotUnavailable
from clinic.models import Appointment, AppointmentEvent, Prescription, SlotReservation, User
from clinic.permissions import MANAGEMENT_ROLES
from clinic.services import availability
from clinic.services.audit import log_action
from clinic.services.identifiers import new_appointment_id, new_reference
from clinic.services.notifications import active_managers, notify, notify_many
from clinic.workflow import ensure_transition

logger = logging.getLogger(__name__)

# roles that may read any appointment
OVERSIGHT_ROLES = MANAGEMENT_ROLES | {User.ROLE_NURSE, User.ROLE_STAFF}


def _when(dt: datetime) -> str:
    return timezone.localtime(dt).strftime('%Y-%m-%d %H:%M')


def format_appointment(a: Appointment, *, with_history: bool = False) -> dict:
    data = {
        'id': a.appointment_id,
        'appointmentId': a.appointment_id,
        'patientId': a.patient.public_id,
        'patientName': a.patient.name,
        'doctorId': a.doctor.public_id,
        'doctorName': a.doctor.name,
        'dateTime': a.date_time.isoformat(),
        'duration': a.duration,
        'department': a.department,
        'reasonForVisit': a.reason_for_visit,
        'appointmentType': a.appointment_type,
        'priority': a.priority,
        'status': a.status,
        'consultationFee': str(a.consultation_fee),
        'paymentStatus': a.payment_status,
        'paymentMethod': a.payment_method or None,
        'approval': {
            'reviewedBy': a.reviewed_by.name if a.reviewed_by else None,
            'reviewedAt': a.reviewed_at.isoformat() if a.reviewed_at else None,
            'notes': a.approval_notes,
            'declineReason': a.decline_reason,
        },
        'rescheduleCount': a.reschedule_count,
        'createdAt': a.created_at.isoformat() if a.created_at else None,
        'updatedAt': a.updated_at.isoformat() if a.updated_at else None,
    }
    if a.status == Appointment.STATUS_CANCELLED:
        data['cancellation'] = {
            'cancelledAt': a.cancelled_at.isoformat() if a.cancelled_at else None,
            'reason': a.cancellation_reason,
            'refundEligible': a.refund_eligible,
            'refundAmount': str(a.refund_amount),
        }
    if a.status == Appointment.STATUS_COMPLETED:
        data['completion'] = {
            'diagnosis': a.diagnosis,
            'treatmentPlan': a.treatment_plan,
            'followUpRequired': a.follow_up_required,
            'followUpDate': a.follow_up_date.isoformat() if a.follow_up_date else None,
            'prescriptionId': a.prescription.prescription_id if a.prescription_id else None,
            'completedAt': a.completed_at.isoformat() if a.completed_at else None,
        }
    if with_history:
        data['history'] = [{
            'action': e.action,
            'fromStatus': e.from_status or None,
            'toStatus': e.to_status,
            'performedBy': e.performed_by.public_id if e.performed_by else None,
            'notes': e.notes,
            'data': e.data,
            'timestamp': e.timestamp.isoformat(),
        } for e in a.events.select_related('performed_by')]
    return data


def base_queryset():
    return Appointment.objects.select_related('patient', 'doctor', 'reviewed_by', 'prescription',
                                              'patient__patient_profile', 'doctor__employee_profile')


def can_view(user: User, appt: Appointment) -> bool:
    if user.role in OVERSIGHT_ROLES:
        return True
    return user.id in (appt.patient_id, appt.doctor_id)


def get_for_user(user: User, appointment_id: str) -> Appointment:
    appt = base_queryset().get(appointment_id=appointment_id)
    if not can_view(user, appt):
        raise NotOwner()
    return appt


def _lock(appointment_id: str) -> Appointment:
    return Appointment.objects.select_for_update().get(appointment_id=appointment_id)


def _record(appt: Appointment, *, action: str, from_status: str, actor: Optional[User],
            notes: str = '', data: Optional[dict] = None) -> AppointmentEvent:
    event = AppointmentEvent.objects.create(
        appointment=appt, action=action, from_status=from_status, to_status=appt.status,
        performed_by=actor, notes=notes[:500], data=data or {},
    )
    log_action(user=actor, action=f'appointment_{action}', object_type='appointment',
               object_id=appt.appointment_id, detail={'from': from_status, 'to': appt.status})
    logger.info("Appointment %s %s: %s -> %s", appt.appointment_id, action, from_status or '-', appt.status)
    return event


def _move(appt: Appointment, new_status: str, *, action: str, actor: Optional[User],
          notes: str = '', data: Optional[dict] = None, **fields) -> Appointment:
    ensure_transition('appointment', appt.status, new_status)
    old = appt.status
    appt.status = new_status
    for k, v in fields.items():
        setattr(appt, k, v)
    appt.save()
    _record(appt, action=action, from_status=old, actor=actor, notes=notes, data=data)
    return appt


def _check_slot(doctor: User, patient: User, start: datetime, duration: int, *,
                exclude_id: Optional[int] = None) -> None:
    if start <= timezone.now():
        raise DomainError('Appointment time must be in the future')
    prof = getattr(doctor, 'doctor_profile', None)
    if prof is None:
        raise DomainError('Selected user is not a doctor')
    if not availability.within_availability(prof, start, duration):
        raise SlotUnavailable('Doctor is not available at the requested time')
    if not availability.is_free(doctor, start, duration, patient=patient, exclude_id=exclude_id):
        raise SlotUnavailable()
    if availability.patient_conflict(patient, start, duration, exclude_id=exclude_id):
        raise DomainError('Patient already has an appointment at that time')
    if availability.daily_load(doctor, timezone.localtime(start).date(),
                              exclude_id=exclude_id) >= prof.max_patients_per_day:
        raise SlotUnavailable('Doctor is fully booked on that day')


# ---------------------------------------------------------------------
# Reservation & booking
# ---------------------------------------------------------------------
@transaction.atomic
def reserve_slot(patient: User, doctor: User, start: datetime) -> SlotReservation:
    User.objects.select_for_update().get(pk=doctor.pk)
    _check_slot(doctor, patient, start, settings.SLOT_MINUTES)
    # one hold per patient at a time
    SlotReservation.objects.filter(patient=patient).delete()
    hold = SlotReservation.objects.create(
        token=secrets.token_urlsafe(24),
        doctor=doctor, patient=patient, date_time=start,
        expires_at=timezone.now() + timedelta(minutes=settings.SLOT_RESERVATION_MINUTES),
    )
    logger.info("Slot %s with %s held for %s until %s", start.isoformat(), doctor.public_id,
                patient.public_id, hold.expires_at.isoformat())
    return hold


@transaction.atomic
def book(*, booker: User, patient: User, doctor: User, data: dict) -> Appointment:
    start = data['dateTime']
    duration = data.get('duration', 30)
    # serialise bookings per doctor
    User.objects.select_for_update().get(pk=doctor.pk)
    _check_slot(doctor, patient, start, duration)
    prof = doctor.doctor_profile
    try:
        with transaction.atomic():
            appt = Appointment.objects.create(
                appointment_id=new_appointment_id(),
                patient=patient,
                doctor=doctor,
                date_time=start,
                duration=duration,
                department=data['department'],
                reason_for_visit=data['reasonForVisit'],
                appointment_type=data.get('appointmentType', 'consultation'),
                priority=data.get('priority', 'routine'),
                consultation_fee=prof.consultation_fee,
            )
    except IntegrityError:
        raise SlotUnavailable()
    SlotReservation.objects.filter(patient=patient, doctor=doctor).delete()
    _record(appt, action='booked', from_status='', actor=booker, notes=data['reasonForVisit'])

    when = _when(start)
    payload = {'appointmentId': appt.appointment_id, 'dateTime': start.isoformat()}
    notify(patient, type='appointment_booked', title='Appointment requested',
           message=f"Your appointment with Dr. {doctor.name} on {when} is awaiting approval.", data=payload)
    notify(doctor, type='appointment_booked', title='New appointment request',
           message=f"{patient.name} requested an appointment on {when}.", data=payload)
    notify_many(active_managers(), type='appointment_booked', title='Appointment awaiting approval',
                message=f"{patient.name} booked Dr. {doctor.name} on {when}.", data=payload, priority='high')
    return appt


# ---------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------
def _require_manager(actor: User) -> None:
    if actor.role != User.ROLE_MANAGER:
        raise NotOwner('Only a health care manager may review appointments')


def _require_doctor_of(actor: User, appt: Appointment) -> None:
    if actor.id != appt.doctor_id:
        raise NotOwner('Only the assigned doctor may do this')


def _notify_both(appt: Appointment, *, type: str, title: str, patient_msg: str, doctor_msg: str,
                 extra: Optional[dict] = None) -> None:
    payload = {'appointmentId': appt.appointment_id, 'status': appt.status, **(extra or {})}
    notify(appt.patient, type=type, title=title, message=patient_msg, data=payload)
    notify(appt.doctor, type=type, title=title, message=doctor_msg, data=payload)


@transaction.atomic
def approve(appointment_id: str, actor: User, notes: str = '') -> Appointment:
    _require_manager(actor)
    appt = _lock(appointment_id)
    _move(appt, Appointment.STATUS_APPROVED, action='approved', actor=actor, notes=notes,
          reviewed_by=actor, reviewed_at=timezone.now(), approval_notes=notes)
    when = _when(appt.date_time)
    _notify_both(appt, type='appointment_approved', title='Appointment approved',
                 patient_msg=f"Your appointment with Dr. {appt.doctor.name} on {when} has been approved.",
                 doctor_msg=f"Your appointment with {appt.patient.name} on {when} has been approved.")
    return appt


@transaction.atomic
def decline(appointment_id: str, actor: User, reason: str) -> Appointment:
    _require_manager(actor)
    appt = _lock(appointment_id)
    _move(appt, Appointment.STATUS_DECLINED, action='declined', actor=actor, notes=reason,
          reviewed_by=actor, reviewed_at=timezone.now(), decline_reason=reason)
    when = _when(appt.date_time)
    _notify_both(appt, type='appointment_declined', title='Appointment declined',
                 patient_msg=f"Your appointment with Dr. {appt.doctor.name} on {when} has been declined. Reason: {reason}",
                 doctor_msg=f"The appointment with {appt.patient.name} on {when} has been declined.",
                 extra={'reason': reason})
    return appt


@transaction.atomic
def pay(appointment_id: str, actor: User, *, method: str, amount: Decimal) -> Appointment:
    appt = _lock(appointment_id)
    if actor.id != appt.patient_id and actor.role not in MANAGEMENT_ROLES:
        raise NotOwner()
    if appt.payment_status != 'pending':
        raise DomainError('Appointment is already paid')
    if amount < appt.consultation_fee:
        raise DomainError(f"Amount must cover the consultation fee of {appt.consultation_fee}")
    reference = new_reference('TXN')
    _move(appt, Appointment.STATUS_CONFIRMED, action='paid', actor=actor,
          data={'method': method, 'amount': str(amount), 'reference': reference},
          payment_status='paid', payment_method=method, payment_reference=reference, paid_at=timezone.now())
    when = _when(appt.date_time)
    _notify_both(appt, type='appointment_confirmed', title='Appointment confirmed',
                 patient_msg=f"Payment received. Your appointment with Dr. {appt.doctor.name} on {when} is confirmed.",
                 doctor_msg=f"Your appointment with {appt.patient.name} on {when} is confirmed.",
                 extra={'paymentReference': reference})
    return appt


@transaction.atomic
def confirm(appointment_id: str, actor: User, notes: str = '') -> Appointment:
    appt = _lock(appointment_id)
    if actor.role not in MANAGEMENT_ROLES and actor.id != appt.doctor_id:
        raise NotOwner()
    _move(appt, Appointment.STATUS_CONFIRMED, action='confirmed', actor=actor, notes=notes)
    when = _when(appt.date_time)
    _notify_both(appt, type='appointment_confirmed', title='Appointment confirmed',
                 patient_msg=f"Your appointment with Dr. {appt.doctor.name} on {when} is confirmed.",
                 doctor_msg=f"Your appointment with {appt.patient.name} on {when} is confirmed.")
    return appt


@transaction.atomic
def start(appointment_id: str, actor: User) -> Appointment:
    appt = _lock(appointment_id)
    _require_doctor_of(actor, appt)
    return _move(appt, Appointment.STATUS_IN_PROGRESS, action='started', actor=actor, started_at=timezone.now())


@transaction.atomic
def complete(appointment_id: str, actor: User, data: dict) -> Appointment:
    appt = _lock(appointment_id)
    _require_doctor_of(actor, appt)
    prescription = None
    if data.get('prescriptionId'):
        prescription = Prescription.objects.filter(prescription_id=data['prescriptionId'],
                                                   patient_id=appt.patient_id).first()
        if prescription is None:
            raise DomainError('Prescription not found for this patient')
    _move(appt, Appointment.STATUS_COMPLETED, action='completed', actor=actor,
          data={'followUpRequired': data.get('followUpRequired', False)},
          diagnosis=data.get('diagnosis', ''), treatment_plan=data.get('treatmentPlan', ''),
          follow_up_required=data.get('followUpRequired', False), follow_up_date=data.get('followUpDate'),
          prescription=prescription, completed_at=timezone.now())
    notify(appt.patient, type='appointment_completed', title='Appointment completed',
           message=f"Your appointment with Dr. {appt.doctor.name} has been completed.",
           data={'appointmentId': appt.appointment_id})
    return appt


@transaction.atomic
def mark_no_show(appointment_id: str, actor: User, notes: str = '') -> Appointment:
    appt = _lock(appointment_id)
    if actor.role not in MANAGEMENT_ROLES and actor.id != appt.doctor_id:
        raise NotOwner()
    _move(appt, Appointment.STATUS_NO_SHOW, action='no_show', actor=actor, notes=notes)
    notify(appt.patient, type='appointment_no_show', title='Missed appointment',
           message=f"You were marked as not attending your appointment on {_when(appt.date_time)}.",
           data={'appointmentId': appt.appointment_id})
    return appt


@transaction.atomic
def cancel(appointment_id: str, actor: User, reason: str = '') -> Appointment:
    appt = _lock(appointment_id)
    if actor.role not in MANAGEMENT_ROLES and actor.id not in (appt.patient_id, appt.doctor_id):
        raise NotOwner()
    now = timezone.now()
    eligible = appt.date_time - now > timedelta(hours=settings.REFUND_WINDOW_HOURS)
    fields: dict = {
        'cancelled_by': actor, 'cancelled_at': now, 'cancellation_reason': reason,
        'refund_eligible': eligible,
    }
    if appt.payment_status == 'paid' and eligible:
        fields.update(payment_status='refunded', refund_amount=appt.consultation_fee)
    _move(appt, Appointment.STATUS_CANCELLED, action='cancelled', actor=actor, notes=reason,
          data={'refundEligible': eligible}, **fields)
    when = _when(appt.date_time)
    _notify_both(appt, type='appointment_cancelled', title='Appointment cancelled',
                 patient_msg=f"Your appointment with Dr. {appt.doctor.name} on {when} has been cancelled.",
                 doctor_msg=f"The appointment with {appt.patient.name} on {when} has been cancelled.",
                 extra={'refundEligible': eligible})
    return appt


@transaction.atomic
def reschedule(appointment_id: str, actor: User, new_start: datetime, reason: str = '') -> Appointment:
    appt = _lock(appointment_id)
    if actor.role not in MANAGEMENT_ROLES and actor.id != appt.patient_id:
        raise NotOwner()
    if appt.reschedule_count >= settings.MAX_RESCHEDULES:
        raise DomainError(f"An appointment can be rescheduled at most {settings.MAX_RESCHEDULES} times")
    ensure_transition('appointment', appt.status, Appointment.STATUS_PENDING_APPROVAL)
    User.objects.select_for_update().get(pk=appt.doctor_id)
    _check_slot(appt.doctor, appt.patient, new_start, appt.duration, exclude_id=appt.pk)
    old_time = appt.date_time
    try:
        with transaction.atomic():
            _move(appt, Appointment.STATUS_PENDING_APPROVAL, action='rescheduled', actor=actor, notes=reason,
                  data={'from': old_time.isoformat(), 'to': new_start.isoformat()},
                  date_time=new_start, reschedule_count=appt.reschedule_count + 1,
                  original_date_time=appt.original_date_time or old_time,
                  reviewed_by=None, reviewed_at=None)
    except IntegrityError:
        raise SlotUnavailable()
    when = _when(new_start)
    _notify_both(appt, type='appointment_rescheduled', title='Appointment rescheduled',
                 patient_msg=f"Your appointment with Dr. {appt.doctor.name} moved to {when} and awaits approval.",
                 doctor_msg=f"The appointment with {appt.patient.name} moved to {when}.")
    notify_many(active_managers(), type='appointment_rescheduled', title='Rescheduled appointment awaiting approval',
                message=f"{appt.patient.name} rescheduled to {when}.", data={'appointmentId': appt.appointment_id})
    return appt


def update_status(appointment_id: str, actor: User, status: str, payload: dict) -> Appointment:
    """Route a generic status change to the matching workflow step."""
    reason = payload.get('reason') or payload.get('notes') or ''
    if status == Appointment.STATUS_APPROVED:
        return approve(appointment_id, actor, reason)
    if status == Appointment.STATUS_DECLINED:
        if not reason:
            raise DomainError('A reason is required to decline')
        return decline(appointment_id, actor, reason)
    if status == Appointment.STATUS_CONFIRMED:
        return confirm(appointment_id, actor, reason)
    if status == Appointment.STATUS_IN_PROGRESS:
        return start(appointment_id, actor)
    if status == Appointment.STATUS_COMPLETED:
        return complete(appointment_id, actor, payload)
    if status == Appointment.STATUS_NO_SHOW:
        return mark_no_show(appointment_id, actor, reason)
    if status == Appointment.STATUS_CANCELLED:
        return cancel(appointment_id, actor, reason)
    raise DomainError(f"Status '{status}' cannot be set directly")


# lead time -> (event action, patient title, phrase); tightest window first
REMINDERS = (
    (timedelta(hours=2), 'reminder_2h', 'Appointment Reminder - In 2 Hours', 'in 2 hours'),
    (timedelta(hours=24), 'reminder_24h', 'Appointment Reminder - Tomorrow', 'within the next day'),
)


def send_reminders(now: Optional[datetime] = None) -> list[tuple[str, str]]:
    """Remind both parties of approved or confirmed appointments coming up.

    Each reminder kind is sent at most once per appointment; the history
    event doubles as the marker.  An appointment already inside the
    2 hour window gets only that reminder.
    """
    now = now or timezone.now()
    sent = []
    due = Appointment.objects.filter(
        status__in=(Appointment.STATUS_APPROVED, Appointment.STATUS_CONFIRMED),
        date_time__gt=now, date_time__lte=now + REMINDERS[-1][0],
    ).values_list('appointment_id', flat=True)
    for appointment_id in due:
        with transaction.atomic():
            appt = _lock(appointment_id)
            if appt.status not in (Appointment.STATUS_APPROVED, Appointment.STATUS_CONFIRMED):
                continue
            done = set(appt.events.filter(action__startswith='reminder_').values_list('action', flat=True))
            for lead, action, title, phrase in REMINDERS:
                if appt.date_time - now > lead:
                    continue
                if action not in done:
                    when = _when(appt.date_time)
                    payload = {'appointmentId': appt.appointment_id, 'appointmentDate': appt.date_time.isoformat(),
                               'reminderType': action.split('_', 1)[1]}
                    notify(appt.patient, type='appointment_reminder', title=title, priority='high', data=payload,
                           message=f"You have an appointment with {appt.doctor.name} {phrase} ({when}).")
                    notify(appt.doctor, type='appointment_reminder', title=title, data=payload,
                           message=f"You have an appointment with {appt.patient.name} {phrase} ({when}).")
                    _record(appt, action=action, from_status=appt.status, actor=None)
                    sent.append((appt.appointment_id, action))
                break
    return sent


# ---------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------
def filter_queryset(qs, *, status: Optional[str] = None, day=None, upcoming: bool = False):
    if status:
        qs = qs.filter(status__in=status.split(','))
    if day:
        local_start = timezone.make_aware(datetime.combine(day, datetime.min.time()))
        qs = qs.filter(date_time__gte=local_start, date_time__lt=local_start + timedelta(days=1))
    if upcoming:
        qs = qs.filter(date_time__gte=timezone.now()).order_by('date_time')
    return qs


def statistics(qs=None) -> dict:
    qs = qs if qs is not None else Appointment.objects.all()
    by_status = {s: 0 for s, _ in Appointment.STATUS_CHOICES}
    for row in qs.values('status').annotate(n=Count('id')):
        by_status[row['status']] = row['n']
    now = timezone.now()
    today = timezone.localdate()
    agg = qs.aggregate(
        revenue=Sum('consultation_fee', filter=Q(payment_status='paid')),
        refunded=Sum('refund_amount', filter=Q(payment_status='refunded')),
    )
    return {
        'total': sum(by_status.values()),
        'byStatus': by_status,
        'today': filter_queryset(qs, day=today).count(),
        'upcoming': qs.filter(date_time__gte=now, status__in=Appointment.ACTIVE_STATUSES).count(),
        'revenue': str(agg['revenue'] or Decimal('0')),
        'refunded': str(agg['refunded'] or Decimal('0')),
    }
