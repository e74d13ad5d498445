"""
Doctor availability and slot arithmetic.

Slots are ``SLOT_MINUTES`` long and generated from the doctor's weekly
availability windows in the server time zone.  A slot is free when it
lies in the future, overlaps no active appointment and is not held by
another patient's unexpired reservation.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

from clinic.models import Appointment, DoctorProfile, SlotReservation, User

# longest appointment that can reach into a later slot
MAX_DURATION = timedelta(minutes=120)


def slot_length() -> timedelta:
    return timedelta(minutes=settings.SLOT_MINUTES)


def windows_for(doctor: DoctorProfile, day: date) -> list[tuple[datetime, datetime]]:
    tz = timezone.get_current_timezone()
    out = []
    for w in doctor.availability.get(DoctorProfile.WEEKDAYS[day.weekday()], []):
        start = timezone.make_aware(datetime.combine(day, time.fromisoformat(w['start'])), tz)
        end = timezone.make_aware(datetime.combine(day, time.fromisoformat(w['end'])), tz)
        out.append((start, end))
    return out


def within_availability(doctor: DoctorProfile, start: datetime, duration: int) -> bool:
    local = timezone.localtime(start)
    end = start + timedelta(minutes=duration)
    return any(w_start <= start and end <= w_end for w_start, w_end in windows_for(doctor, local.date()))


def _overlaps(a_start: datetime, a_minutes: int, b_start: datetime, b_minutes: int) -> bool:
    return a_start < b_start + timedelta(minutes=b_minutes) and b_start < a_start + timedelta(minutes=a_minutes)


def conflicting_appointment(doctor: User, start: datetime, duration: int, *,
                            exclude_id: Optional[int] = None) -> Optional[Appointment]:
    qs = Appointment.objects.filter(
        doctor=doctor,
        status__in=Appointment.ACTIVE_STATUSES,
        date_time__gt=start - MAX_DURATION,
        date_time__lt=start + timedelta(minutes=duration),
    )
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    for appt in qs:
        if _overlaps(appt.date_time, appt.duration, start, duration):
            return appt
    return None


def patient_conflict(patient: User, start: datetime, duration: int, *,
                     exclude_id: Optional[int] = None) -> Optional[Appointment]:
    qs = Appointment.objects.filter(
        patient=patient,
        status__in=Appointment.ACTIVE_STATUSES,
        date_time__gt=start - MAX_DURATION,
        date_time__lt=start + timedelta(minutes=duration),
    )
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    return next((a for a in qs if _overlaps(a.date_time, a.duration, start, duration)), None)


def held_by_other(doctor: User, start: datetime, duration: int, patient: Optional[User], now=None) -> bool:
    now = now or timezone.now()
    holds = SlotReservation.objects.filter(
        doctor=doctor, expires_at__gt=now,
        date_time__gt=start - slot_length(),
        date_time__lt=start + timedelta(minutes=duration),
    )
    if patient is not None:
        holds = holds.exclude(patient=patient)
    return holds.exists()


def is_free(doctor: User, start: datetime, duration: int, *, patient: Optional[User] = None,
            exclude_id: Optional[int] = None) -> bool:
    if conflicting_appointment(doctor, start, duration, exclude_id=exclude_id):
        return False
    return not held_by_other(doctor, start, duration, patient)


def daily_load(doctor: User, day: date, *, exclude_id: Optional[int] = None) -> int:
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(day, time.min), tz)
    qs = Appointment.objects.filter(
        doctor=doctor, status__in=Appointment.ACTIVE_STATUSES,
        date_time__gte=start, date_time__lt=start + timedelta(days=1),
    )
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    return qs.count()


def available_slots(doctor: User, day: date, *, patient: Optional[User] = None, now=None) -> list[dict]:
    now = now or timezone.now()
    prof = doctor.doctor_profile
    step = slot_length()
    minutes = settings.SLOT_MINUTES
    slots = []
    for w_start, w_end in windows_for(prof, day):
        t = w_start
        while t + step <= w_end:
            if t > now and is_free(doctor, t, minutes, patient=patient):
                slots.append({
                    'dateTime': t.isoformat(),
                    'endTime': (t + step).isoformat(),
                    'time': timezone.localtime(t).strftime('%H:%M'),
                })
            t += step
    return slots
