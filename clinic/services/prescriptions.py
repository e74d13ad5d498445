"""
Prescription issuance, pharmacy hand-off, dispensing and refills.

Status changes follow ``PRESCRIPTION_TRANSITIONS``; each one commits
together with its history event and the notifications it triggers.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Count, F
from django.utils import timezone

from clinic.exceptions import DomainError, NotOwner
from clinic.models import Appointment, Prescription, PrescriptionEvent, PrescriptionItem, User
from clinic.permissions import MANAGEMENT_ROLES
from clinic.services import pharmacy
from clinic.services.audit import log_action
from clinic.services.identifiers import new_prescription_id
from clinic.services.notifications import notify
from clinic.workflow import ensure_transition

logger = logging.getLogger(__name__)

ITEM_FIELDS = {
    'medicineId': 'medicine_id',
    'medicineName': 'medicine_name',
    'strength': 'strength',
    'dosageForm': 'dosage_form',
    'quantity': 'quantity',
    'dosageInstruction': 'dosage_instruction',
    'frequency': 'frequency',
    'duration': 'duration',
    'specialInstructions': 'special_instructions',
    'refillsAllowed': 'refills_allowed',
}


def format_item(i: PrescriptionItem) -> dict:
    out = {key: getattr(i, attr) for key, attr in ITEM_FIELDS.items()}
    out['refillsUsed'] = i.refills_used
    return out


def format_prescription(p: Prescription, *, with_history: bool = False) -> dict:
    data = {
        'id': p.prescription_id,
        'prescriptionId': p.prescription_id,
        'patientId': p.patient.public_id,
        'patientName': p.patient.name,
        'doctorId': p.doctor.public_id,
        'doctorName': p.doctor.name,
        'appointmentId': p.appointment.appointment_id if p.appointment_id else None,
        'medicineList': [format_item(i) for i in p.items.all()],
        'prescriptionDetails': {
            'diagnosis': p.diagnosis,
            'symptoms': p.symptoms,
            'notes': p.notes,
            'urgency': p.urgency,
            'followUpRequired': p.follow_up_required,
            'followUpDate': p.follow_up_date.isoformat() if p.follow_up_date else None,
        },
        'status': p.status,
        'issuedAt': p.issued_at.isoformat(),
        'expiresAt': p.expires_at.isoformat(),
        'isExpired': is_expired(p),
        'pharmacyInfo': {
            'pharmacyId': p.pharmacy_id or None,
            'pharmacist': p.pharmacist.name if p.pharmacist_id else None,
            'sentAt': p.sent_to_pharmacy_at.isoformat() if p.sent_to_pharmacy_at else None,
            'dispensedAt': p.dispensed_at.isoformat() if p.dispensed_at else None,
        },
        'refillEligible': refill_eligible(p),
    }
    if p.status == Prescription.STATUS_CANCELLED:
        data['cancellationReason'] = p.cancellation_reason
    if with_history:
        data['history'] = [{
            'action': e.action, 'fromStatus': e.from_status or None, 'toStatus': e.to_status,
            'performedBy': e.performed_by.public_id if e.performed_by else None,
            'notes': e.notes, 'timestamp': e.timestamp.isoformat(),
        } for e in p.events.select_related('performed_by')]
    return data


def base_queryset():
    return Prescription.objects.select_related('patient', 'doctor', 'pharmacist', 'appointment',
                                               'patient__patient_profile', 'doctor__employee_profile'
                                               ).prefetch_related('items')


def is_expired(p: Prescription, now=None) -> bool:
    return p.status == Prescription.STATUS_EXPIRED or (now or timezone.now()) >= p.expires_at


def refill_eligible(p: Prescription) -> bool:
    if p.status not in (Prescription.STATUS_DISPENSED, Prescription.STATUS_COMPLETED) or is_expired(p):
        return False
    return any(i.refills_used < i.refills_allowed for i in p.items.all())


def can_view(user: User, p: Prescription) -> bool:
    if user.role in MANAGEMENT_ROLES or user.role in (User.ROLE_PHARMACIST, User.ROLE_NURSE):
        return True
    return user.id in (p.patient_id, p.doctor_id)


def get_for_user(user: User, prescription_id: str) -> Prescription:
    p = base_queryset().get(prescription_id=prescription_id)
    if not can_view(user, p):
        raise NotOwner()
    return p


def _record(p: Prescription, *, action: str, from_status: str, actor: Optional[User], notes: str = '',
            data: Optional[dict] = None) -> None:
    PrescriptionEvent.objects.create(prescription=p, action=action, from_status=from_status,
                                     to_status=p.status, performed_by=actor, notes=notes[:500], data=data or {})
    log_action(user=actor, action=f'prescription_{action}', object_type='prescription',
               object_id=p.prescription_id, detail={'from': from_status, 'to': p.status})
    logger.info("Prescription %s %s: %s -> %s", p.prescription_id, action, from_status or '-', p.status)


def _create_items(p: Prescription, items: list[dict]) -> None:
    PrescriptionItem.objects.bulk_create([
        PrescriptionItem(prescription=p, **{attr: item[key] for key, attr in ITEM_FIELDS.items() if key in item})
        for item in items
    ])


@transaction.atomic
def create(doctor: User, patient: User, data: dict) -> Prescription:
    appointment = None
    if data.get('appointmentId'):
        appointment = Appointment.objects.filter(appointment_id=data['appointmentId'],
                                                 patient=patient, doctor=doctor).first()
        if appointment is None:
            raise DomainError('Appointment not found for this doctor and patient')
    now = timezone.now()
    p = Prescription.objects.create(
        prescription_id=new_prescription_id(),
        doctor=doctor,
        patient=patient,
        appointment=appointment,
        diagnosis=data['diagnosis'],
        symptoms=data.get('symptoms', []),
        notes=data.get('notes', ''),
        urgency=data.get('urgency', 'routine'),
        follow_up_required=data.get('followUpRequired', False),
        follow_up_date=data.get('followUpDate'),
        issued_at=now,
        expires_at=now + timedelta(days=settings.PRESCRIPTION_VALID_DAYS),
    )
    _create_items(p, data['medicineList'])
    _record(p, action='created', from_status='', actor=doctor)
    notify(patient, type='prescription_created', title='New prescription',
           message=f"Dr. {doctor.name} issued prescription {p.prescription_id} for {len(data['medicineList'])} medicine(s).",
           data={'prescriptionId': p.prescription_id})
    return p


@transaction.atomic
def update(prescription_id: str, doctor: User, data: dict) -> Prescription:
    """Edit a prescription the issuing doctor still owns in ``pending``."""
    p = Prescription.objects.select_for_update().get(prescription_id=prescription_id)
    if p.doctor_id != doctor.id:
        raise NotOwner('Only the issuing doctor may edit this prescription')
    if p.status != Prescription.STATUS_PENDING:
        raise DomainError('Only pending prescriptions can be edited')
    for key, attr in (('diagnosis', 'diagnosis'), ('symptoms', 'symptoms'), ('notes', 'notes'),
                      ('urgency', 'urgency'), ('followUpRequired', 'follow_up_required'),
                      ('followUpDate', 'follow_up_date')):
        if key in data:
            setattr(p, attr, data[key])
    p.save()
    if 'medicineList' in data:
        p.items.all().delete()
        _create_items(p, data['medicineList'])
    _record(p, action='updated', from_status=p.status, actor=doctor, data={'fields': sorted(data)})
    notify(p.patient, type='prescription_updated', title='Prescription updated',
           message=f"Prescription {p.prescription_id} was updated by Dr. {doctor.name}.",
           data={'prescriptionId': p.prescription_id})
    return p


@transaction.atomic
def change_status(prescription_id: str, actor: User, new_status: str, *, notes: str = '',
                  pharmacy_id: str = '') -> Prescription:
    p = Prescription.objects.select_for_update().get(prescription_id=prescription_id)
    is_pharmacist = actor.role == User.ROLE_PHARMACIST
    if new_status == Prescription.STATUS_CANCELLED:
        if not (is_pharmacist or actor.id == p.doctor_id):
            raise NotOwner('Only the issuing doctor or a pharmacist may cancel')
    elif not is_pharmacist:
        raise NotOwner('Only pharmacists may update prescription status')

    ensure_transition('prescription', p.status, new_status)
    now = timezone.now()
    if new_status == Prescription.STATUS_DISPENSED and is_expired(p, now):
        raise DomainError('Prescription has expired')

    old = p.status
    p.status = new_status
    if new_status == Prescription.STATUS_SENT:
        p.sent_to_pharmacy_at = now
        p.pharmacy_id = pharmacy_id or p.pharmacy_id or settings.DEFAULT_PHARMACY_ID
    elif new_status == Prescription.STATUS_DISPENSED:
        p.dispensed_at = now
        p.pharmacist = actor
        pharmacy.dispense_items(p, actor)
    elif new_status == Prescription.STATUS_COMPLETED:
        p.completed_at = now
    elif new_status == Prescription.STATUS_CANCELLED:
        p.cancelled_at = now
        p.cancellation_reason = notes
    p.save()
    _record(p, action=new_status, from_status=old, actor=actor, notes=notes)

    ref = {'prescriptionId': p.prescription_id, 'status': new_status}
    if new_status == Prescription.STATUS_DISPENSED:
        notify(p.patient, type='prescription_ready', title='Prescription ready',
               message=f"Your prescription {p.prescription_id} has been dispensed.", data=ref, priority='high')
        notify(p.doctor, type='prescription_updated', title='Prescription dispensed',
               message=f"Prescription {p.prescription_id} for {p.patient.name} was dispensed.", data=ref)
    elif new_status == Prescription.STATUS_CANCELLED:
        notify(p.patient, type='prescription_updated', title='Prescription cancelled',
               message=f"Prescription {p.prescription_id} has been cancelled.", data=ref)
    else:
        notify(p.patient, type='prescription_updated', title='Prescription updated',
               message=f"Prescription {p.prescription_id} is now {new_status.replace('_', ' ')}.", data=ref)
    return p


@transaction.atomic
def refill(prescription_id: str, actor: User) -> Prescription:
    if actor.role != User.ROLE_PHARMACIST:
        raise NotOwner('Only pharmacists may refill prescriptions')
    p = Prescription.objects.select_for_update().get(prescription_id=prescription_id)
    if p.status not in (Prescription.STATUS_DISPENSED, Prescription.STATUS_COMPLETED):
        raise DomainError('Only dispensed prescriptions can be refilled')
    if is_expired(p):
        raise DomainError('Prescription has expired')
    updated = p.items.filter(refills_used__lt=F('refills_allowed')).update(refills_used=F('refills_used') + 1)
    if not updated:
        raise DomainError('No refills remaining')
    _record(p, action='refilled', from_status=p.status, actor=actor, data={'items': updated})
    notify(p.patient, type='prescription_ready', title='Refill dispensed',
           message=f"A refill of prescription {p.prescription_id} is ready.",
           data={'prescriptionId': p.prescription_id})
    return p


def expire_overdue(now=None) -> list[str]:
    """Move pending / sent prescriptions past their expiry to ``expired``."""
    now = now or timezone.now()
    expired: list[str] = []
    candidates = Prescription.objects.filter(
        status__in=(Prescription.STATUS_PENDING, Prescription.STATUS_SENT), expires_at__lte=now,
    ).values_list('prescription_id', flat=True)
    for pid in list(candidates):
        with transaction.atomic():
            p = Prescription.objects.select_for_update().get(prescription_id=pid)
            if p.status not in (Prescription.STATUS_PENDING, Prescription.STATUS_SENT):
                continue
            old = p.status
            ensure_transition('prescription', old, Prescription.STATUS_EXPIRED)
            p.status = Prescription.STATUS_EXPIRED
            p.save(update_fields=['status', 'updated_at'])
            _record(p, action='expired', from_status=old, actor=None)
            notify(p.patient, type='prescription_updated', title='Prescription expired',
                   message=f"Prescription {p.prescription_id} has expired.",
                   data={'prescriptionId': p.prescription_id}, priority='low')
        expired.append(pid)
    return expired


def statistics(qs=None) -> dict:
    qs = qs if qs is not None else Prescription.objects.all()
    by_status = {s: 0 for s, _ in Prescription.STATUS_CHOICES}
    for row in qs.values('status').annotate(n=Count('id')):
        by_status[row['status']] = row['n']
    today = timezone.localdate()
    return {
        'total': sum(by_status.values()),
        'byStatus': by_status,
        'issuedToday': qs.filter(issued_at__date=today).count(),
        'awaitingPharmacy': by_status['pending'] + by_status['sent_to_pharmacy'],
    }
