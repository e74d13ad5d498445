"""
Support tickets: creation, assignment, the status machine, the
communication log, escalation and closing feedback.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.db.models import Avg, Count
from django.utils import timezone

from clinic.exceptions import DomainError, NotOwner
from clinic.models import SupportTicket, TicketEvent, TicketMessage, User
from clinic.permissions import MANAGEMENT_ROLES
from clinic.services.audit import log_action
from clinic.services.identifiers import new_ticket_id
from clinic.services.notifications import active_managers, notify, notify_many
from clinic.workflow import ensure_transition

logger = logging.getLogger(__name__)

ASSIGNABLE_STATUSES = (SupportTicket.STATUS_OPEN, SupportTicket.STATUS_IN_PROGRESS, SupportTicket.STATUS_ASSIGNED)


def format_ticket(t: SupportTicket, *, viewer: Optional[User] = None, with_messages: bool = False) -> dict:
    data = {
        'id': t.ticket_id,
        'ticketId': t.ticket_id,
        'patientId': t.patient.public_id,
        'patientName': t.patient.name,
        'subject': t.subject,
        'issueDescription': t.issue_description,
        'category': t.category,
        'priority': t.priority,
        'status': t.status,
        'assignedStaff': ({'id': t.assigned_staff.public_id, 'name': t.assigned_staff.name}
                          if t.assigned_staff_id else None),
        'assignedAt': t.assigned_at.isoformat() if t.assigned_at else None,
        'resolution': t.resolution,
        'resolvedAt': t.resolved_at.isoformat() if t.resolved_at else None,
        'closedAt': t.closed_at.isoformat() if t.closed_at else None,
        'escalationLevel': t.escalation_level,
        'tags': t.tags,
        'satisfactionRating': t.satisfaction_rating,
        'patientFeedback': t.patient_feedback,
        'createdAt': t.created_at.isoformat() if t.created_at else None,
        'updatedAt': t.updated_at.isoformat() if t.updated_at else None,
    }
    if with_messages:
        msgs = t.messages.select_related('sender')
        if viewer is None or viewer.is_patient:
            msgs = msgs.filter(is_internal=False)
        data['communicationLog'] = [{
            'message': m.message,
            'sender': m.sender.name if m.sender_id else 'System',
            'senderType': m.sender_type,
            'isInternal': m.is_internal,
            'timestamp': m.created_at.isoformat(),
        } for m in msgs]
    return data


def base_queryset():
    return SupportTicket.objects.select_related('patient', 'assigned_staff', 'patient__patient_profile',
                                                'assigned_staff__employee_profile')


def scoped_queryset(user: User):
    """Patients see their own tickets, managers everything, other staff their assignments."""
    qs = base_queryset()
    if user.is_patient:
        return qs.filter(patient=user)
    if user.role in MANAGEMENT_ROLES:
        return qs
    return qs.filter(assigned_staff=user)


def get_for_user(user: User, ticket_id: str) -> SupportTicket:
    t = base_queryset().get(ticket_id=ticket_id)
    if t.patient_id == user.id or user.role in MANAGEMENT_ROLES or t.assigned_staff_id == user.id:
        return t
    raise NotOwner()


def _lock(ticket_id: str) -> SupportTicket:
    return SupportTicket.objects.select_for_update().get(ticket_id=ticket_id)


def _record(t: SupportTicket, *, action: str, from_status: str, actor: Optional[User], notes: str = '',
            data: Optional[dict] = None) -> None:
    TicketEvent.objects.create(ticket=t, action=action, from_status=from_status, to_status=t.status,
                               performed_by=actor, notes=notes[:500], data=data or {})
    log_action(user=actor, action=f'ticket_{action}', object_type='ticket', object_id=t.ticket_id,
               detail={'from': from_status, 'to': t.status, **(data or {})})
    logger.info("Ticket %s %s: %s -> %s", t.ticket_id, action, from_status or '-', t.status)


def _system_message(t: SupportTicket, text: str) -> None:
    TicketMessage.objects.create(ticket=t, sender=None, sender_type='system', message=text[:1000])


def _is_handler(actor: User, t: SupportTicket) -> bool:
    return actor.role in MANAGEMENT_ROLES or t.assigned_staff_id == actor.id


@transaction.atomic
def create(actor: User, patient: User, data: dict) -> SupportTicket:
    t = SupportTicket.objects.create(
        ticket_id=new_ticket_id(),
        patient=patient,
        subject=data.get('subject', ''),
        issue_description=data['issueDescription'],
        category=data.get('category', 'general_inquiry'),
        priority=data.get('priority', 'medium'),
        tags=data.get('tags', []),
    )
    _record(t, action='created', from_status='', actor=actor)
    notify_many(active_managers(), type='ticket_update', title='New support ticket',
                message=f"{patient.name} opened ticket {t.ticket_id} ({t.category.replace('_', ' ')}).",
                data={'ticketId': t.ticket_id}, priority='high' if t.priority in ('high', 'urgent') else 'medium')
    return t


@transaction.atomic
def assign(ticket_id: str, actor: User, staff: User) -> SupportTicket:
    if actor.role != User.ROLE_MANAGER:
        raise NotOwner('Only a health care manager may assign tickets')
    if staff.is_patient or not staff.is_active:
        raise DomainError('Tickets can only be assigned to active staff')
    t = _lock(ticket_id)
    if t.status not in ASSIGNABLE_STATUSES:
        raise DomainError(f"Cannot assign a ticket that is {t.status}")
    old = t.status
    if t.status != SupportTicket.STATUS_ASSIGNED:
        ensure_transition('ticket', t.status, SupportTicket.STATUS_ASSIGNED)
        t.status = SupportTicket.STATUS_ASSIGNED
    t.assigned_staff = staff
    t.assigned_at = timezone.now()
    t.save()
    _system_message(t, f"Ticket assigned to {staff.name}")
    _record(t, action='assigned', from_status=old, actor=actor, data={'staffId': staff.public_id})
    ref = {'ticketId': t.ticket_id, 'status': t.status}
    notify(staff, type='ticket_update', title='Ticket assigned',
           message=f"Ticket {t.ticket_id} has been assigned to you.", data=ref)
    notify(t.patient, type='ticket_update', title='Ticket assigned',
           message=f"Your ticket {t.ticket_id} is being handled by {staff.name}.", data=ref)
    return t


@transaction.atomic
def change_status(ticket_id: str, actor: User, new_status: str, *, notes: str = '',
                  resolution: str = '') -> SupportTicket:
    t = _lock(ticket_id)
    if new_status == SupportTicket.STATUS_CANCELLED:
        if not (t.patient_id == actor.id or _is_handler(actor, t)):
            raise NotOwner()
    elif not _is_handler(actor, t):
        raise NotOwner('Only the assigned staff or a manager may update this ticket')
    ensure_transition('ticket', t.status, new_status)
    if new_status == SupportTicket.STATUS_CLOSED and not (resolution or t.resolution):
        raise DomainError('A resolution is required to close a ticket')
    old = t.status
    now = timezone.now()
    t.status = new_status
    if new_status == SupportTicket.STATUS_RESOLVED:
        t.resolved_at = now
        if resolution:
            t.resolution = resolution
    elif new_status == SupportTicket.STATUS_CLOSED:
        t.closed_at = now
        if resolution:
            t.resolution = resolution
    t.save()
    _system_message(t, f"Status changed from {old} to {new_status}" + (f": {notes}" if notes else ''))
    _record(t, action=new_status, from_status=old, actor=actor, notes=notes)
    notify(t.patient, type='ticket_update', title='Ticket updated',
           message=f"Your ticket {t.ticket_id} is now {new_status.replace('_', ' ')}.",
           data={'ticketId': t.ticket_id, 'status': new_status})
    return t


def close(ticket_id: str, actor: User, resolution: str) -> SupportTicket:
    return change_status(ticket_id, actor, SupportTicket.STATUS_CLOSED, resolution=resolution)


@transaction.atomic
def add_message(ticket_id: str, actor: User, message: str, *, internal: bool = False) -> TicketMessage:
    t = _lock(ticket_id)
    if actor.id == t.patient_id:
        sender_type = 'patient'
        internal = False
    elif _is_handler(actor, t):
        sender_type = 'staff'
    else:
        raise NotOwner()
    if t.status in (SupportTicket.STATUS_CLOSED, SupportTicket.STATUS_CANCELLED):
        raise DomainError(f"Cannot add messages to a {t.status} ticket")
    msg = TicketMessage.objects.create(ticket=t, sender=actor, sender_type=sender_type,
                                       message=message, is_internal=internal)
    t.save(update_fields=['updated_at'])
    ref = {'ticketId': t.ticket_id}
    if sender_type == 'staff' and not internal:
        notify(t.patient, type='ticket_update', title='New reply on your ticket',
               message=f"Staff replied on ticket {t.ticket_id}.", data=ref)
    elif sender_type == 'patient':
        recipients = [t.assigned_staff] if t.assigned_staff_id else active_managers()
        notify_many(recipients, type='ticket_update', title='Patient replied',
                    message=f"{t.patient.name} replied on ticket {t.ticket_id}.", data=ref)
    return msg


@transaction.atomic
def escalate(ticket_id: str, actor: User, reason: str = '') -> SupportTicket:
    t = _lock(ticket_id)
    if not _is_handler(actor, t):
        raise NotOwner()
    if t.status in (SupportTicket.STATUS_CLOSED, SupportTicket.STATUS_CANCELLED, SupportTicket.STATUS_RESOLVED):
        raise DomainError(f"Cannot escalate a {t.status} ticket")
    if t.escalation_level >= SupportTicket.MAX_ESCALATION:
        raise DomainError('Ticket is already at the highest escalation level')
    t.escalation_level += 1
    if t.escalation_level >= 2 and SupportTicket.PRIORITIES.index(t.priority) < SupportTicket.PRIORITIES.index('high'):
        t.priority = 'high'
    t.save()
    _system_message(t, f"Escalated to level {t.escalation_level}" + (f": {reason}" if reason else ''))
    _record(t, action='escalated', from_status=t.status, actor=actor, notes=reason,
            data={'level': t.escalation_level})
    notify_many(active_managers(), type='ticket_update', title='Ticket escalated',
                message=f"Ticket {t.ticket_id} escalated to level {t.escalation_level}.",
                data={'ticketId': t.ticket_id, 'level': t.escalation_level}, priority='high')
    return t


@transaction.atomic
def set_priority(ticket_id: str, actor: User, priority: str) -> SupportTicket:
    t = _lock(ticket_id)
    if not _is_handler(actor, t):
        raise NotOwner()
    old = t.priority
    t.priority = priority
    t.save(update_fields=['priority', 'updated_at'])
    _record(t, action='priority', from_status=t.status, actor=actor, data={'from': old, 'to': priority})
    return t


@transaction.atomic
def rate(ticket_id: str, actor: User, rating: int, feedback: str = '') -> SupportTicket:
    t = _lock(ticket_id)
    if actor.id != t.patient_id:
        raise NotOwner('Only the ticket owner may rate it')
    if t.status != SupportTicket.STATUS_CLOSED:
        raise DomainError('Only closed tickets can be rated')
    t.satisfaction_rating = rating
    t.patient_feedback = feedback
    t.save(update_fields=['satisfaction_rating', 'patient_feedback', 'updated_at'])
    _record(t, action='rated', from_status=t.status, actor=actor, data={'rating': rating})
    return t


def statistics(qs=None) -> dict:
    qs = qs if qs is not None else SupportTicket.objects.all()
    by_status = {s: 0 for s, _ in SupportTicket.STATUS_CHOICES}
    for row in qs.values('status').annotate(n=Count('id')):
        by_status[row['status']] = row['n']
    by_priority = {p: 0 for p in SupportTicket.PRIORITIES}
    for row in qs.values('priority').annotate(n=Count('id')):
        by_priority[row['priority']] = row['n']
    avg = qs.filter(satisfaction_rating__isnull=False).aggregate(v=Avg('satisfaction_rating'))['v']
    return {
        'total': sum(by_status.values()),
        'byStatus': by_status,
        'byPriority': by_priority,
        'escalated': qs.filter(escalation_level__gt=0).count(),
        'averageSatisfaction': round(float(avg), 2) if avg is not None else None,
    }
