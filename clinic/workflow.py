"""
Status machines for appointments, prescriptions and support tickets.

Each machine is a single table mapping a status to the statuses that
may follow it.  Services call :func:`ensure_transition` before writing
a new status; nothing else in the code base decides whether a move is
legal.
"""
from __future__ import annotations

from .exceptions import InvalidTransition

APPOINTMENT_TRANSITIONS: dict[str, frozenset[str]] = {
    # pending_approval -> pending_approval is a reschedule before review
    'pending_approval': frozenset({'approved', 'declined', 'cancelled', 'pending_approval'}),
    'approved': frozenset({'confirmed', 'cancelled', 'no_show', 'pending_approval'}),
    'confirmed': frozenset({'in_progress', 'cancelled', 'no_show', 'pending_approval'}),
    'in_progress': frozenset({'completed'}),
    'completed': frozenset(),
    'declined': frozenset(),
    'cancelled': frozenset(),
    'no_show': frozenset(),
}

PRESCRIPTION_TRANSITIONS: dict[str, frozenset[str]] = {
    'pending': frozenset({'sent_to_pharmacy', 'cancelled', 'expired'}),
    'sent_to_pharmacy': frozenset({'dispensed', 'cancelled', 'expired'}),
    'dispensed': frozenset({'completed'}),
    'completed': frozenset(),
    'cancelled': frozenset(),
    'expired': frozenset(),
}

TICKET_TRANSITIONS: dict[str, frozenset[str]] = {
    'open': frozenset({'in_progress', 'assigned', 'cancelled'}),
    'in_progress': frozenset({'assigned', 'resolved', 'cancelled'}),
    'assigned': frozenset({'in_progress', 'resolved', 'cancelled'}),
    'resolved': frozenset({'closed'}),
    'closed': frozenset(),
    'cancelled': frozenset(),
}

MACHINES: dict[str, dict[str, frozenset[str]]] = {
    'appointment': APPOINTMENT_TRANSITIONS,
    'prescription': PRESCRIPTION_TRANSITIONS,
    'ticket': TICKET_TRANSITIONS,
}


def can_transition(machine: str, current: str, new: str) -> bool:
    """Return True if ``machine`` allows moving from ``current`` to ``new``."""
    return new in MACHINES[machine].get(current, frozenset())


def ensure_transition(machine: str, current: str, new: str) -> None:
    if new not in MACHINES[machine]:
        raise InvalidTransition(f"Unknown {machine} status '{new}'")
    if not can_transition(machine, current, new):
        raise InvalidTransition(f"Cannot move {machine} from '{current}' to '{new}'")


def is_terminal(machine: str, status: str) -> bool:
    return not MACHINES[machine].get(status)
