import pytest

from clinic.exceptions import InvalidTransition
from clinic.workflow import (
    APPOINTMENT_TRANSITIONS, MACHINES, PRESCRIPTION_TRANSITIONS, TICKET_TRANSITIONS, can_transition,
    ensure_transition, is_terminal,
)


@pytest.mark.parametrize("machine,current,new", [
    ("appointment", "pending_approval", "approved"),
    ("appointment", "approved", "confirmed"),
    ("appointment", "confirmed", "in_progress"),
    ("appointment", "in_progress", "completed"),
    ("prescription", "pending", "sent_to_pharmacy"),
    ("prescription", "sent_to_pharmacy", "dispensed"),
    ("prescription", "dispensed", "completed"),
    ("ticket", "open", "assigned"),
    ("ticket", "resolved", "closed"),
])
def test_allowed_moves(machine, current, new):
    assert can_transition(machine, current, new)
    ensure_transition(machine, current, new)


@pytest.mark.parametrize("machine,current,new", [
    ("appointment", "approved", "approved"),
    ("appointment", "completed", "cancelled"),
    ("appointment", "in_progress", "cancelled"),
    ("prescription", "dispensed", "pending"),
    ("prescription", "expired", "dispensed"),
    ("ticket", "closed", "open"),
    ("ticket", "open", "closed"),
])
def test_rejected_moves(machine, current, new):
    assert not can_transition(machine, current, new)
    with pytest.raises(InvalidTransition):
        ensure_transition(machine, current, new)


def test_unknown_status_is_rejected():
    with pytest.raises(InvalidTransition) as exc:
        ensure_transition("ticket", "open", "archived")
    assert "Unknown ticket status" in str(exc.value.detail)


def test_every_target_is_a_known_status():
    for table in MACHINES.values():
        for targets in table.values():
            assert targets <= set(table)


def test_terminal_statuses():
    assert is_terminal("appointment", "completed")
    assert is_terminal("prescription", "expired")
    assert is_terminal("ticket", "cancelled")
    assert not is_terminal("ticket", "resolved")
    assert {s for s in APPOINTMENT_TRANSITIONS if is_terminal("appointment", s)} == {
        "completed", "declined", "cancelled", "no_show"}
    assert {s for s in PRESCRIPTION_TRANSITIONS if is_terminal("prescription", s)} == {
        "completed", "cancelled", "expired"}
    assert {s for s in TICKET_TRANSITIONS if is_terminal("ticket", s)} == {"closed", "cancelled"}
