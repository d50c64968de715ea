import pytest

from servimatch.errors import ValidationError
from servimatch.lifecycle import (
    APPOINTMENT_TRANSITIONS,
    REQUEST_TRANSITIONS,
    check_appointment_transition,
    check_request_transition,
)
from servimatch.models import AppointmentStatus as AS, ServiceRequestStatus as RS


def test_every_status_has_a_transition_entry():
    assert set(REQUEST_TRANSITIONS) == set(RS)
    assert set(APPOINTMENT_TRANSITIONS) == set(AS)


@pytest.mark.parametrize("current,target", [
    (RS.PENDING, RS.ACCEPTED),
    (RS.PENDING, RS.REJECTED),
    (RS.ACCEPTED, RS.COMPLETED),
])
def test_allowed_request_transitions(current, target):
    check_request_transition(current, target)


@pytest.mark.parametrize("current,target", [
    (RS.PENDING, RS.COMPLETED),
    (RS.ACCEPTED, RS.REJECTED),
    (RS.REJECTED, RS.ACCEPTED),
    (RS.COMPLETED, RS.PENDING),
])
def test_request_cannot_skip_or_leave_terminal(current, target):
    with pytest.raises(ValidationError) as exc:
        check_request_transition(current, target)
    assert f"{current.value} -> {target.value}" in exc.value.detail


def test_appointment_happy_path():
    path = [AS.PENDING, AS.CONFIRMED, AS.IN_PROGRESS, AS.COMPLETED]
    for current, target in zip(path, path[1:]):
        check_appointment_transition(current, target)


@pytest.mark.parametrize("current,target", [
    (AS.PENDING, AS.COMPLETED),
    (AS.IN_PROGRESS, AS.CANCELLED),
    (AS.COMPLETED, AS.IN_PROGRESS),
    (AS.CANCELLED, AS.PENDING),
])
def test_illegal_appointment_transitions(current, target):
    with pytest.raises(ValidationError):
        check_appointment_transition(current, target)
