from typing import Dict, FrozenSet

from servimatch.errors import ValidationError
from servimatch.models import AppointmentStatus, ServiceRequestStatus

RS = ServiceRequestStatus
AS = AppointmentStatus

REQUEST_TRANSITIONS: Dict[ServiceRequestStatus, FrozenSet[ServiceRequestStatus]] = {
    RS.PENDING: frozenset({RS.ACCEPTED, RS.REJECTED}),
    RS.ACCEPTED: frozenset({RS.COMPLETED}),
    RS.REJECTED: frozenset(),
    RS.COMPLETED: frozenset(),
}

# Statuses a worker may ask for through PUT /requests/{id}/status
REQUEST_SETTABLE = frozenset({RS.ACCEPTED, RS.REJECTED, RS.COMPLETED})

APPOINTMENT_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AS.PENDING: frozenset({AS.CONFIRMED, AS.CANCELLED}),
    AS.CONFIRMED: frozenset({AS.IN_PROGRESS, AS.CANCELLED}),
    AS.IN_PROGRESS: frozenset({AS.COMPLETED}),
    AS.COMPLETED: frozenset(),
    AS.CANCELLED: frozenset(),
}


def _check(table, current, target, what: str) -> None:
    if target not in table[current]:
        raise ValidationError(
            f"Illegal {what} transition: {current.value} -> {target.value}"
        )


def check_request_transition(current: ServiceRequestStatus, target: ServiceRequestStatus) -> None:
    _check(REQUEST_TRANSITIONS, current, target, "request")


def check_appointment_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    _check(APPOINTMENT_TRANSITIONS, current, target, "appointment")
