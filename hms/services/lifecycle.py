"""
Status lifecycle for lab tests and appointments.

Every status change goes through ``validate_lab_test_transition`` or
``validate_appointment_transition``. Both check the transition table and
then the wall-clock gate for the target status: a test can only be taken
(or missed) once its slot has started, and a booking can only be cancelled
before it.
"""
import re
from datetime import date, datetime, time
from typing import Dict, FrozenSet, Optional, Union

from ..models.appointment import AppointmentStatus
from ..models.lab_test import LabTestStatus

StatusLike = Union[str, LabTestStatus, AppointmentStatus]


class LifecycleError(ValueError):
    """Raised when a requested status change is not allowed."""


LAB_TEST_TRANSITIONS: Dict[LabTestStatus, FrozenSet[LabTestStatus]] = {
    LabTestStatus.SCHEDULED: frozenset({
        LabTestStatus.TEST_TAKEN,
        LabTestStatus.NO_SHOW,
        LabTestStatus.CANCELLED,
    }),
    LabTestStatus.TEST_TAKEN: frozenset({LabTestStatus.COMPLETED}),
}

APPOINTMENT_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.NO_SHOW,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.RESCHEDULE_REQUESTED,
    }),
    AppointmentStatus.RESCHEDULE_REQUESTED: frozenset({
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.CANCELLED,
    }),
}

# Statuses from which nothing can be cancelled any more
CLOSED_STATUSES = frozenset({"completed", "cancelled", "no-show"})

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def _value(status: StatusLike) -> str:
    return getattr(status, "value", status)


def parse_time(value: str) -> time:
    """Parse an ``HH:MM`` 24-hour clock string."""
    match = _TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return time(int(match.group(1)), int(match.group(2)))


def scheduled_datetime(scheduled_date: Optional[date], scheduled_time: Optional[str]) -> Optional[datetime]:
    """Combine a booking's date and ``HH:MM`` time into a naive local datetime.

    No date means there is no schedule to compare against; no time means the
    start of that day.
    """
    if scheduled_date is None:
        return None
    if not scheduled_time:
        return datetime.combine(scheduled_date, time(0, 0))
    return datetime.combine(scheduled_date, parse_time(scheduled_time))


def can_mark_as_taken(status: StatusLike, scheduled_at: Optional[datetime], now: datetime) -> bool:
    """True iff the test is still scheduled and its slot has started."""
    if _value(status) != LabTestStatus.SCHEDULED.value:
        return False
    if scheduled_at is None:
        return False
    return now >= scheduled_at


def can_cancel(status: StatusLike, scheduled_at: Optional[datetime], now: datetime) -> bool:
    """True iff the booking is not closed and its slot has not started yet."""
    if _value(status) in CLOSED_STATUSES:
        return False
    if scheduled_at is None:
        return True
    return now < scheduled_at


def _check_table(table, current, target, kind: str) -> None:
    if current == target:
        raise LifecycleError(f"{kind} is already {current.value}")
    if target not in table.get(current, frozenset()):
        raise LifecycleError(
            f"Cannot change {kind.lower()} status from {current.value} to {target.value}"
        )


def validate_lab_test_transition(
    current: StatusLike,
    target: StatusLike,
    scheduled_at: Optional[datetime],
    now: datetime,
) -> LabTestStatus:
    """Return ``target`` as a ``LabTestStatus`` if the change is allowed now."""
    try:
        current = LabTestStatus(_value(current))
        target = LabTestStatus(_value(target))
    except ValueError as exc:
        raise LifecycleError(str(exc)) from exc

    _check_table(LAB_TEST_TRANSITIONS, current, target, "Lab test")

    if target in (LabTestStatus.TEST_TAKEN, LabTestStatus.NO_SHOW):
        if not can_mark_as_taken(current, scheduled_at, now):
            raise LifecycleError("The scheduled time for this test has not been reached yet")
    elif target == LabTestStatus.CANCELLED:
        if not can_cancel(current, scheduled_at, now):
            raise LifecycleError("Tests can only be cancelled before their scheduled time")

    return target


def validate_appointment_transition(
    current: StatusLike,
    target: StatusLike,
    scheduled_at: Optional[datetime],
    now: datetime,
) -> AppointmentStatus:
    """Return ``target`` as an ``AppointmentStatus`` if the change is allowed now."""
    try:
        current = AppointmentStatus(_value(current))
        target = AppointmentStatus(_value(target))
    except ValueError as exc:
        raise LifecycleError(str(exc)) from exc

    _check_table(APPOINTMENT_TRANSITIONS, current, target, "Appointment")

    if target in (AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW):
        if scheduled_at is None or now < scheduled_at:
            raise LifecycleError("The appointment time has not passed yet")
    elif target == AppointmentStatus.RESCHEDULE_REQUESTED:
        if not can_cancel(current, scheduled_at, now):
            raise LifecycleError("Only upcoming appointments can be rescheduled")
    elif target == AppointmentStatus.CANCELLED and current == AppointmentStatus.SCHEDULED:
        if not can_cancel(current, scheduled_at, now):
            raise LifecycleError("Appointments can only be cancelled before their scheduled time")

    return target


_TURNAROUND_PATTERN = re.compile(r"^\s*(\d+)\s*(hour|hr|day)", re.IGNORECASE)


def report_turnaround_hours(estimate: Optional[str], default: int = 24) -> int:
    """Convert a catalogue estimate such as ``"24 hours"`` or ``"2 days"`` to hours."""
    match = _TURNAROUND_PATTERN.match(estimate or "")
    if not match:
        return default
    amount = int(match.group(1))
    if match.group(2).lower() == "day":
        return amount * 24
    return amount
