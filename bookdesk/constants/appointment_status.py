"""
Appointment status codes.

Statuses are persisted as small integers. Clients may send either the integer,
its numeral string, or one of the human-readable synonyms below; everything
goes through ``normalize_appointment_status`` before it reaches the database.
"""

from enum import IntEnum
from typing import Any, Optional

from ..utils.errors import ValidationError


class AppointmentStatus(IntEnum):
    PENDING = 0
    CONFIRMED = 1
    IN_PROGRESS = 2
    COMPLETED = 3
    CANCELLED = 4
    NO_SHOW = 5


APPOINTMENT_STATUS_VALUES = [s.value for s in AppointmentStatus]

APPOINTMENT_STATUS_LABELS = {
    AppointmentStatus.PENDING: "Pending",
    AppointmentStatus.CONFIRMED: "Confirmed",
    AppointmentStatus.IN_PROGRESS: "In Progress",
    AppointmentStatus.COMPLETED: "Completed",
    AppointmentStatus.CANCELLED: "Cancelled",
    AppointmentStatus.NO_SHOW: "No Show",
}

_SYNONYMS = {
    "pending": AppointmentStatus.PENDING,
    "confirmed": AppointmentStatus.CONFIRMED,
    "in progress": AppointmentStatus.IN_PROGRESS,
    "in-progress": AppointmentStatus.IN_PROGRESS,
    "in_progress": AppointmentStatus.IN_PROGRESS,
    "inprogress": AppointmentStatus.IN_PROGRESS,
    "completed": AppointmentStatus.COMPLETED,
    "cancelled": AppointmentStatus.CANCELLED,
    "canceled": AppointmentStatus.CANCELLED,
    "no show": AppointmentStatus.NO_SHOW,
    "no-show": AppointmentStatus.NO_SHOW,
    "no_show": AppointmentStatus.NO_SHOW,
    "noshow": AppointmentStatus.NO_SHOW,
}
_SYNONYMS.update({str(s.value): s for s in AppointmentStatus})


def is_valid_appointment_status(value: Any) -> bool:
    """True for 0-5 given as an int or as a numeral string."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value in APPOINTMENT_STATUS_VALUES
    if isinstance(value, str):
        return value.strip() in {str(v) for v in APPOINTMENT_STATUS_VALUES}
    return False


def normalize_appointment_status(value: Any) -> Optional[AppointmentStatus]:
    """
    Map any accepted status form to an ``AppointmentStatus``.

    Returns None for None, empty strings and anything unrecognised.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        if value in APPOINTMENT_STATUS_VALUES:
            return AppointmentStatus(value)
        return None
    if isinstance(value, str):
        return _SYNONYMS.get(value.strip().lower())
    return None


def require_appointment_status(value: Any) -> AppointmentStatus:
    """Normalise or raise a 400 validation error."""
    status = normalize_appointment_status(value)
    if status is None:
        allowed = ", ".join(str(v) for v in APPOINTMENT_STATUS_VALUES)
        raise ValidationError(
            f"Invalid status. Must be one of: {allowed}",
            errors=[{"field": "status", "message": f"Invalid status '{value}'"}],
        )
    return status


def get_appointment_status_label(value: Any) -> str:
    status = normalize_appointment_status(value)
    if status is None:
        return "Unknown"
    return APPOINTMENT_STATUS_LABELS[status]
