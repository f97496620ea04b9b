"""Errors raised by the scheduling engine.

Every error is local to the call that raised it and recoverable by the
caller. The HTTP and GraphQL adapters translate them into responses.
"""


class SchedulingError(Exception):
    """Base class for all engine errors."""


class InvalidDate(SchedulingError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid date or time: {value!r}")


class OutsideBusinessHours(SchedulingError):
    def __init__(self, day, start):
        self.day = day
        self.start = start
        super().__init__(f"{day} {start:%H:%M} is not a bookable slot")


class SlotConflict(SchedulingError):
    def __init__(self, start, appointment_id: int):
        self.start = start
        self.appointment_id = appointment_id
        super().__init__(
            f"{start:%Y-%m-%d %H:%M} is already taken by appointment {appointment_id}"
        )


class InvalidRecord(SchedulingError):
    """A field of a patient or appointment failed validation."""

    def __init__(self, field: str, value, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")

    @classmethod
    def from_validation_error(cls, exc) -> "InvalidRecord":
        # first failing field only
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "record"
        return cls(field, error.get("input"), error["msg"])


class StartInPast(SchedulingError):
    def __init__(self, start, now):
        self.start = start
        self.now = now
        super().__init__(f"{start:%Y-%m-%d %H:%M} is not in the future")


class InvalidTransition(SchedulingError):
    def __init__(self, appointment_id: int, current, requested):
        self.appointment_id = appointment_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Appointment {appointment_id} cannot move from "
            f"{current.value} to {getattr(requested, 'value', requested)}"
        )


class PatientNotFound(SchedulingError):
    def __init__(self, patient_id: int):
        self.patient_id = patient_id
        super().__init__(f"Patient {patient_id} not found")


class AppointmentNotFound(SchedulingError):
    def __init__(self, appointment_id: int):
        self.appointment_id = appointment_id
        super().__init__(f"Appointment {appointment_id} not found")


class PatientHasAppointments(SchedulingError):
    def __init__(self, patient_id: int, appointment_ids):
        self.patient_id = patient_id
        self.appointment_ids = list(appointment_ids)
        super().__init__(
            f"Patient {patient_id} still has open appointments: "
            f"{', '.join(str(i) for i in self.appointment_ids)}"
        )


class ReminderNotFound(SchedulingError):
    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(f"Reminder {event_id} not found")
