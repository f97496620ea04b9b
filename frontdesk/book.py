"""
Appointment Book

Owns appointments and their reminder events:
- Slot validation against the business calendar
- Double-booking detection (the clinic is one resource per slot)
- Status transitions and the visit bookkeeping they trigger

All writes go through one lock so check-then-commit is atomic. Reads work
on snapshots and never take the lock.
"""

import logging
import threading
import uuid
from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from frontdesk.business_calendar import DateLike, TimeLike, to_date, to_time
from frontdesk.clock import Clock, SystemClock
from frontdesk.config import (
    DEFAULT_DURATION_MINUTES,
    DEFAULT_TREATMENT_FEE,
    MAX_DELIVERY_ATTEMPTS,
    TREATMENT_FEES,
)
from frontdesk.errors import (
    AppointmentNotFound,
    InvalidRecord,
    InvalidTransition,
    OutsideBusinessHours,
    PatientHasAppointments,
    ReminderNotFound,
    SlotConflict,
    StartInPast,
)
from frontdesk.patients import PatientDirectory
from frontdesk.reminders import ReminderScheduler
from frontdesk.schemas import (
    Appointment,
    AppointmentStatus,
    BookingSource,
    Patient,
    ReminderEvent,
    ReminderStatus,
    VisitRecord,
)
from frontdesk.slots import SlotGenerator

logger = logging.getLogger(__name__)

S = AppointmentStatus
TRANSITIONS = {
    S.BOOKED: {S.CONFIRMED, S.CANCELLED},
    S.CONFIRMED: {S.CHECKED_IN, S.CANCELLED},
    S.CHECKED_IN: {S.COMPLETED, S.CANCELLED},
    S.COMPLETED: set(),
    S.CANCELLED: set(),
}

# reminders for these appointments are never due
_SILENT_STATUSES = {S.CANCELLED, S.COMPLETED}


def _retryable(event: ReminderEvent) -> bool:
    if event.status == ReminderStatus.PENDING:
        return True
    return (
        event.status == ReminderStatus.FAILED
        and event.attempts < MAX_DELIVERY_ATTEMPTS
    )


class AppointmentBook:
    def __init__(
        self,
        directory: PatientDirectory,
        slots: SlotGenerator,
        reminders: ReminderScheduler,
        clock: Optional[Clock] = None,
        treatment_fees: Optional[Mapping[str, int]] = None,
        default_fee: int = DEFAULT_TREATMENT_FEE,
    ):
        self.directory = directory
        self.slots = slots
        self.reminders = reminders
        self.clock = clock or SystemClock()
        self.treatment_fees = dict(
            TREATMENT_FEES if treatment_fees is None else treatment_fees
        )
        self.default_fee = default_fee

        self._lock = threading.RLock()
        self._appointments: dict[int, Appointment] = {}
        self._events: dict[str, ReminderEvent] = {}
        self._next_id = 1

    # -- writes --

    def book(
        self,
        patient_id: int,
        day: DateLike,
        start_time: TimeLike,
        duration_minutes: int = DEFAULT_DURATION_MINUTES,
        treatment: str = "checkup",
        source: Union[BookingSource, str] = BookingSource.WEB,
        staff_ids: Iterable[int] = (),
        notes: str = "",
    ) -> Appointment:
        """
        Book ``patient_id`` into the slot starting at ``day`` ``start_time``.

        The appointment and its reminder events are committed together; if
        anything fails nothing is stored.

        Raises:
            InvalidDate: malformed day or time
            InvalidRecord: bad treatment, duration, source, staff ids or notes
            PatientNotFound: unknown patient
            OutsideBusinessHours: start is not on the day's slot grid
            StartInPast: start is not after now
            SlotConflict: a non-cancelled appointment already starts there
        """
        day = to_date(day)
        at = to_time(start_time)
        start = datetime.combine(day, at)

        # id is assigned under the lock
        try:
            draft = Appointment(
                id=0,
                patient_id=patient_id,
                start=start,
                duration_minutes=duration_minutes,
                treatment=treatment,
                source=source,
                staff_ids=tuple(staff_ids),
                notes=notes,
            )
        except ValidationError as exc:
            raise InvalidRecord.from_validation_error(exc) from None

        with self._lock:
            self.directory.get(patient_id)

            if at not in self.slots.generate_slots(day):
                logger.warning("Rejected booking at %s: outside business hours", start)
                raise OutsideBusinessHours(day, at)

            now = self.clock.now()
            if start <= now:
                logger.warning("Rejected booking at %s: not after %s", start, now)
                raise StartInPast(start, now)

            occupant = self._occupant(start)
            if occupant is not None:
                logger.warning(
                    "Rejected booking at %s: taken by appointment %s",
                    start, occupant.id,
                )
                raise SlotConflict(start, occupant.id)

            appointment = draft.model_copy(update={"id": self._next_id})
            events = self.reminders.schedule(appointment)

            self._appointments[appointment.id] = appointment
            for event in events:
                self._events[event.id] = event
            self._next_id += 1

        logger.info(
            "Booked appointment %s for patient %s at %s (%d reminders)",
            appointment.id, patient_id, start, len(events),
        )
        return appointment

    def transition(
        self, appointment_id: int, new_status: Union[AppointmentStatus, str]
    ) -> Appointment:
        with self._lock:
            current = self.get(appointment_id)
            try:
                new_status = AppointmentStatus(new_status)
            except ValueError:
                raise InvalidTransition(
                    appointment_id, current.status, new_status
                ) from None
            if new_status not in TRANSITIONS[current.status]:
                raise InvalidTransition(appointment_id, current.status, new_status)

            updated = current.model_copy(update={"status": new_status})
            if new_status == S.COMPLETED:
                # patient counters move with the status change or not at all
                self.directory.record_visit(self._visit_for(current))
            self._appointments[appointment_id] = updated

        logger.info(
            "Appointment %s: %s -> %s",
            appointment_id, current.status.value, new_status.value,
        )
        return updated

    def reassign(self, appointment_id: int, staff_ids: Iterable[int]) -> Appointment:
        return self._revise(appointment_id, staff_ids=tuple(staff_ids))

    def annotate(self, appointment_id: int, notes: str) -> Appointment:
        return self._revise(appointment_id, notes=notes)

    def schedule_reminders(self, appointment_id: int) -> List[ReminderEvent]:
        """Re-run reminder scheduling; returns only events that did not exist yet."""
        with self._lock:
            appointment = self.get(appointment_id)
            if appointment.status in _SILENT_STATUSES:
                return []
            created = self.reminders.schedule(
                appointment, existing=self.reminders_for(appointment_id)
            )
            for event in created:
                self._events[event.id] = event
        return created

    def record_delivery(self, event_id: str, delivered: bool) -> ReminderEvent:
        """Feedback from a sender. A sent reminder stays sent."""
        with self._lock:
            event = self._events.get(event_id)
            if event is None:
                raise ReminderNotFound(event_id)
            if event.status == ReminderStatus.SENT:
                logger.warning("Reminder %s already sent, ignoring report", event_id)
                return event

            updated = event.model_copy(
                update={
                    "status": ReminderStatus.SENT if delivered else ReminderStatus.FAILED,
                    "sent_at": self.clock.now() if delivered else None,
                    "attempts": event.attempts + 1,
                }
            )
            self._events[event_id] = updated

        if not delivered:
            logger.warning(
                "Reminder %s via %s failed (attempt %d)",
                event_id, updated.channel.value, updated.attempts,
            )
        return updated

    def delete_patient(self, patient_id: int) -> Patient:
        """
        Admin removal of a patient together with their closed appointments
        and reminder events. Refused while any appointment is still open.
        """
        with self._lock:
            self.directory.get(patient_id)
            theirs = [
                a for a in self._appointments.values() if a.patient_id == patient_id
            ]
            still_open = [a.id for a in theirs if a.status not in _SILENT_STATUSES]
            if still_open:
                raise PatientHasAppointments(patient_id, still_open)

            for appointment in theirs:
                del self._appointments[appointment.id]
            self._events = {
                event_id: e
                for event_id, e in self._events.items()
                if e.patient_id != patient_id
            }
            return self.directory.delete(patient_id)

    def restore(
        self,
        appointments: Iterable[Appointment],
        events: Iterable[ReminderEvent] = (),
    ) -> None:
        with self._lock:
            for appointment in appointments:
                self._appointments[appointment.id] = appointment
                self._next_id = max(self._next_id, appointment.id + 1)
            for event in events:
                self._events[event.id] = event

    # -- reads --

    def get(self, appointment_id: int) -> Appointment:
        appointment = self._appointments.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFound(appointment_id)
        return appointment

    def for_date(
        self, day: DateLike, include_cancelled: bool = True
    ) -> List[Appointment]:
        day = to_date(day)
        found = [
            a
            for a in list(self._appointments.values())
            if a.day == day and (include_cancelled or a.is_active)
        ]
        return sorted(found, key=lambda a: a.start)

    def available_slots(self, day: DateLike, interval_minutes: Optional[int] = None):
        """Grid slots with no active appointment starting on them."""
        taken = {a.start.time() for a in self.for_date(day, include_cancelled=False)}
        return [
            slot
            for slot in self.slots.generate_slots(day, interval_minutes)
            if slot not in taken
        ]

    def reminders_for(self, appointment_id: int) -> List[ReminderEvent]:
        self.get(appointment_id)
        events = [
            e for e in list(self._events.values()) if e.appointment_id == appointment_id
        ]
        return sorted(events, key=lambda e: e.fire_at)

    def due_reminders(self, now: Optional[datetime] = None) -> List[ReminderEvent]:
        """Reminders to hand to the senders now: pending ones plus failed ones
        with attempts left. Oldest first."""
        now = now or self.clock.now()
        due = []
        for event in list(self._events.values()):
            if event.fire_at > now or not _retryable(event):
                continue
            appointment = self._appointments.get(event.appointment_id)
            if appointment is None or appointment.status in _SILENT_STATUSES:
                continue
            due.append(event)
        return sorted(due, key=lambda e: e.fire_at)

    # -- helpers --

    def _revise(self, appointment_id: int, **changes) -> Appointment:
        with self._lock:
            current = self.get(appointment_id)
            try:
                updated = Appointment.model_validate(
                    {**current.model_dump(), **changes}
                )
            except ValidationError as exc:
                raise InvalidRecord.from_validation_error(exc) from None
            self._appointments[appointment_id] = updated
        return updated

    def _occupant(self, start: datetime) -> Optional[Appointment]:
        for appointment in self._appointments.values():
            if appointment.is_active and appointment.start == start:
                return appointment
        return None

    def _visit_for(self, appointment: Appointment) -> VisitRecord:
        return VisitRecord(
            id=uuid.uuid4().hex,
            patient_id=appointment.patient_id,
            appointment_id=appointment.id,
            day=appointment.day,
            treatment=appointment.treatment,
            staff_ids=appointment.staff_ids,
            fee=self.treatment_fees.get(
                appointment.treatment.lower(), self.default_fee
            ),
        )
