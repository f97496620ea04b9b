"""
Database mirror for the engine's records.

The engine decides; these helpers persist what it decided and load it back
at startup. Writes use ``merge`` so saving a record twice updates it.
"""

import logging
from datetime import date
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from frontdesk.clinic import Clinic
from frontdesk.models import (
    AppointmentRow,
    PatientRow,
    ReminderRow,
    SpecialHolidayRow,
    VisitRow,
)
from frontdesk.schemas import (
    Appointment,
    AppointmentStatus,
    DeliveryChannel,
    Patient,
    ReminderEvent,
    VisitRecord,
)

logger = logging.getLogger(__name__)


def _join(values) -> str:
    return ",".join(str(getattr(v, "value", v)) for v in values)


def _split(text: str) -> list[str]:
    return [part for part in (text or "").split(",") if part]


# -- domain -> rows --


def _patient_row(patient: Patient) -> PatientRow:
    return PatientRow(
        patient_id=patient.id,
        patient_number=patient.patient_number,
        name=patient.name,
        phone=patient.phone,
        email=patient.email,
        chat_id=patient.chat_id,
        social_handle=patient.social_handle,
        sms_consent=patient.sms_consent,
        preferred_contact=_join(patient.preferred_contact),
        visit_count=patient.visit_count,
        last_visit=patient.last_visit,
        registered_on=patient.registered_on,
    )


def _appointment_row(appointment: Appointment) -> AppointmentRow:
    return AppointmentRow(
        appointment_id=appointment.id,
        patient_id=appointment.patient_id,
        start=appointment.start,
        duration_minutes=appointment.duration_minutes,
        treatment=appointment.treatment,
        status=appointment.status.value,
        source=appointment.source.value,
        staff_ids=_join(appointment.staff_ids),
        notes=appointment.notes,
    )


def _reminder_row(event: ReminderEvent) -> ReminderRow:
    return ReminderRow(
        event_id=event.id,
        appointment_id=event.appointment_id,
        patient_id=event.patient_id,
        kind=event.kind.value,
        fire_at=event.fire_at,
        status=event.status.value,
        channel=event.channel.value,
        message=event.message,
        sent_at=event.sent_at,
        attempts=event.attempts,
    )


def _visit_row(visit: VisitRecord) -> VisitRow:
    return VisitRow(
        visit_id=visit.id,
        patient_id=visit.patient_id,
        appointment_id=visit.appointment_id,
        day=visit.day,
        treatment=visit.treatment,
        staff_ids=_join(visit.staff_ids),
        fee=visit.fee,
    )


# -- writes --


def save_patient(db: Session, patient: Patient) -> None:
    db.merge(_patient_row(patient))
    db.commit()


def save_appointment(db: Session, appointment: Appointment) -> None:
    db.merge(_appointment_row(appointment))
    db.commit()


def save_reminders(db: Session, events: Iterable[ReminderEvent]) -> None:
    """New or updated reminder events, e.g. after a delivery report."""
    for event in events:
        db.merge(_reminder_row(event))
    db.commit()


def save_booking(
    db: Session, appointment: Appointment, events: Iterable[ReminderEvent]
) -> None:
    """Appointment and its reminders in one transaction."""
    db.merge(_appointment_row(appointment))
    for event in events:
        db.merge(_reminder_row(event))
    db.commit()


def save_transition(db: Session, clinic: Clinic, appointment: Appointment) -> None:
    """Status change, plus the visit and patient counters when it completed."""
    db.merge(_appointment_row(appointment))
    if appointment.status == AppointmentStatus.COMPLETED:
        patient = clinic.directory.get(appointment.patient_id)
        for visit in clinic.directory.visits(patient.id):
            if visit.appointment_id == appointment.id:
                db.merge(_visit_row(visit))
        db.merge(_patient_row(patient))
    db.commit()


def delete_patient(db: Session, patient_id: int) -> None:
    """Erase a patient with their appointments, reminders and visits."""
    for row in (ReminderRow, AppointmentRow, VisitRow, PatientRow):
        db.execute(delete(row).where(row.patient_id == patient_id))
    db.commit()


def save_special_holiday(db: Session, day: date, reason: str) -> None:
    db.merge(SpecialHolidayRow(day=day, reason=reason))
    db.commit()


def delete_special_holiday(db: Session, day: date) -> None:
    db.execute(delete(SpecialHolidayRow).where(SpecialHolidayRow.day == day))
    db.commit()


# -- rows -> domain --


def restore_clinic(db: Session, clinic: Clinic) -> Clinic:
    patients = [
        Patient(
            id=row.patient_id,
            patient_number=row.patient_number,
            name=row.name,
            phone=row.phone,
            email=row.email,
            chat_id=row.chat_id,
            social_handle=row.social_handle,
            sms_consent=row.sms_consent,
            preferred_contact=tuple(
                DeliveryChannel(c) for c in _split(row.preferred_contact)
            ),
            visit_count=row.visit_count,
            last_visit=row.last_visit,
            registered_on=row.registered_on,
        )
        for row in db.scalars(select(PatientRow).order_by(PatientRow.patient_id))
    ]
    visits = [
        VisitRecord(
            id=row.visit_id,
            patient_id=row.patient_id,
            appointment_id=row.appointment_id,
            day=row.day,
            treatment=row.treatment,
            staff_ids=tuple(int(s) for s in _split(row.staff_ids)),
            fee=row.fee,
        )
        for row in db.scalars(select(VisitRow))
    ]
    appointments = [
        Appointment(
            id=row.appointment_id,
            patient_id=row.patient_id,
            start=row.start,
            duration_minutes=row.duration_minutes,
            treatment=row.treatment,
            status=row.status,
            source=row.source,
            staff_ids=tuple(int(s) for s in _split(row.staff_ids)),
            notes=row.notes or "",
        )
        for row in db.scalars(select(AppointmentRow))
    ]
    events = [
        ReminderEvent(
            id=row.event_id,
            appointment_id=row.appointment_id,
            patient_id=row.patient_id,
            kind=row.kind,
            fire_at=row.fire_at,
            status=row.status,
            channel=row.channel,
            message=row.message,
            sent_at=row.sent_at,
            attempts=row.attempts or 0,
        )
        for row in db.scalars(select(ReminderRow))
    ]

    holidays = db.scalars(select(SpecialHolidayRow)).all()

    clinic.directory.load(patients, visits)
    clinic.book.restore(appointments, events)
    for row in holidays:
        clinic.calendar.add_special_holiday(row.day, row.reason)
    logger.info(
        "Restored %d patients, %d appointments, %d reminders",
        len(patients), len(appointments), len(events),
    )
    return clinic
