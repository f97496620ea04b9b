from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from frontdesk.database import Base


class PatientRow(Base):
    __tablename__ = "patients"

    patient_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    patient_number: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    chat_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    social_handle: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sms_consent: Mapped[bool] = mapped_column(Boolean, default=False)
    # comma separated delivery channels, display only
    preferred_contact: Mapped[str] = mapped_column(String(64), default="")
    visit_count: Mapped[int] = mapped_column(Integer, default=0)
    last_visit: Mapped[date | None] = mapped_column(Date, nullable=True)
    registered_on: Mapped[date | None] = mapped_column(Date, nullable=True)

    appointments: Mapped[list["AppointmentRow"]] = relationship(
        back_populates="patient"
    )
    visits: Mapped[list["VisitRow"]] = relationship(back_populates="patient")


class VisitRow(Base):
    __tablename__ = "visits"

    visit_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    patient_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("patients.patient_id"), nullable=False
    )
    appointment_id: Mapped[int] = mapped_column(Integer, nullable=False)
    day: Mapped[date] = mapped_column(Date, nullable=False)
    treatment: Mapped[str] = mapped_column(String(100), nullable=False)
    staff_ids: Mapped[str] = mapped_column(String(64), default="")
    fee: Mapped[int] = mapped_column(Integer, default=0)

    patient: Mapped["PatientRow"] = relationship(back_populates="visits")


class AppointmentRow(Base):
    __tablename__ = "appointments"

    appointment_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    patient_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("patients.patient_id"), nullable=False
    )
    start: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    treatment: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(15), nullable=False)
    source: Mapped[str] = mapped_column(String(10), nullable=False)
    staff_ids: Mapped[str] = mapped_column(String(64), default="")
    notes: Mapped[str] = mapped_column(Text, default="")

    patient: Mapped["PatientRow"] = relationship(back_populates="appointments")
    reminders: Mapped[list["ReminderRow"]] = relationship(
        back_populates="appointment"
    )


class ReminderRow(Base):
    __tablename__ = "reminder_events"

    event_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    appointment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("appointments.appointment_id"), nullable=False
    )
    patient_id: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(12), nullable=False)
    fire_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(10), nullable=False)
    channel: Mapped[str] = mapped_column(String(10), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0)

    appointment: Mapped["AppointmentRow"] = relationship(back_populates="reminders")


class SpecialHolidayRow(Base):
    __tablename__ = "special_holidays"

    day: Mapped[date] = mapped_column(Date, primary_key=True)
    reason: Mapped[str] = mapped_column(String(100), nullable=False)
