from dataclasses import dataclass
from datetime import date
from typing import Mapping, Optional, Sequence

from frontdesk import config
from frontdesk.book import AppointmentBook
from frontdesk.business_calendar import BusinessCalendar
from frontdesk.clock import Clock, SystemClock
from frontdesk.identity import IdentityResolver
from frontdesk.patients import PatientDirectory
from frontdesk.reminders import ReminderScheduler, default_windows
from frontdesk.schemas import BusinessHours, HolidaySet, ReminderWindow, Weekday
from frontdesk.slots import SlotGenerator


@dataclass
class Clinic:
    """One clinic's engine, wired together. Nothing here is process-global."""

    clock: Clock
    calendar: BusinessCalendar
    slots: SlotGenerator
    directory: PatientDirectory
    identity: IdentityResolver
    reminders: ReminderScheduler
    book: AppointmentBook


def weekly_hours_from_config(
    table: Mapping[str, Optional[tuple]] = config.WEEKLY_HOURS,
) -> dict[Weekday, Optional[BusinessHours]]:
    hours = {}
    for day, row in table.items():
        if row is None:
            hours[Weekday(day)] = None
            continue
        open_, close, lunch_start, lunch_end = row
        hours[Weekday(day)] = BusinessHours(
            open=open_, close=close, lunch_start=lunch_start, lunch_end=lunch_end
        )
    return hours


def build_clinic(
    clock: Optional[Clock] = None,
    weekly_hours: Optional[Mapping[Weekday, Optional[BusinessHours]]] = None,
    regular_holidays: Optional[Sequence[str]] = None,
    special_holidays: Optional[Mapping[date, str]] = None,
    windows: Optional[Sequence[ReminderWindow]] = None,
    interval_minutes: int = config.SLOT_INTERVAL_MINUTES,
    clinic_name: str = config.CLINIC_NAME,
) -> Clinic:
    clock = clock or SystemClock()
    holidays = HolidaySet(
        regular=frozenset(
            Weekday(d)
            for d in (
                config.REGULAR_HOLIDAYS if regular_holidays is None else regular_holidays
            )
        ),
        special=dict(special_holidays or {}),
    )
    calendar = BusinessCalendar(
        weekly_hours if weekly_hours is not None else weekly_hours_from_config(),
        holidays,
    )
    slots = SlotGenerator(calendar, interval_minutes)
    directory = PatientDirectory(clock)
    reminders = ReminderScheduler(
        directory,
        clock,
        windows=default_windows() if windows is None else windows,
        clinic_name=clinic_name,
    )
    book = AppointmentBook(directory, slots, reminders, clock)
    return Clinic(
        clock=clock,
        calendar=calendar,
        slots=slots,
        directory=directory,
        identity=IdentityResolver(directory),
        reminders=reminders,
        book=book,
    )
