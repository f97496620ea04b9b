"""
Business calendar: weekly opening hours plus regular and special holidays.

Answers "is the clinic open on this date" and "what are that day's hours".
Everything here is a pure lookup over the configured state.
"""

import logging
from datetime import date, datetime, time
from typing import Mapping, Optional, Union

from frontdesk.errors import InvalidDate
from frontdesk.schemas import BusinessHours, HolidaySet, Weekday

logger = logging.getLogger(__name__)

DateLike = Union[date, str]
TimeLike = Union[time, str]


def to_date(value: DateLike) -> date:
    """Accept a date, a datetime or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise InvalidDate(value) from None
    raise InvalidDate(value)


def to_time(value: TimeLike) -> time:
    """Accept a time or an ``HH:MM`` / ``HH:MM:SS`` string."""
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        try:
            return time.fromisoformat(value.strip())
        except ValueError:
            raise InvalidDate(value) from None
    raise InvalidDate(value)


class BusinessCalendar:
    def __init__(
        self,
        weekly_hours: Mapping[Weekday, Optional[BusinessHours]],
        holidays: Optional[HolidaySet] = None,
    ):
        self._hours = {Weekday(day): hours for day, hours in weekly_hours.items()}
        self._holidays = holidays or HolidaySet()

        missing = [
            day.value
            for day in Weekday
            if day not in self._holidays.regular and self._hours.get(day) is None
        ]
        if missing:
            raise ValueError(
                f"no business hours for working day(s): {', '.join(missing)}"
            )

    @property
    def holidays(self) -> HolidaySet:
        return self._holidays

    def is_open(self, day: DateLike) -> bool:
        return not self._holidays.is_holiday(to_date(day))

    def hours_for(self, day: DateLike) -> Optional[BusinessHours]:
        """The day's hours, or None when the clinic is closed."""
        day = to_date(day)
        if self._holidays.is_holiday(day):
            return None
        return self._hours[Weekday.of(day)]

    def holiday_reason(self, day: DateLike) -> Optional[str]:
        day = to_date(day)
        if day in self._holidays.special:
            return self._holidays.special[day]
        weekday = Weekday.of(day)
        if weekday in self._holidays.regular:
            return f"regular holiday ({weekday.value})"
        return None

    def add_special_holiday(self, day: DateLike, reason: str) -> None:
        day = to_date(day)
        special = {**self._holidays.special, day: reason}
        self._holidays = self._holidays.model_copy(update={"special": special})
        logger.info("Special holiday added: %s (%s)", day, reason)

    def remove_special_holiday(self, day: DateLike) -> bool:
        day = to_date(day)
        if day not in self._holidays.special:
            return False
        special = {d: r for d, r in self._holidays.special.items() if d != day}
        self._holidays = self._holidays.model_copy(update={"special": special})
        logger.info("Special holiday removed: %s", day)
        return True
