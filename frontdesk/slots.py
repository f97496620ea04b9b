"""
Slot generation.

Builds the grid of bookable start times for one day from the business
calendar. Lunch slots are holes in the grid: the cursor still advances
through them, so later slots keep their positions.
"""

from datetime import datetime, time, timedelta
from typing import List, Optional

from frontdesk.business_calendar import (
    BusinessCalendar,
    DateLike,
    TimeLike,
    to_date,
    to_time,
)
from frontdesk.config import SLOT_INTERVAL_MINUTES


class SlotGenerator:
    def __init__(
        self,
        calendar: BusinessCalendar,
        interval_minutes: int = SLOT_INTERVAL_MINUTES,
    ):
        self.calendar = calendar
        self.interval_minutes = interval_minutes

    def generate_slots(
        self, day: DateLike, interval_minutes: Optional[int] = None
    ) -> List[time]:
        """
        Start times for ``day``, spaced by ``interval_minutes``.

        Algorithm:
            1. Closed day -> empty grid
            2. Walk from open to close (exclusive) in interval steps
            3. Skip starts inside [lunch_start, lunch_end)
        """
        interval = (
            self.interval_minutes if interval_minutes is None else interval_minutes
        )
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        day = to_date(day)
        hours = self.calendar.hours_for(day)
        if hours is None:
            return []

        step = timedelta(minutes=interval)
        cursor = datetime.combine(day, hours.open)
        closing = datetime.combine(day, hours.close)

        slots = []
        while cursor < closing:
            start = cursor.time()
            if not hours.in_lunch(start):
                slots.append(start)
            cursor += step

        return slots

    def is_slot(
        self, day: DateLike, at: TimeLike, interval_minutes: Optional[int] = None
    ) -> bool:
        return to_time(at) in self.generate_slots(day, interval_minutes)
