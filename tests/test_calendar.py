"""Tests for the business calendar and slot grid."""

from datetime import date, time, timedelta

import pytest
from pydantic import ValidationError

from frontdesk.business_calendar import BusinessCalendar, to_date, to_time
from frontdesk.errors import InvalidDate
from frontdesk.schemas import BusinessHours, HolidaySet, Weekday
from frontdesk.slots import SlotGenerator

MONDAY = date(2025, 7, 7)
SATURDAY = date(2025, 7, 12)
SUNDAY = date(2025, 7, 6)
MARINE_DAY = date(2025, 7, 21)


def _t(text):
    return time.fromisoformat(text)


def test_business_hours_order_is_enforced():
    with pytest.raises(ValidationError):
        BusinessHours(open="18:00", close="09:00")
    with pytest.raises(ValidationError):
        BusinessHours(open="09:00", close="18:00", lunch_start="13:00", lunch_end="12:00")
    with pytest.raises(ValidationError):
        BusinessHours(open="09:00", close="18:00", lunch_start="08:00", lunch_end="10:00")


def test_lunch_needs_both_ends():
    with pytest.raises(ValidationError):
        BusinessHours(open="09:00", close="18:00", lunch_start="12:00")


def test_working_day_without_hours_is_rejected():
    with pytest.raises(ValueError):
        BusinessCalendar({Weekday.MONDAY: None}, HolidaySet())


def test_regular_and_special_holidays_are_closed(clinic):
    calendar = clinic.calendar
    assert calendar.is_open(MONDAY)
    assert not calendar.is_open(SUNDAY)
    assert not calendar.is_open(MARINE_DAY)
    assert calendar.hours_for(SUNDAY) is None
    assert calendar.hours_for(MARINE_DAY) is None
    assert calendar.holiday_reason(MARINE_DAY) == "Marine Day"
    assert "sunday" in calendar.holiday_reason(SUNDAY)
    assert calendar.holiday_reason(MONDAY) is None


def test_special_holiday_is_not_yearly(clinic):
    assert clinic.calendar.is_open(date(2026, 7, 21))


def test_hours_for_open_day(clinic):
    hours = clinic.calendar.hours_for(SATURDAY)
    assert hours.open == _t("09:00")
    assert hours.close == _t("17:00")
    assert not hours.has_lunch


def test_iso_strings_are_accepted(clinic):
    assert clinic.calendar.is_open("2025-07-07")
    assert not clinic.calendar.is_open("2025-07-06")


@pytest.mark.parametrize("bad", ["2025-13-01", "next monday", "", 20250707, None])
def test_malformed_date_raises_invalid_date(clinic, bad):
    with pytest.raises(InvalidDate):
        clinic.calendar.is_open(bad)


def test_to_time_rejects_garbage():
    assert to_time("09:30") == _t("09:30")
    with pytest.raises(InvalidDate):
        to_time("9h30")


def test_to_date_accepts_datetime():
    from datetime import datetime

    assert to_date(datetime(2025, 7, 7, 15, 30)) == MONDAY


def test_adding_and_removing_special_holiday(clinic):
    day = date(2025, 7, 8)
    clinic.calendar.add_special_holiday(day, "Staff training")
    assert not clinic.calendar.is_open(day)
    assert clinic.slots.generate_slots(day) == []

    assert clinic.calendar.remove_special_holiday(day)
    assert clinic.calendar.is_open(day)
    assert not clinic.calendar.remove_special_holiday(day)


# -- slot grid --


def test_monday_grid_skips_lunch(clinic):
    slots = [s.strftime("%H:%M") for s in clinic.slots.generate_slots(MONDAY, 30)]

    assert slots[:6] == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]
    assert slots[6:] == [
        "13:00", "13:30", "14:00", "14:30", "15:00",
        "15:30", "16:00", "16:30", "17:00", "17:30",
    ]
    assert "12:00" not in slots
    assert "12:30" not in slots
    assert "18:00" not in slots


def test_default_interval_comes_from_generator(clinic):
    assert clinic.slots.generate_slots(MONDAY) == clinic.slots.generate_slots(MONDAY, 30)


def test_grid_is_empty_on_closed_days(clinic):
    for closed in (SUNDAY, SUNDAY + timedelta(days=7), MARINE_DAY):
        assert clinic.slots.generate_slots(closed, 15) == []


def test_grid_is_reproducible(clinic):
    first = clinic.slots.generate_slots(MONDAY, 15)
    second = clinic.slots.generate_slots(MONDAY, 15)
    assert first == second
    assert len(first) == 32


@pytest.mark.parametrize("interval", [10, 15, 20, 25, 30, 45, 60, 90])
def test_every_slot_is_inside_open_hours(clinic, interval):
    for offset in range(14):
        day = MONDAY + timedelta(days=offset)
        hours = clinic.calendar.hours_for(day)
        for slot in clinic.slots.generate_slots(day, interval):
            assert hours.open <= slot < hours.close
            assert not hours.in_lunch(slot)


def test_uneven_interval_keeps_grid_positions():
    hours = BusinessHours(
        open="09:00", close="12:00", lunch_start="10:00", lunch_end="10:50"
    )
    calendar = BusinessCalendar(
        {day: hours for day in Weekday}, HolidaySet()
    )
    slots = SlotGenerator(calendar).generate_slots(MONDAY, 25)

    # 09:00 09:25 09:50 | 10:15 10:40 skipped | 11:05 11:30 11:55
    assert [s.strftime("%H:%M") for s in slots] == [
        "09:00", "09:25", "09:50", "11:05", "11:30", "11:55",
    ]


def test_slot_on_lunch_end_is_included():
    hours = BusinessHours(
        open="09:00", close="11:00", lunch_start="09:30", lunch_end="10:00"
    )
    calendar = BusinessCalendar({day: hours for day in Weekday})
    slots = SlotGenerator(calendar).generate_slots(MONDAY, 30)
    assert slots == [_t("09:00"), _t("10:00"), _t("10:30")]


def test_non_positive_interval_is_rejected(clinic):
    with pytest.raises(ValueError):
        clinic.slots.generate_slots(MONDAY, 0)


def test_is_slot(clinic):
    assert clinic.slots.is_slot(MONDAY, "09:30")
    assert not clinic.slots.is_slot(MONDAY, "12:00")
    assert not clinic.slots.is_slot(MONDAY, "09:15")
    assert clinic.slots.is_slot(MONDAY, "09:15", 15)
