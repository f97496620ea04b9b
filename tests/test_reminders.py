"""Tests for reminder scheduling, channel choice and message rendering."""

from datetime import date, datetime, timedelta

from frontdesk.reminders import ReminderScheduler, default_windows, select_channel
from frontdesk.schemas import (
    Appointment,
    DeliveryChannel,
    ReminderKind,
    ReminderStatus,
)

NOW = datetime(2025, 7, 1, 8, 0)


def _appointment(patient, start, appointment_id=99, treatment="checkup"):
    return Appointment(
        id=appointment_id, patient_id=patient.id, start=start, treatment=treatment
    )


def test_ten_days_out_gets_all_three(clinic, patients):
    appt = clinic.book.book(patients["tanaka"].id, date(2025, 7, 11), "10:00")
    events = clinic.book.reminders_for(appt.id)

    assert [e.kind for e in events] == [
        ReminderKind.SEVEN_DAYS,
        ReminderKind.THREE_DAYS,
        ReminderKind.ONE_DAY,
    ]
    assert [e.fire_at.date() for e in events] == [
        date(2025, 7, 4), date(2025, 7, 8), date(2025, 7, 10),
    ]
    assert {e.channel for e in events} == {DeliveryChannel.CHAT}
    assert {e.patient_id for e in events} == {patients["tanaka"].id}
    assert len({e.id for e in events}) == 3


def test_two_days_out_gets_only_the_day_before(clinic, patients):
    appt = clinic.book.book(patients["sato"].id, date(2025, 7, 3), "10:00")
    [event] = clinic.book.reminders_for(appt.id)

    assert event.kind == ReminderKind.ONE_DAY
    assert event.fire_at == datetime(2025, 7, 2, 10, 0)
    assert event.status == ReminderStatus.PENDING
    assert event.channel == DeliveryChannel.EMAIL


def test_fire_time_equal_to_now_is_dropped(clinic, patients):
    appt = _appointment(patients["tanaka"], NOW + timedelta(days=7))
    events = clinic.reminders.schedule(appt)
    assert [e.kind for e in events] == [ReminderKind.THREE_DAYS, ReminderKind.ONE_DAY]


def test_same_day_booking_gets_nothing(clinic, patients):
    appt = clinic.book.book(patients["tanaka"].id, date(2025, 7, 1), "10:00")
    assert clinic.book.reminders_for(appt.id) == []


def test_disabled_windows_are_skipped(clinic, clock, patients):
    scheduler = ReminderScheduler(
        clinic.directory,
        clock,
        windows=default_windows(seven_days=True, three_days=False, one_day=True),
        clinic_name="Maple Dental",
    )
    appt = _appointment(patients["tanaka"], datetime(2025, 7, 11, 10, 0))

    kinds = [e.kind for e in scheduler.schedule(appt)]
    assert kinds == [ReminderKind.SEVEN_DAYS, ReminderKind.ONE_DAY]


def test_existing_events_are_not_duplicated(clinic, patients):
    appt = _appointment(patients["tanaka"], datetime(2025, 7, 11, 10, 0))
    first = clinic.reminders.schedule(appt)

    assert clinic.reminders.schedule(appt, existing=first) == []
    refill = clinic.reminders.schedule(appt, existing=first[:1])
    assert [e.kind for e in refill] == [ReminderKind.THREE_DAYS, ReminderKind.ONE_DAY]


def test_channel_priority(patients):
    assert select_channel(patients["tanaka"]) == DeliveryChannel.CHAT
    assert select_channel(patients["sato"]) == DeliveryChannel.EMAIL
    assert select_channel(patients["suzuki"]) == DeliveryChannel.CHAT
    assert select_channel(patients["ito"]) == DeliveryChannel.SMS
    assert select_channel(patients["kato"]) == DeliveryChannel.PHONE


def test_social_handle_is_not_a_reminder_channel(clinic):
    patient = clinic.directory.register(
        name="Mei Yamada", phone="090-0000-1111", social_handle="@mei"
    )
    assert select_channel(patient) == DeliveryChannel.PHONE


def test_preferred_contact_does_not_change_channel(clinic):
    patient = clinic.directory.register(
        name="Sho Mori",
        phone="090-0000-2222",
        email="mori@example.com",
        chat_id="mori_line",
        preferred_contact=[DeliveryChannel.EMAIL],
    )
    assert select_channel(patient) == DeliveryChannel.CHAT


def test_channel_is_fixed_at_scheduling_time(clinic, patients):
    appt = clinic.book.book(patients["sato"].id, date(2025, 7, 11), "10:00")
    clinic.directory.update_contact(patients["sato"].id, chat_id="sato_line")

    assert {e.channel for e in clinic.book.reminders_for(appt.id)} == {
        DeliveryChannel.EMAIL
    }


def test_message_mentions_patient_clinic_and_time(clinic, patients):
    appt = clinic.book.book(
        patients["tanaka"].id, date(2025, 7, 11), "10:00", treatment="cleaning"
    )
    seven, three, one = clinic.book.reminders_for(appt.id)

    for event in (seven, three, one):
        assert "Taro Tanaka" in event.message
        assert "Maple Dental" in event.message
        assert "Friday 11 July 2025 at 10:00" in event.message
        assert "cleaning" in event.message
    assert "in one week" in seven.message
    assert "in three days" in three.message
    assert "tomorrow" in one.message


def test_sms_message_is_short(clinic, patients):
    appt = clinic.book.book(patients["ito"].id, date(2025, 7, 11), "10:00")
    events = clinic.book.reminders_for(appt.id)

    for event in events:
        assert event.channel == DeliveryChannel.SMS
        assert "\n" not in event.message
        assert "07/11 10:00" in event.message
        assert event.message.startswith("Maple Dental:")
