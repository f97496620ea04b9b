"""
List reminder events that are due for delivery.

Meant to run as a daily job (cron, scheduled task, etc.) ahead of the
senders. Phone reminders are printed as a call list for the front desk.
"""

from collections import defaultdict

from frontdesk import store
from frontdesk.clinic import build_clinic
from frontdesk.database import SessionLocal, init_db
from frontdesk.schemas import DeliveryChannel


def main():
    init_db()
    clinic = build_clinic()

    session = SessionLocal()
    try:
        store.restore_clinic(session, clinic)
    finally:
        session.close()

    due = clinic.book.due_reminders()
    by_channel = defaultdict(list)
    for event in due:
        by_channel[event.channel].append(event)

    print(f"{len(due)} reminders due at {clinic.clock.now():%Y-%m-%d %H:%M}")
    for channel in DeliveryChannel:
        events = by_channel.get(channel, [])
        print(f"  {channel.value}: {len(events)}")

    # phone means a person has to call
    for event in by_channel.get(DeliveryChannel.PHONE, []):
        patient = clinic.directory.get(event.patient_id)
        appointment = clinic.book.get(event.appointment_id)
        print(
            f"  call {patient.name} ({patient.phone}) about "
            f"{appointment.treatment} on {appointment.start:%Y-%m-%d %H:%M}"
        )


if __name__ == "__main__":
    main()
