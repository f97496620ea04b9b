"""
Seed the database with demo patients and a week of bookings.

Patients get a realistic mix of contact details so every reminder channel
shows up: some on the chat app, some email-only, some SMS-only and a few
reachable by phone alone.
"""

import random
from datetime import timedelta

from faker import Faker

from frontdesk import store
from frontdesk.clinic import build_clinic
from frontdesk.database import SessionLocal, init_db
from frontdesk.errors import SlotConflict
from frontdesk.schemas import BookingSource, DeliveryChannel

fake = Faker("en_CA")
Faker.seed(42)
random.seed(42)

# -- tunables --
NUM_PATIENTS = 40
NUM_BOOKINGS = 60
DAYS_AHEAD = 14
TREATMENTS = ["checkup", "cleaning", "cavity treatment", "extraction", "whitening"]
TREATMENT_WEIGHTS = [0.35, 0.30, 0.20, 0.05, 0.10]
SOURCES = list(BookingSource)


def generate_patients(clinic, session):
    patients = []
    for _ in range(NUM_PATIENTS):
        roll = random.random()
        chat_id = f"U{fake.hexify('^' * 16)}" if roll < 0.45 else None
        email = fake.email() if roll < 0.80 else None
        patient = clinic.directory.register(
            name=fake.name(),
            phone=fake.numerify("###-###-####"),
            email=email,
            chat_id=chat_id,
            social_handle=f"@{fake.user_name()}" if random.random() < 0.3 else None,
            sms_consent=random.random() < 0.6,
            preferred_contact=[
                DeliveryChannel.CHAT if chat_id else DeliveryChannel.EMAIL
            ],
        )
        store.save_patient(session, patient)
        patients.append(patient)
    return patients


def generate_bookings(clinic, session, patients):
    today = clinic.clock.now().date()
    booked = 0
    attempts = 0
    while booked < NUM_BOOKINGS and attempts < NUM_BOOKINGS * 10:
        attempts += 1
        day = today + timedelta(days=random.randint(1, DAYS_AHEAD))
        free = clinic.book.available_slots(day)
        if not free:
            continue
        try:
            appointment = clinic.book.book(
                patient_id=random.choice(patients).id,
                day=day,
                start_time=random.choice(free),
                treatment=random.choices(TREATMENTS, weights=TREATMENT_WEIGHTS)[0],
                source=random.choice(SOURCES),
            )
        except SlotConflict:
            continue
        store.save_booking(
            session, appointment, clinic.book.reminders_for(appointment.id)
        )
        booked += 1
    return booked


def main():
    init_db()
    clinic = build_clinic()

    session = SessionLocal()
    try:
        store.restore_clinic(session, clinic)
        patients = generate_patients(clinic, session)
        print(f"Created {len(patients)} patients")

        booked = generate_bookings(clinic, session, patients)
        print(f"Booked {booked} appointments over the next {DAYS_AHEAD} days")
    finally:
        session.close()


if __name__ == "__main__":
    main()
