import os


def _flag(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///frontdesk.db")
CLINIC_NAME = os.getenv("CLINIC_NAME", "Frontdesk Dental Clinic")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

SLOT_INTERVAL_MINUTES = int(os.getenv("SLOT_INTERVAL_MINUTES", "15"))
DEFAULT_DURATION_MINUTES = int(os.getenv("DEFAULT_DURATION_MINUTES", "30"))

REMINDER_SEVEN_DAYS = _flag("REMINDER_SEVEN_DAYS")
REMINDER_THREE_DAYS = _flag("REMINDER_THREE_DAYS")
REMINDER_ONE_DAY = _flag("REMINDER_ONE_DAY")

# comma separated weekday names, e.g. "sunday,thursday"
REGULAR_HOLIDAYS = [
    day.strip().lower()
    for day in os.getenv("REGULAR_HOLIDAYS", "sunday").split(",")
    if day.strip()
]

# weekday -> (open, close, lunch_start, lunch_end); None means no hours
WEEKLY_HOURS = {
    "monday": ("09:00", "18:00", "12:00", "13:00"),
    "tuesday": ("09:00", "18:00", "12:00", "13:00"),
    "wednesday": ("09:00", "18:00", "12:00", "13:00"),
    "thursday": ("09:00", "18:00", "12:00", "13:00"),
    "friday": ("09:00", "18:00", "12:00", "13:00"),
    "saturday": ("09:00", "17:00", None, None),
    "sunday": None,
}

TREATMENT_FEES = {
    "checkup": 3500,
    "cleaning": 5000,
    "cavity treatment": 8000,
    "extraction": 10000,
    "whitening": 15000,
    "consultation": 2000,
}
DEFAULT_TREATMENT_FEE = 5000

# failed reminders are offered again until they reach this many attempts
MAX_DELIVERY_ATTEMPTS = int(os.getenv("MAX_DELIVERY_ATTEMPTS", "3"))
