"""
Test fixtures. Uses an in-memory SQLite database and a fixed clock so
tests never touch the real database or the wall clock.
"""

import os

# must be set before frontdesk.database builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, StaticPool
from sqlalchemy.orm import sessionmaker

from frontdesk.clinic import build_clinic, weekly_hours_from_config
from frontdesk.clock import FixedClock
from frontdesk.database import Base, get_db, init_db
from frontdesk.deps import get_clinic
from frontdesk.reminders import default_windows

# in-memory, shared by every session through StaticPool
TEST_DATABASE_URL = "sqlite://"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSession = sessionmaker(bind=test_engine, autoflush=False, autocommit=False)

# Tuesday morning, before opening
NOW = datetime(2025, 7, 1, 8, 0)
MARINE_DAY = date(2025, 7, 21)


@pytest.fixture()
def clock():
    return FixedClock(NOW)


@pytest.fixture()
def make_clinic(clock):
    """Builds clinics that share the test clock, e.g. to simulate a restart."""

    def _make():
        return build_clinic(
            clock=clock,
            weekly_hours=weekly_hours_from_config(),
            regular_holidays=["sunday"],
            special_holidays={MARINE_DAY: "Marine Day"},
            windows=default_windows(seven_days=True, three_days=True, one_day=True),
            interval_minutes=30,
            clinic_name="Maple Dental",
        )

    return _make


@pytest.fixture()
def clinic(make_clinic):
    return make_clinic()


@pytest.fixture()
def patients(clinic):
    """The front desk's usual mix of contact details."""
    register = clinic.directory.register
    return {
        "tanaka": register(
            name="Taro Tanaka",
            phone="090-1234-5678",
            email="tanaka@example.com",
            chat_id="tanaka_line",
            social_handle="@tanaka_insta",
            sms_consent=True,
        ),
        "sato": register(
            name="Hanako Sato",
            phone="090-2345-6789",
            email="sato@example.com",
            sms_consent=True,
        ),
        "suzuki": register(
            name="Ichiro Suzuki",
            phone="090-3456-7890",
            chat_id="suzuki_line",
            social_handle="@suzuki_dental",
        ),
        "ito": register(
            name="Ken Ito",
            phone="090-4567-8901",
            sms_consent=True,
        ),
        "kato": register(
            name="Yui Kato",
            phone="090-5678-9012",
        ),
    }


@pytest.fixture()
def db():
    init_db(test_engine)
    session = TestSession()

    yield session

    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture()
def client(clinic, db):
    from frontdesk.main import app

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_clinic] = lambda: clinic
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
