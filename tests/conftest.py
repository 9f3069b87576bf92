"""
Pytest configuration and shared fixtures for testing.

Provides reusable test fixtures:
- schedule_data: Small clinic snapshot covering rotation, holidays, PTO and bookings
- test_db: In-memory SQLite database for isolated testing
- seeded_db: test_db with schedule_data written to it
- test_client: FastAPI TestClient for API integration tests

Snapshot layout (plan-2wk starts Monday 2026-01-05):
- Week 1 (cycle index 1): tpl-day, 08:00-16:00 at Downtown
- Week 2 (cycle index 2): tpl-north, 08:00-16:00 at Northside
- prov-a holds slot 1, prov-b holds slot 2, prov-c holds a February-only weekly slot
"""

import datetime
import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Keep the app's own engine off disk during tests
os.environ.setdefault("CLINIC_DATABASE_URL", "sqlite://")

# ruff: noqa: E402
from clinic.core.models import (
    Booking,
    HolidayDate,
    Location,
    Provider,
    ProviderAssignment,
    PtoEntry,
    ScheduleData,
    ShiftPlan,
    ShiftPlanSlot,
    ShiftTemplate,
)
from clinic.core.storage import seed_database
from clinic.database.database import Base, get_db
from clinic.main import app

WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri"]


def build_schedule_data(**overrides) -> ScheduleData:
    """Build the shared snapshot; keyword arguments replace whole collections."""
    collections = {
        "locations": [
            Location(id="loc-a", name="Downtown"),
            Location(id="loc-b", name="Northside"),
        ],
        "providers": [
            Provider(
                id="prov-a",
                name="Dr. Alice Avery",
                role="Dentist",
                primary_location_id="loc-a",
                holiday_calendar_id="hcal",
                pto_calendar_id="pto-a",
            ),
            Provider(
                id="prov-b",
                name="Dr. Ben Brooks",
                role="Dentist",
                primary_location_id="loc-b",
                holiday_calendar_id="hcal",
                pto_calendar_id="pto-b",
            ),
            Provider(
                id="prov-c",
                name="Cara Cole RDH",
                role="Hygienist",
                primary_location_id="loc-a",
                holiday_calendar_id="hcal",
                pto_calendar_id="pto-c",
            ),
        ],
        "templates": [
            ShiftTemplate(
                id="tpl-day",
                name="Day Shift",
                week_days=WEEKDAYS,
                start_time="08:00",
                duration_minutes=480,
                location_id="loc-a",
            ),
            ShiftTemplate(
                id="tpl-north",
                name="Northside Day",
                week_days=WEEKDAYS,
                start_time="08:00",
                duration_minutes=480,
                location_id="loc-b",
            ),
        ],
        "plans": [
            ShiftPlan(id="plan-2wk", name="Two week", effective_date="2026-01-05", cycle_length=2),
            ShiftPlan(id="plan-weekly", name="Weekly", effective_date="2026-01-05", cycle_length=1),
        ],
        "slots": [
            ShiftPlanSlot(id="slot-a1", shift_plan_id="plan-2wk", cycle_index=1, template_id="tpl-day"),
            ShiftPlanSlot(id="slot-a2", shift_plan_id="plan-2wk", cycle_index=2, template_id="tpl-north"),
            ShiftPlanSlot(id="slot-w", shift_plan_id="plan-weekly", cycle_index=1, template_id="tpl-day"),
        ],
        "assignments": [
            ProviderAssignment(
                id="asg-a1", provider_id="prov-a", shift_plan_slot_id="slot-a1", effective_date="2026-01-05"
            ),
            ProviderAssignment(
                id="asg-b2", provider_id="prov-b", shift_plan_slot_id="slot-a2", effective_date="2026-01-05"
            ),
            ProviderAssignment(
                id="asg-c-feb",
                provider_id="prov-c",
                shift_plan_slot_id="slot-w",
                effective_date="2026-02-01",
                end_date="2026-02-28",
            ),
        ],
        "holidays": [
            HolidayDate(id="hd-nyd", calendar_id="hcal", date="2026-01-01", name="New Year's Day"),
            HolidayDate(id="hd-mlk", calendar_id="hcal", date="2026-01-19", name="MLK Day"),
        ],
        "pto_entries": [
            PtoEntry(
                id="pto-a-lunch",
                calendar_id="pto-a",
                start_date="2026-01-06",
                end_date="2026-01-06",
                start_time="12:00",
                end_time="13:00",
                reason="Lunch meeting",
            ),
            PtoEntry(
                id="pto-a-ski",
                calendar_id="pto-a",
                start_date="2026-01-19",
                end_date="2026-01-21",
                reason="Ski trip",
            ),
            PtoEntry(
                id="pto-b-conf",
                calendar_id="pto-b",
                start_date="2026-01-26",
                end_date="2026-01-28",
                start_time="13:00",
                end_time="10:00",
                reason="Conference",
            ),
        ],
        "bookings": [
            Booking(id="bk-1", provider_id="prov-a", location_id="loc-a", date="2026-01-07", start_time="09:00"),
            Booking(
                id="bk-2",
                provider_id="prov-a",
                location_id="loc-a",
                date="2026-01-07",
                start_time="10:00",
                status="cancelled",
            ),
            Booking(
                id="bk-3",
                provider_id="prov-a",
                location_id="loc-a",
                date="2026-01-08",
                start_time="08:00",
                duration_minutes=480,
            ),
        ],
        "occurrences": [],
    }
    collections.update(overrides)
    return ScheduleData(**collections)


def slot_times(result) -> list[str]:
    return [s.time for s in result.slots]


@pytest.fixture
def schedule_data() -> ScheduleData:
    return build_schedule_data()


@pytest.fixture
def monday() -> datetime.date:
    """First day of plan-2wk, cycle index 1."""
    return datetime.date(2026, 1, 5)


@pytest.fixture(scope="function")
def test_db():
    """
    Create an in-memory SQLite database for testing.

    A fresh database per test function, dropped afterwards.

    Yields:
        SQLAlchemy Session: Database session for test use
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def seeded_db(test_db, schedule_data):
    """test_db populated with the shared snapshot."""
    seed_database(test_db, schedule_data)
    return test_db


@pytest.fixture(scope="function")
def test_client(seeded_db):
    """
    FastAPI TestClient backed by the seeded in-memory database.

    Yields:
        TestClient: FastAPI test client for API testing
    """

    def override_get_db():
        try:
            yield seeded_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
