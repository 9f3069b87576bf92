import datetime
import sys
from pathlib import Path

import pytest
from icalendar import Calendar

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# ruff: noqa: E402
from conftest import build_schedule_data

from clinic.core.calendar_export import generate_ical, generate_ical_for_month
from clinic.core.errors import InvalidInputError, UnknownReferenceError
from clinic.core.models import ShiftOccurrence

WEEK_ONE = (datetime.date(2026, 1, 5), datetime.date(2026, 1, 11))


def _events(ical_str: str):
    return Calendar.from_ical(ical_str).walk("VEVENT")


class TestCalendarExport:
    def test_generate_ical_is_valid(self, schedule_data):
        """Generated iCal parses and contains VCALENDAR and VEVENT."""
        ical_str = generate_ical("prov-a", *WEEK_ONE, schedule_data)

        assert "BEGIN:VCALENDAR" in ical_str
        assert "BEGIN:VEVENT" in ical_str
        cal = Calendar.from_ical(ical_str)
        assert cal.get("x-wr-calname") == "Shifts Dr. Alice Avery"
        assert cal.get("x-wr-timezone") == "America/New_York"

    def test_one_event_per_working_day(self, schedule_data):
        events = _events(generate_ical("prov-a", *WEEK_ONE, schedule_data))
        assert len(events) == 5, f"Expected Mon-Fri events, got {len(events)}"

        first = min(events, key=lambda e: e.decoded("dtstart"))
        assert str(first.get("summary")) == "Day Shift"
        assert first.decoded("dtstart") == datetime.datetime(2026, 1, 5, 8, 0)
        assert first.decoded("dtend") == datetime.datetime(2026, 1, 5, 16, 0)
        assert str(first.get("location")) == "Downtown"
        assert "8h" in str(first.get("description"))

    def test_off_week_has_no_events(self, schedule_data):
        events = _events(generate_ical("prov-a", datetime.date(2026, 1, 12), datetime.date(2026, 1, 18), schedule_data))
        assert events == []

    def test_cancelled_occurrence_omitted(self):
        data = build_schedule_data(
            occurrences=[
                ShiftOccurrence(id="o1", assignment_id="asg-a1", date=datetime.date(2026, 1, 5), status="cancelled")
            ]
        )
        assert len(_events(generate_ical("prov-a", *WEEK_ONE, data))) == 4

    def test_swapped_occurrence_moves_to_substitute(self):
        data = build_schedule_data(
            occurrences=[
                ShiftOccurrence(
                    id="o1",
                    assignment_id="asg-a1",
                    date=datetime.date(2026, 1, 5),
                    status="swapped",
                    substitute_provider_id="prov-b",
                    note="Family event",
                )
            ]
        )
        assert len(_events(generate_ical("prov-a", *WEEK_ONE, data))) == 4

        (covered,) = _events(generate_ical("prov-b", *WEEK_ONE, data))
        assert "covering Dr. Alice Avery" in str(covered.get("summary"))
        assert "Family event" in str(covered.get("description"))

    def test_unique_uids(self, schedule_data):
        events = _events(generate_ical("prov-a", *WEEK_ONE, schedule_data))
        uids = [str(e.get("uid")) for e in events]
        assert len(uids) == len(set(uids))

    def test_unknown_provider(self, schedule_data):
        with pytest.raises(UnknownReferenceError):
            generate_ical("nobody", *WEEK_ONE, schedule_data)


class TestMonthExport:
    def test_february_for_prov_c(self, schedule_data):
        events = _events(generate_ical_for_month("prov-c", 2026, 2, schedule_data))
        assert len(events) == 20, f"Expected 20 weekdays in February 2026, got {len(events)}"

    def test_invalid_month(self, schedule_data):
        with pytest.raises(InvalidInputError):
            generate_ical_for_month("prov-a", 2026, 13, schedule_data)
