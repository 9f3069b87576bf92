"""
Tests for occurrence generation and how stored overrides decorate it.
"""

import datetime
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# ruff: noqa: E402
from conftest import build_schedule_data

from clinic.core.errors import InvalidInputError
from clinic.core.models import ShiftOccurrence
from clinic.core.schedule import generate_occurrences, generate_occurrences_for_range


def _keys(occurrences):
    return [(o.assignment_id, o.date.isoformat()) for o in occurrences]


class TestGeneration:
    def test_week_one_only_slot_one(self, schedule_data, monday):
        result = generate_occurrences([monday], schedule_data)
        assert _keys(result) == [("asg-a1", "2026-01-05")], f"Got {_keys(result)}"
        occurrence = result[0]
        assert occurrence.provider_id == "prov-a"
        assert occurrence.template_name == "Day Shift"
        assert occurrence.location_name == "Downtown"
        assert occurrence.status == "scheduled"
        assert occurrence.substitute_provider_id is None

    def test_week_two_only_slot_two(self, schedule_data):
        result = generate_occurrences(["2026-01-12"], schedule_data)
        assert _keys(result) == [("asg-b2", "2026-01-12")]

    def test_weekend_empty(self, schedule_data):
        assert generate_occurrences(["2026-01-10", "2026-01-11"], schedule_data) == []

    def test_nothing_before_plan_start(self, schedule_data):
        """Unlike availability, the grid does not wrap backwards before a plan's start."""
        assert generate_occurrences(["2026-01-02"], schedule_data) == []

    def test_assignment_window_respected(self, schedule_data):
        """prov-c's assignment covers February only."""
        february = generate_occurrences(["2026-02-02"], schedule_data)
        assert ("asg-c-feb", "2026-02-02") in _keys(february)
        march = generate_occurrences(["2026-03-02"], schedule_data)
        assert all(o.provider_id != "prov-c" for o in march), f"Got {_keys(march)}"

    def test_holidays_do_not_suppress_occurrences(self, schedule_data):
        """The grid shows the rotation; holiday closures only affect booking."""
        assert _keys(generate_occurrences(["2026-01-19"], schedule_data)) == [("asg-a1", "2026-01-19")]

    def test_sorted_and_deduplicated_dates(self, schedule_data, monday):
        result = generate_occurrences([monday + datetime.timedelta(days=1), monday, monday], schedule_data)
        assert [o.date for o in result] == [monday, monday + datetime.timedelta(days=1)]

    def test_missing_template_skipped(self, schedule_data, monday):
        data = build_schedule_data(templates=[schedule_data.template("tpl-north")])
        assert generate_occurrences([monday], data) == []


class TestOverrides:
    def test_cancel_wins(self, monday):
        data = build_schedule_data(
            occurrences=[ShiftOccurrence(id="o1", assignment_id="asg-a1", date=monday, status="cancelled")]
        )
        (occurrence,) = generate_occurrences([monday], data)
        assert occurrence.status == "cancelled"
        assert occurrence.working_provider_id is None

    def test_swap_sets_substitute(self, monday):
        data = build_schedule_data(
            occurrences=[
                ShiftOccurrence(
                    id="o1",
                    assignment_id="asg-a1",
                    date=monday,
                    status="swapped",
                    substitute_provider_id="prov-b",
                )
            ]
        )
        (occurrence,) = generate_occurrences([monday], data)
        assert occurrence.status == "swapped"
        assert occurrence.substitute_provider_id == "prov-b"
        assert occurrence.working_provider_id == "prov-b"

    def test_override_on_ungenerated_date_is_ad_hoc(self):
        """A shift moved to a Saturday shows up there."""
        saturday = datetime.date(2026, 1, 10)
        data = build_schedule_data(
            occurrences=[ShiftOccurrence(id="o1", assignment_id="asg-a1", date=saturday, status="scheduled")]
        )
        (occurrence,) = generate_occurrences([saturday], data)
        assert occurrence.ad_hoc
        assert occurrence.provider_id == "prov-a"
        assert occurrence.start_time == "08:00"

    def test_cancelled_override_on_ungenerated_date_hidden(self):
        saturday = datetime.date(2026, 1, 10)
        data = build_schedule_data(
            occurrences=[ShiftOccurrence(id="o1", assignment_id="asg-a1", date=saturday, status="cancelled")]
        )
        assert generate_occurrences([saturday], data) == []


class TestRange:
    def test_range_inclusive(self, schedule_data):
        result = generate_occurrences_for_range("2026-01-05", "2026-01-18", schedule_data)
        # 5 weekdays for prov-a in week 1, 5 for prov-b in week 2
        assert len(result) == 10, f"Expected 10 occurrences, got {len(result)}"
        assert {o.provider_id for o in result if o.date.isoformat() < "2026-01-12"} == {"prov-a"}
        assert {o.provider_id for o in result if o.date.isoformat() >= "2026-01-12"} == {"prov-b"}

    def test_end_before_start(self, schedule_data):
        with pytest.raises(InvalidInputError):
            generate_occurrences_for_range("2026-01-10", "2026-01-05", schedule_data)

    def test_range_limit(self, schedule_data):
        with pytest.raises(InvalidInputError):
            generate_occurrences_for_range("2026-01-01", "2027-12-31", schedule_data)
