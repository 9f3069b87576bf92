"""
Unit tests for cycle index resolution.

plan-2wk starts Monday 2026-01-05 with a two week cycle:
- 2026-01-05..01-11 -> index 1
- 2026-01-12..01-18 -> index 2
- 2026-01-19..01-25 -> index 1 again
"""

import datetime
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# ruff: noqa: E402
from clinic.core.errors import InvalidInputError
from clinic.core.models import ShiftPlan
from clinic.core.schedule.cycle import is_in_rotation, resolve_cycle_index


@pytest.fixture
def two_week_plan() -> ShiftPlan:
    return ShiftPlan(id="plan-2wk", effective_date="2026-01-05", cycle_length=2, cycle_unit="weeks")


class TestWeeklyCycle:
    """Week-based rotations."""

    @pytest.mark.parametrize(
        ("date", "expected"),
        [
            (datetime.date(2026, 1, 5), 1),
            (datetime.date(2026, 1, 11), 1),
            (datetime.date(2026, 1, 12), 2),
            (datetime.date(2026, 1, 18), 2),
            (datetime.date(2026, 1, 19), 1),
            (datetime.date(2026, 3, 2), 1),
        ],
    )
    def test_two_week_wraparound(self, two_week_plan, date, expected):
        index = resolve_cycle_index(two_week_plan, date)
        assert index == expected, f"{date}: expected index {expected}, got {index}"

    def test_single_week_plan_always_index_one(self):
        plan = ShiftPlan(id="p", effective_date="2026-01-05", cycle_length=1)
        for offset in range(0, 60, 5):
            date = datetime.date(2026, 1, 5) + datetime.timedelta(days=offset)
            assert resolve_cycle_index(plan, date) == 1

    def test_before_start_wraps_backwards(self, two_week_plan):
        """The week before the effective date is the last week of the previous cycle."""
        assert resolve_cycle_index(two_week_plan, datetime.date(2026, 1, 2)) == 2
        assert resolve_cycle_index(two_week_plan, datetime.date(2025, 12, 29)) == 2
        assert resolve_cycle_index(two_week_plan, datetime.date(2025, 12, 22)) == 1

    def test_before_start_sentinel(self, two_week_plan):
        index = resolve_cycle_index(two_week_plan, datetime.date(2026, 1, 2), wrap_before_start=False)
        assert index is None, f"Expected None before the plan starts, got {index}"

    def test_sentinel_not_used_on_or_after_start(self, two_week_plan):
        assert resolve_cycle_index(two_week_plan, datetime.date(2026, 1, 5), wrap_before_start=False) == 1


class TestMonthlyCycle:
    """Monthly plans carry one pattern."""

    def test_months_resolve_to_one(self):
        plan = ShiftPlan(id="p", effective_date="2026-01-01", cycle_length=1, cycle_unit="months")
        for month in range(1, 13):
            assert resolve_cycle_index(plan, datetime.date(2026, month, 15)) == 1

    def test_unit_label_accepted(self):
        plan = ShiftPlan(id="p", effective_date="2026-01-01", cycle_length=1, cycle_unit="Month(s)")
        assert plan.cycle_unit == "months"


class TestUnknownUnit:
    def test_unknown_label_rejected_by_model(self):
        with pytest.raises(ValueError):
            ShiftPlan(id="p", effective_date="2026-01-01", cycle_length=1, cycle_unit="days")

    def test_unvalidated_plan_with_unknown_unit(self):
        """A plan built without validation still cannot resolve to a made-up index."""
        plan = ShiftPlan.model_construct(
            id="p", effective_date=datetime.date(2026, 1, 1), cycle_length=1, cycle_unit="days"
        )
        with pytest.raises(InvalidInputError):
            resolve_cycle_index(plan, datetime.date(2026, 1, 15))


class TestIsInRotation:
    def test_matches_resolved_index(self, two_week_plan):
        assert is_in_rotation(two_week_plan, 2, datetime.date(2026, 1, 13))
        assert not is_in_rotation(two_week_plan, 1, datetime.date(2026, 1, 13))

    def test_false_before_start_without_wrap(self, two_week_plan):
        assert not is_in_rotation(two_week_plan, 2, datetime.date(2026, 1, 2), wrap_before_start=False)
