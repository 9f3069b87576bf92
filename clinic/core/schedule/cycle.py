"""Rotation position (cycle index) for a plan on a given date."""

import datetime
from typing import TYPE_CHECKING

from clinic.core.constants import CYCLE_UNIT_MONTHS, CYCLE_UNIT_WEEKS, DAYS_PER_WEEK
from clinic.core.errors import InvalidInputError

if TYPE_CHECKING:
    from clinic.core.models import ShiftPlan


def resolve_cycle_index(
    plan: "ShiftPlan",
    target_date: datetime.date,
    wrap_before_start: bool = True,
) -> int | None:
    """
    Returns the 1-based cycle index that applies on target_date.

    Args:
        plan: Rotation with effective_date, cycle_length and cycle_unit
        target_date: Date to resolve
        wrap_before_start: For dates before the plan's effective_date, wrap
            backwards through the rotation (True) or return None (False)

    Returns:
        Cycle index in 1..cycle_length, or None for "not yet active" when
        wrap_before_start is False and the date precedes the plan
    """
    diff_days = (target_date - plan.effective_date).days

    if diff_days < 0 and not wrap_before_start:
        return None

    if plan.cycle_unit == CYCLE_UNIT_WEEKS:
        cycle_length_days = plan.cycle_length * DAYS_PER_WEEK
        # Python's % is already non-negative for a positive divisor
        offset = diff_days % cycle_length_days
        week_index = offset // DAYS_PER_WEEK
        return (week_index % plan.cycle_length) + 1

    if plan.cycle_unit == CYCLE_UNIT_MONTHS:
        # Monthly plans carry a single recurring pattern
        return 1

    raise InvalidInputError(f"Plan {plan.id}: unknown cycle unit {plan.cycle_unit!r}")


def is_in_rotation(
    plan: "ShiftPlan",
    cycle_index: int,
    target_date: datetime.date,
    wrap_before_start: bool = True,
) -> bool:
    """True when a slot at cycle_index is the active rotation position on target_date."""
    return resolve_cycle_index(plan, target_date, wrap_before_start=wrap_before_start) == cycle_index
