"""
Occurrence generation for the admin grid.

An occurrence is one assignment working its template on one date. The
generated default is "scheduled"; a stored ShiftOccurrence for the same
(assignment_id, date) replaces it.
"""

import datetime
import logging
from collections.abc import Iterable

from clinic.core.config import MAX_OCCURRENCE_RANGE_DAYS
from clinic.core.constants import STATUS_CANCELLED
from clinic.core.errors import InvalidInputError
from clinic.core.models import (
    GeneratedOccurrence,
    ProviderAssignment,
    ScheduleData,
    ShiftOccurrence,
    ShiftPlanSlot,
    ShiftTemplate,
)
from clinic.core.time_utils import iter_dates, parse_date

from .cycle import is_in_rotation

logger = logging.getLogger(__name__)


def _resolve_slot_and_template(
    assignment: ProviderAssignment,
    data: ScheduleData,
) -> tuple[ShiftPlanSlot, ShiftTemplate] | None:
    slot = data.slot(assignment.shift_plan_slot_id)
    if slot is None:
        logger.warning("Assignment %s references missing slot %s", assignment.id, assignment.shift_plan_slot_id)
        return None
    template = data.template(slot.template_id)
    if template is None:
        logger.warning("Slot %s references missing template %s", slot.id, slot.template_id)
        return None
    return slot, template


def _build_occurrence(
    assignment: ProviderAssignment,
    slot: ShiftPlanSlot,
    template: ShiftTemplate,
    date: datetime.date,
    data: ScheduleData,
    override: ShiftOccurrence | None,
    ad_hoc: bool = False,
) -> GeneratedOccurrence:
    location_id = template.location_id
    if location_id is None:
        provider = data.provider(assignment.provider_id)
        location_id = provider.primary_location_id if provider else None
    location = data.location(location_id)

    return GeneratedOccurrence(
        date=date,
        provider_id=assignment.provider_id,
        assignment_id=assignment.id,
        slot_id=slot.id,
        template_id=template.id,
        template_name=template.name,
        start_time=template.start_time,
        duration_minutes=template.duration_minutes,
        location_id=location_id,
        location_name=location.name if location else None,
        color=template.color,
        override=override,
        ad_hoc=ad_hoc,
    )


def occurs_on(assignment: ProviderAssignment, date: datetime.date, data: ScheduleData) -> bool:
    """True when the assignment's template is generated on this date (ignoring overrides)."""
    if not assignment.is_active(date):
        return False
    resolved = _resolve_slot_and_template(assignment, data)
    if resolved is None:
        return False
    slot, template = resolved
    plan = data.plan(slot.shift_plan_id)
    if plan is None:
        logger.warning("Slot %s references missing plan %s", slot.id, slot.shift_plan_id)
        return False
    # Dates before the plan starts are not part of the rotation here
    if not is_in_rotation(plan, slot.cycle_index, date, wrap_before_start=False):
        return False
    return template.occurs_on(date)


def generate_occurrences(
    dates: Iterable[datetime.date | str],
    data: ScheduleData,
) -> list[GeneratedOccurrence]:
    """
    Concrete occurrences for the given dates.

    Every assignment active on a date contributes one occurrence when its
    slot's cycle index is the current rotation position and the template
    runs on that weekday. Stored overrides are attached. An override that
    is not cancelled and has no generated counterpart (a shift moved to
    another date) is emitted as an ad hoc occurrence.

    Args:
        dates: Dates or "YYYY-MM-DD" strings, any order, duplicates ignored
        data: Pre-loaded schedule snapshot

    Returns:
        Occurrences sorted by date, start time and provider
    """
    wanted = sorted({parse_date(d) for d in dates})
    wanted_set = set(wanted)

    result: list[GeneratedOccurrence] = []
    generated_keys: set[tuple[str, datetime.date]] = set()

    for date in wanted:
        for assignment in data.assignments:
            if not occurs_on(assignment, date, data):
                continue
            slot, template = _resolve_slot_and_template(assignment, data)
            override = data.override_for(assignment.id, date)
            result.append(_build_occurrence(assignment, slot, template, date, data, override))
            generated_keys.add((assignment.id, date))

    for override in data.occurrences:
        key = (override.assignment_id, override.date)
        if override.date not in wanted_set or key in generated_keys:
            continue
        if override.status == STATUS_CANCELLED:
            continue
        assignment = data.assignment(override.assignment_id)
        if assignment is None:
            logger.warning("Override %s references missing assignment %s", override.id, override.assignment_id)
            continue
        resolved = _resolve_slot_and_template(assignment, data)
        if resolved is None:
            continue
        slot, template = resolved
        result.append(_build_occurrence(assignment, slot, template, override.date, data, override, ad_hoc=True))

    result.sort(key=lambda o: (o.date, o.start_time, o.provider_id, o.assignment_id))
    return result


def generate_occurrences_for_range(
    start: datetime.date | str,
    end: datetime.date | str,
    data: ScheduleData,
) -> list[GeneratedOccurrence]:
    """Occurrences for every date from start to end, both inclusive."""
    start_date = parse_date(start, "start")
    end_date = parse_date(end, "end")
    if end_date < start_date:
        raise InvalidInputError(f"End date {end_date} is before start date {start_date}")
    if (end_date - start_date).days + 1 > MAX_OCCURRENCE_RANGE_DAYS:
        raise InvalidInputError(f"Date range is limited to {MAX_OCCURRENCE_RANGE_DAYS} days")
    return generate_occurrences(iter_dates(start_date, end_date), data)
