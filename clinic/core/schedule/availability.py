"""
Bookable slots for one provider on one date.

Order of evaluation:
1. Holiday closure blocks the whole day.
2. Shift resolution: plans reached through active assignments, cycle index
   per plan, every slot of the plan at that index, filtered by weekday and
   location.
3. One window per template, or the template's per-day segments.
4. PTO: a full-day entry blocks the day, partial entries become blockers
   and flag the day as PTO while leaving the rest bookable.
5. Subtract blockers and chop into slots of the requested duration.
6. Drop start times that already have a booking.
7. Dedup on (time, location) and sort.
"""

import datetime
import logging
from typing import NamedTuple

from clinic.core.config import MAX_SLOT_DURATION_MINUTES
from clinic.core.constants import WEEKDAY_LABELS
from clinic.core.errors import InvalidInputError
from clinic.core.models import (
    AvailableSlot,
    Provider,
    ScheduleData,
    ScheduledProvider,
    ShiftTemplate,
    SlotResult,
)
from clinic.core.time_utils import minutes_to_time, parse_date, parse_time_to_minutes

from .cycle import resolve_cycle_index
from .intervals import Window, chop_into_slots, subtract_windows

logger = logging.getLogger(__name__)

ProviderRef = str | Provider | ScheduledProvider


class ShiftWindows(NamedTuple):
    """Raw windows contributed by one template on one date."""

    windows: list[Window]
    location_id: str
    template_name: str


def validate_duration(duration_minutes: int) -> int:
    """Fail fast on durations that cannot produce a slot."""
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise InvalidInputError(f"Duration must be an integer number of minutes, got {duration_minutes!r}")
    if not 0 < duration_minutes <= MAX_SLOT_DURATION_MINUTES:
        raise InvalidInputError(
            f"Duration must be between 1 and {MAX_SLOT_DURATION_MINUTES} minutes, got {duration_minutes}"
        )
    return duration_minutes


def resolve_provider(provider: ProviderRef, data: ScheduleData) -> ScheduledProvider:
    """Accept a provider ID, a Provider or an already resolved ScheduledProvider."""
    if isinstance(provider, ScheduledProvider):
        return provider
    provider_id = provider.id if isinstance(provider, Provider) else provider
    return data.scheduled_provider(provider_id)


def template_windows(template: ShiftTemplate, date: datetime.date) -> list[Window]:
    """Per-day segments when the template defines them for this weekday, else one window."""
    segments = template.day_segments.get(WEEKDAY_LABELS[date.weekday()])
    if segments:
        return [Window(seg.start_minute, seg.end_minute) for seg in segments]
    start = template.start_minute
    return [Window(start, start + template.duration_minutes)]


def collect_shift_windows(
    provider: ScheduledProvider,
    date: datetime.date,
    data: ScheduleData,
    location_filter: str | None = None,
) -> list[ShiftWindows]:
    """Resolve which templates the provider works on this date and build their windows."""
    active_plan_ids = set(provider.provider.shift_plan_ids)
    for assignment in provider.active_assignments(date):
        slot = data.slot(assignment.shift_plan_slot_id)
        if slot is None:
            logger.warning(
                "Assignment %s references missing slot %s, skipping",
                assignment.id,
                assignment.shift_plan_slot_id,
            )
            continue
        active_plan_ids.add(slot.shift_plan_id)

    result: list[ShiftWindows] = []
    for plan_id in provider.plan_ids:
        if plan_id not in active_plan_ids:
            continue
        plan = data.plan(plan_id)
        if plan is None:
            logger.warning("Provider %s references missing plan %s, skipping", provider.id, plan_id)
            continue

        cycle_index = resolve_cycle_index(plan, date)
        for slot in data.slots_for_plan(plan_id):
            if slot.cycle_index != cycle_index:
                continue
            template = data.template(slot.template_id)
            if template is None:
                logger.warning("Slot %s references missing template %s, skipping", slot.id, slot.template_id)
                continue
            if not template.occurs_on(date):
                continue

            location_id = template.location_id or provider.provider.primary_location_id
            if location_filter and location_id != location_filter:
                continue

            result.append(
                ShiftWindows(
                    windows=template_windows(template, date),
                    location_id=location_id,
                    template_name=template.name,
                )
            )
    return result


def _pto_for_date(
    provider: ScheduledProvider,
    date: datetime.date,
) -> tuple[list[Window], str | None, bool]:
    """
    Returns (partial blockers, note, full_day).

    full_day is True as soon as one entry covers the whole date; the note is
    then that entry's reason.
    """
    blockers: list[Window] = []
    note: str | None = None
    for entry in provider.pto_covering(date):
        if entry.is_full_day_on(date):
            return [], entry.reason, True
        blocker = entry.blocker_on(date)
        if blocker is not None:
            blockers.append(Window(*blocker))
            note = entry.reason
    return blockers, note, False


def get_available_slots(
    provider: ProviderRef,
    date: datetime.date | str,
    duration_minutes: int,
    data: ScheduleData,
    location_filter: str | None = None,
) -> SlotResult:
    """
    Bookable start times for a provider on a date.

    Args:
        provider: Provider ID, Provider or ScheduledProvider
        date: Date or "YYYY-MM-DD"
        duration_minutes: Requested appointment length, positive
        data: Pre-loaded schedule snapshot
        location_filter: Only consider shifts at this location

    Returns:
        SlotResult with sorted, de-duplicated slots and the blocking flags

    Raises:
        InvalidInputError: Non-positive duration, malformed date
        UnknownReferenceError: Provider ID not in the snapshot
    """
    validate_duration(duration_minutes)
    day = parse_date(date)
    scheduled = resolve_provider(provider, data)

    # 1. Holiday closure
    holiday = scheduled.holiday_on(day)
    if holiday is not None:
        return SlotResult(blocked_by_holiday=True, holiday_name=holiday.name)

    # 2-3. Shifts and their raw windows
    shift_windows = collect_shift_windows(scheduled, day, data, location_filter)
    if not shift_windows:
        return SlotResult(no_shift=True)

    # 4. PTO
    blockers, pto_note, full_day = _pto_for_date(scheduled, day)
    if full_day:
        return SlotResult(blocked_by_pto=True, pto_note=pto_note)

    # 5. Subtract and chop
    candidates: list[AvailableSlot] = []
    for sw in shift_windows:
        remaining = subtract_windows(sw.windows, blockers)
        for start in chop_into_slots(remaining, duration_minutes):
            location = data.location(sw.location_id)
            candidates.append(
                AvailableSlot(
                    time=minutes_to_time(start),
                    location_id=sw.location_id,
                    location_name=location.name if location else "",
                    template_name=sw.template_name,
                )
            )

    # 6. Existing bookings, keyed on start time only
    booked = {
        minutes_to_time(parse_time_to_minutes(b.start_time, "booking start_time"))
        for b in data.bookings_for(scheduled.id, day)
        if b.blocks_slot
    }

    # 7. Dedup and sort
    seen: set[tuple[str, str]] = set()
    slots: list[AvailableSlot] = []
    for slot in candidates:
        key = (slot.time, slot.location_id)
        if slot.time in booked or key in seen:
            continue
        seen.add(key)
        slots.append(slot)
    slots.sort(key=lambda s: s.time)

    # Any partial PTO flags the day, the remaining slots stay bookable
    return SlotResult(slots=slots, blocked_by_pto=bool(blockers), pto_note=pto_note)
