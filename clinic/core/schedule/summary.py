"""Month overview: one status per day for the booking calendar."""

import calendar
import datetime

from clinic.core.constants import (
    DAY_STATUS_AVAILABLE,
    DAY_STATUS_HOLIDAY,
    DAY_STATUS_NO_SHIFT,
    DAY_STATUS_PTO,
)
from clinic.core.errors import InvalidInputError
from clinic.core.models import ScheduleData, SlotResult
from clinic.core.types import DayStatus, MonthAvailability

from .availability import ProviderRef, get_available_slots, resolve_provider, validate_duration


def classify_day(result: SlotResult) -> DayStatus:
    """
    Reduce a SlotResult to one status.

    Priority: holiday, no-shift, pto, available. A day whose slots are all
    booked falls back to no-shift.
    """
    if result.blocked_by_holiday:
        return DAY_STATUS_HOLIDAY
    if result.no_shift:
        return DAY_STATUS_NO_SHIFT
    if result.blocked_by_pto:
        return DAY_STATUS_PTO
    if result.slots:
        return DAY_STATUS_AVAILABLE
    return DAY_STATUS_NO_SHIFT


def get_month_availability(
    provider: ProviderRef,
    year: int,
    month: int,
    duration_minutes: int,
    data: ScheduleData,
    location_filter: str | None = None,
) -> MonthAvailability:
    """
    Status for every calendar day of a month.

    Args:
        provider: Provider ID, Provider or ScheduledProvider
        year: Year
        month: Month (1-12)
        duration_minutes: Requested appointment length
        data: Pre-loaded schedule snapshot
        location_filter: Only consider shifts at this location

    Returns:
        Dict "YYYY-MM-DD" -> "available" | "holiday" | "pto" | "no-shift"
    """
    validate_duration(duration_minutes)
    try:
        days_in_month = calendar.monthrange(year, month)[1]
    except (calendar.IllegalMonthError, ValueError, TypeError) as e:
        raise InvalidInputError(f"Invalid month: {year}-{month}") from e

    # Resolve once, not once per day
    scheduled = resolve_provider(provider, data)

    result: MonthAvailability = {}
    for day in range(1, days_in_month + 1):
        current = datetime.date(year, month, day)
        slot_result = get_available_slots(scheduled, current, duration_minutes, data, location_filter)
        result[current.isoformat()] = classify_day(slot_result)
    return result
