"""iCal export of a provider's working schedule."""

import calendar
import datetime

from icalendar import Calendar, Event

from clinic.core.errors import InvalidInputError
from clinic.core.models import GeneratedOccurrence, ScheduleData
from clinic.core.schedule import generate_occurrences_for_range
from clinic.core.time_utils import format_duration, parse_time_to_minutes


def generate_ical(
    provider_id: str,
    start_date: datetime.date,
    end_date: datetime.date,
    data: ScheduleData,
) -> str:
    """
    iCal calendar with one event per occurrence the provider actually works.

    That is the provider's own occurrences that are neither cancelled nor
    swapped away, plus occurrences swapped to them.

    Args:
        provider_id: Provider ID
        start_date: First date in the range
        end_date: Last date in the range (inclusive)
        data: Pre-loaded schedule snapshot

    Returns:
        iCal-formatted string
    """
    provider = data.require_provider(provider_id)
    location = data.location(provider.primary_location_id)

    cal = Calendar()
    cal.add("prodid", "-//Clinic Scheduler//clinic-scheduler//")
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")
    cal.add("x-wr-calname", f"Shifts {provider.name}")
    if location is not None:
        cal.add("x-wr-timezone", location.timezone)

    for occurrence in generate_occurrences_for_range(start_date, end_date, data):
        if occurrence.working_provider_id != provider_id:
            continue
        cal.add_component(_create_shift_event(occurrence, provider_id, data))

    return cal.to_ical().decode("utf-8")


def _create_shift_event(occurrence: GeneratedOccurrence, provider_id: str, data: ScheduleData) -> Event:
    event = Event()

    summary = occurrence.template_name or "Shift"
    if occurrence.provider_id != provider_id:
        covered = data.provider(occurrence.provider_id)
        summary = f"{summary} (covering {covered.name if covered else occurrence.provider_id})"
    event.add("summary", summary)
    event.add("uid", f"{occurrence.date.isoformat()}_{occurrence.assignment_id}_{provider_id}@clinic-scheduler")

    # Floating local time; the calendar carries the location's timezone name
    start_minute = parse_time_to_minutes(occurrence.start_time, "start_time")
    start_dt = datetime.datetime.combine(occurrence.date, datetime.time()) + datetime.timedelta(minutes=start_minute)
    event.add("dtstart", start_dt)
    event.add("dtend", start_dt + datetime.timedelta(minutes=occurrence.duration_minutes))

    if occurrence.location_name:
        event.add("location", occurrence.location_name)

    description_parts = [f"Length: {format_duration(occurrence.duration_minutes)}"]
    if occurrence.override and occurrence.override.note:
        description_parts.append(f"Note: {occurrence.override.note}")
    event.add("description", "\n".join(description_parts))

    event.add("dtstamp", datetime.datetime.now(datetime.timezone.utc))
    return event


def generate_ical_for_month(provider_id: str, year: int, month: int, data: ScheduleData) -> str:
    """iCal for one calendar month."""
    try:
        last_day = calendar.monthrange(year, month)[1]
    except (calendar.IllegalMonthError, ValueError) as e:
        raise InvalidInputError(f"Invalid month: {year}-{month}") from e
    return generate_ical(provider_id, datetime.date(year, month, 1), datetime.date(year, month, last_day), data)
