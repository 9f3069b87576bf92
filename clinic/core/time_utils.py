import datetime
import logging
import re
from typing import Any

from clinic.core.config import DATE_FORMAT_ISO, MINUTES_PER_DAY, TIME_FORMAT_HM
from clinic.core.errors import InvalidInputError

logger = logging.getLogger(__name__)

# PT8H, PT4H30M, PT45M
_ISO_DURATION_RE = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?$")


def parse_date(value: Any, field_name: str = "date") -> datetime.date:
    """Parse a calendar date.

    Accepts datetime.date objects, and "YYYY-MM-DD" strings. A trailing
    time component ("2026-01-05T00:00") is ignored, since older seed files
    store plan effective dates that way.
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value

    if isinstance(value, str):
        s = value.strip().split("T", 1)[0]
        try:
            return datetime.datetime.strptime(s, DATE_FORMAT_ISO).date()
        except ValueError as e:
            logger.debug("Failed parsing %s as date. value=%r", field_name, value)
            raise InvalidInputError(f"Invalid {field_name}: {value!r} (expected YYYY-MM-DD)") from e

    raise InvalidInputError(f"Unsupported {field_name} type: {type(value).__name__}")


def parse_time_to_minutes(value: Any, field_name: str = "time") -> int:
    """Convert a time of day to minutes since midnight.

    Handles "HH:MM" strings, "HH:MM:SS" strings and datetime.time objects.
    "24:00" is accepted and maps to the end of the day.
    """
    if isinstance(value, datetime.time):
        return value.hour * 60 + value.minute

    if not isinstance(value, str):
        raise InvalidInputError(f"Unsupported {field_name} type: {type(value).__name__}")

    s = value.strip()
    if s == "24:00":
        return MINUTES_PER_DAY

    fmt = TIME_FORMAT_HM if len(s.split(":")) == 2 else "%H:%M:%S"
    try:
        parsed = datetime.datetime.strptime(s, fmt).time()
    except ValueError as e:
        logger.debug("Failed parsing %s as time string. value=%r", field_name, value)
        raise InvalidInputError(f"Invalid {field_name}: {value!r} (expected HH:MM)") from e
    return parsed.hour * 60 + parsed.minute


def minutes_to_time(minutes: int) -> str:
    """Minutes since midnight -> zero-padded "HH:MM"."""
    hh, mm = divmod(minutes, 60)
    return f"{hh:02d}:{mm:02d}"


def parse_iso_duration_minutes(value: str) -> int:
    """Parse an ISO-8601 time duration ("PT8H", "PT4H30M") into minutes."""
    match = _ISO_DURATION_RE.match(value.strip().upper()) if isinstance(value, str) else None
    if match is None or (match.group(1) is None and match.group(2) is None):
        raise InvalidInputError(f"Invalid ISO-8601 duration: {value!r}")
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    return hours * 60 + minutes


def format_duration(minutes: int) -> str:
    """Short label for the admin grid: 480 -> "8h", 270 -> "4h30m"."""
    hours, rest = divmod(minutes, 60)
    if rest == 0:
        return f"{hours}h"
    if hours == 0:
        return f"{rest}m"
    return f"{hours}h{rest}m"


def iter_dates(start: datetime.date, end: datetime.date):
    """Yield every date from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += datetime.timedelta(days=1)
