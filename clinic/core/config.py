# clinic/core/config.py

import os
from typing import Final


# ==========================
# Date and time formats
# ==========================

#: ISO format for date strings ("2026-01-05"). Matches the seed file and the
#: date columns in the database.
DATE_FORMAT_ISO: Final[str] = "%Y-%m-%d"

#: Format for times of day in templates, PTO entries and bookings ("08:00").
TIME_FORMAT_HM: Final[str] = "%H:%M"

#: Minutes in a calendar day. A window may end exactly here, never past it.
MINUTES_PER_DAY: Final[int] = 24 * 60

#: Last minute of the day as written by admins for "until end of day".
#: A single-day PTO entry from 00:00 to 23:59 counts as a full day.
END_OF_DAY_TIME_STRING: Final[str] = "23:59"


# ==========================
# Booking
# ==========================

#: Default appointment length used by the API when no duration is given.
DEFAULT_SLOT_DURATION_MINUTES: Final[int] = 60

#: Upper bound for a requested appointment length. A slot can never be
#: longer than a day.
MAX_SLOT_DURATION_MINUTES: Final[int] = MINUTES_PER_DAY

#: Largest date range the occurrence grid will expand in one call.
MAX_OCCURRENCE_RANGE_DAYS: Final[int] = 366


# ==========================
# Storage
# ==========================

#: SQLAlchemy URL for the scheduling database.
DATABASE_URL: Final[str] = os.getenv("CLINIC_DATABASE_URL", "sqlite:///./clinic/database/clinic.db")

#: JSON seed file with locations, providers, plans and calendars.
SEED_FILE_PATH: Final[str] = os.getenv("CLINIC_SEED_FILE", "data/clinic_seed.json")
