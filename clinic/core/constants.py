# clinic/core/constants.py
from typing import Final

# ==========================
# Weekdays
# ==========================

#: Weekday labels indexed like datetime.weekday() (0=Monday, 6=Sunday).
#: Templates store their weekday sets with these labels.
WEEKDAY_LABELS: Final[tuple[str, ...]] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

#: Number of days per week. Used by the cycle resolver instead of "7".
DAYS_PER_WEEK: Final[int] = 7


# ==========================
# Rotation
# ==========================

CYCLE_UNIT_WEEKS: Final[str] = "weeks"
CYCLE_UNIT_MONTHS: Final[str] = "months"

#: Labels accepted from admin forms and older seed files.
CYCLE_UNIT_ALIASES: Final[dict[str, str]] = {
    "week": CYCLE_UNIT_WEEKS,
    "weeks": CYCLE_UNIT_WEEKS,
    "week(s)": CYCLE_UNIT_WEEKS,
    "month": CYCLE_UNIT_MONTHS,
    "months": CYCLE_UNIT_MONTHS,
    "month(s)": CYCLE_UNIT_MONTHS,
}


# ==========================
# Occurrence status (overrides)
# ==========================

STATUS_SCHEDULED: Final[str] = "scheduled"
STATUS_CANCELLED: Final[str] = "cancelled"
STATUS_SWAPPED: Final[str] = "swapped"


# ==========================
# Bookings
# ==========================

BOOKING_CONFIRMED: Final[str] = "confirmed"
BOOKING_COMPLETED: Final[str] = "completed"

#: Booking statuses that still occupy their start time.
BOOKING_BLOCKING_STATUSES: Final[tuple[str, ...]] = (BOOKING_CONFIRMED, BOOKING_COMPLETED)


# ==========================
# Month summary
# ==========================

DAY_STATUS_AVAILABLE: Final[str] = "available"
DAY_STATUS_HOLIDAY: Final[str] = "holiday"
DAY_STATUS_PTO: Final[str] = "pto"
DAY_STATUS_NO_SHIFT: Final[str] = "no-shift"

