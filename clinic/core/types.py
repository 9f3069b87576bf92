# clinic/core/types.py

"""
Type aliases shared across the engine.
"""

from typing import Literal

#: Minutes since midnight, 0..1440.
MinuteOfDay = int

#: Length of something in whole minutes.
Minutes = int

DayStatus = Literal["available", "holiday", "pto", "no-shift"]

#: "YYYY-MM-DD" -> status, one entry per calendar day of a month.
MonthAvailability = dict[str, DayStatus]
