"""
Schedule module - availability, month overview, occurrence grid and overrides.

Exports the public engine functions.
"""

from .availability import collect_shift_windows, get_available_slots, resolve_provider, validate_duration
from .cycle import is_in_rotation, resolve_cycle_index
from .intervals import Window, chop_into_slots, subtract_windows
from .occurrences import generate_occurrences, generate_occurrences_for_range
from .overrides import cancel_occurrence, reassign_occurrence, restore_occurrence, swap_occurrence
from .summary import classify_day, get_month_availability

__all__ = [
    # intervals
    "Window",
    "subtract_windows",
    "chop_into_slots",
    # cycle
    "resolve_cycle_index",
    "is_in_rotation",
    # availability
    "get_available_slots",
    "collect_shift_windows",
    "resolve_provider",
    "validate_duration",
    # summary
    "get_month_availability",
    "classify_day",
    # occurrences
    "generate_occurrences",
    "generate_occurrences_for_range",
    # overrides
    "cancel_occurrence",
    "restore_occurrence",
    "swap_occurrence",
    "reassign_occurrence",
]
