"""Interval arithmetic on time-of-day windows.

A window is a half-open interval [start, end) in minutes since midnight.
Nothing here knows about dates, providers or calendars.
"""

from collections.abc import Iterable
from typing import NamedTuple

from clinic.core.errors import InvalidInputError
from clinic.core.types import MinuteOfDay, Minutes


class Window(NamedTuple):
    start: MinuteOfDay
    end: MinuteOfDay

    @property
    def length(self) -> Minutes:
        return self.end - self.start


def subtract_windows(windows: Iterable[Window], blockers: Iterable[Window]) -> list[Window]:
    """
    Remove every blocker from every window.

    Blockers are applied one at a time against the accumulated result. A
    blocker that overlaps a window leaves at most a left remainder
    [window.start, blocker.start) and a right remainder [blocker.end, window.end).
    """
    result = [Window(*w) for w in windows]
    for blocker in blockers:
        b_start, b_end = blocker
        remaining: list[Window] = []
        for w in result:
            # Disjoint
            if b_end <= w.start or b_start >= w.end:
                remaining.append(w)
                continue
            if b_start > w.start:
                remaining.append(Window(w.start, b_start))
            if b_end < w.end:
                remaining.append(Window(b_end, w.end))
        result = remaining
    return result


def chop_into_slots(windows: Iterable[Window], duration: Minutes) -> list[MinuteOfDay]:
    """
    Cut windows into back-to-back slots of `duration` minutes.

    Returns slot start minutes. A trailing piece shorter than `duration` is
    dropped.
    """
    if duration <= 0:
        raise InvalidInputError(f"Slot duration must be a positive number of minutes, got {duration}")

    starts: list[MinuteOfDay] = []
    for w in windows:
        cursor = w[0]
        while cursor + duration <= w[1]:
            starts.append(cursor)
            cursor += duration
    return starts

