"""
Time-of-day helpers for amenity bookings.

Times are "HH:MM" strings on a 24h clock. Every value is normalized to minute
resolution before it is compared or stored, so zero-padded strings compare
the same way lexicographically as their minute counts do.

Intervals are half-open: [start, end).
"""

import re
from datetime import time
from typing import Optional, Union

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")

TimeValue = Union[str, time]


class InvalidTimeOfDay(ValueError):
    """Raised when a value is not a real HH:MM time"""


def to_minutes(value: TimeValue) -> int:
    """
    Convert a time-of-day to minutes after midnight.

    Accepts "HH:MM", "HH:MM:SS" (seconds are dropped) or ``datetime.time``.
    """
    if isinstance(value, time):
        return value.hour * 60 + value.minute

    if not isinstance(value, str):
        raise InvalidTimeOfDay(f"Invalid time value: {value!r}")

    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidTimeOfDay(f'Invalid time "{value}". Use the format "HH:MM".')

    hours, minutes = int(match.group(1)), int(match.group(2))
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: TimeValue) -> str:
    """Return the canonical zero-padded "HH:MM" form."""
    return format_minutes(to_minutes(value))


def normalize_optional_time(value: Optional[TimeValue]) -> Optional[str]:
    if value is None or value == "":
        return None
    return normalize_time(value)


def intervals_overlap(start_a: TimeValue, end_a: TimeValue, start_b: TimeValue, end_b: TimeValue) -> bool:
    """[s1, e1) and [s2, e2) conflict iff s1 < e2 and s2 < e1."""
    return to_minutes(start_a) < to_minutes(end_b) and to_minutes(start_b) < to_minutes(end_a)


def window_contains(
    opening: Optional[TimeValue],
    closing: Optional[TimeValue],
    start: TimeValue,
    end: TimeValue,
) -> bool:
    """
    Check that [start, end) lies inside the daily window [opening, closing).

    A missing edge is not enforced. A window that does not close after it
    opens admits nothing.
    """
    start_m, end_m = to_minutes(start), to_minutes(end)

    if opening is not None and closing is not None:
        if to_minutes(closing) <= to_minutes(opening):
            return False

    if opening is not None and start_m < to_minutes(opening):
        return False
    if closing is not None and end_m > to_minutes(closing):
        return False
    return True
