# sched_core/rules/engine/timeofday.py
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Optional

from django.utils.dateparse import parse_datetime

from sched_core.rules.engine.errors import InvalidDateTimeFormat, InvalidTimeFormat

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")
_CLOCK = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def parse_instant(value: Any) -> datetime:
    """
    ISO 8601 string (or datetime) -> datetime.

    Naive values are read as UTC so that instants from different sources
    stay comparable.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = parse_datetime(str(value)) if value is not None else None
        except ValueError:
            dt = None
        if dt is None:
            raise InvalidDateTimeFormat(value)

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def extract_time_of_day(value: Any) -> int:
    """
    Minutes since midnight, read from the wall-clock fields of the datetime
    exactly as written (no timezone conversion):
        "2025-01-06T23:30:00+01:00" -> 1410
    """
    dt = parse_instant(value)
    return dt.hour * 60 + dt.minute


def parse_time_of_day(value: Any) -> int:
    """
    "HH:MM" -> minutes since midnight. Accepts 00:00 .. 23:59 only.
    """
    m = _HHMM.match(value) if isinstance(value, str) else None
    if not m:
        raise InvalidTimeFormat(value)

    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidTimeFormat(value)
    return hours * 60 + minutes


def parse_clock_minutes(value: str) -> Optional[float]:
    """
    "HH:MM" / "HH:MM:SS" -> minutes since midnight (seconds as a fraction),
    or None when the string is not a clock time.
    """
    m = _CLOCK.match(value.strip())
    if not m:
        return None

    hours, minutes, seconds = int(m.group(1)), int(m.group(2)), int(m.group(3) or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        return None
    return hours * 60 + minutes + seconds / 60


def is_within_time_of_day_range(
    slot_start: Any,
    range_start: Optional[str] = None,
    range_end: Optional[str] = None,
) -> bool:
    """
    Time-of-day window check for the start of a slot.

    - no bounds            -> True
    - only start           -> time >= start
    - only end             -> time < end
    - start <= end         -> start <= time < end
    - start > end (22-02)  -> time >= start or time < end   (wraps midnight)
    """
    if not range_start and not range_end:
        return True

    t = extract_time_of_day(slot_start)

    if range_start and not range_end:
        return t >= parse_time_of_day(range_start)

    if range_end and not range_start:
        return t < parse_time_of_day(range_end)

    start = parse_time_of_day(range_start)
    end = parse_time_of_day(range_end)

    if start <= end:
        return start <= t < end
    return t >= start or t < end


def time_ranges_overlap(start_a: Any, end_a: Any, start_b: Any, end_b: Any) -> bool:
    """
    Strict half-open overlap: [a) and [b) share at least one instant.
    Touching ranges (end_a == start_b) do not overlap.
    """
    a0, a1 = parse_instant(start_a), parse_instant(end_a)
    b0, b1 = parse_instant(start_b), parse_instant(end_b)
    return a0 < b1 and b0 < a1
