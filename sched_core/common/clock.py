# sched_core/common/clock.py
from __future__ import annotations

from typing import Any
from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import timezone

from sched_core.rules.engine.timeofday import parse_instant


def scheduling_zone() -> ZoneInfo:
    """Wall clock in which time-of-day scopes are read."""
    return ZoneInfo(getattr(settings, "SCHEDULING_TIME_ZONE", settings.TIME_ZONE))


def to_scheduling_clock(value: Any) -> str:
    """
    ISO 8601 instant -> the same instant written on the scheduling clock.
        "2025-01-06T09:00:00Z" -> "2025-01-06T10:00:00+01:00"  (Europe/Berlin)
    """
    return timezone.localtime(parse_instant(value), scheduling_zone()).isoformat()
