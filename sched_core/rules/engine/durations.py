from __future__ import annotations

import re
from datetime import timedelta

from sched_core.rules.engine.errors import InvalidDurationFormat

_TOKEN = re.compile(r"(\d+)(h|min)")

_UNIT_MS = {
    "h": 60 * 60 * 1000,
    "min": 60 * 1000,
}


def parse_duration(text: str) -> int:
    """
    "35min" -> 2_100_000, "2h" -> 7_200_000, "1h30min" -> 5_400_000 (milliseconds).

    Tokens are summed, so repeated units ("1h1h") simply add up.
    """
    if not isinstance(text, str):
        raise InvalidDurationFormat(text)

    tokens = _TOKEN.findall(text)
    if not tokens:
        raise InvalidDurationFormat(text)

    return sum(int(value) * _UNIT_MS[unit] for value, unit in tokens)


def duration_as_timedelta(text: str) -> timedelta:
    return timedelta(milliseconds=parse_duration(text))
