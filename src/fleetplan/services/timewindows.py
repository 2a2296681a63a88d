"""Clock-time helpers for ``HH:MM`` strings."""

from __future__ import annotations

import re

MINUTES_PER_DAY = 24 * 60

_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def is_clock_time(value: str) -> bool:
    match = _CLOCK_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        return False
    hours, minutes = int(match.group(1)), int(match.group(2))
    return hours < 24 and minutes < 60


def time_to_minutes(value: str | None) -> int:
    """Minutes since midnight; malformed or empty input counts as 0."""

    if not value:
        return 0
    match = _CLOCK_PATTERN.match(value.strip())
    if not match:
        return 0
    return int(match.group(1)) * 60 + int(match.group(2))


def format_minutes(minutes: float) -> str:
    """Render minutes since midnight as ``HH:MM``, wrapping past midnight."""

    total = int(round(minutes)) % MINUTES_PER_DAY
    return f"{total // 60:02d}:{total % 60:02d}"


def align_window(arrival: int, window_start: int, window_end: int) -> tuple[int, int]:
    """Place a daily window on the timeline next to ``arrival``.

    ``arrival`` may exceed one day for trips past midnight. A window whose end
    precedes its start runs overnight. Of the window's occurrences on the
    previous, current and next day the one nearest to ``arrival`` is returned.
    """

    if window_end < window_start:
        window_end += MINUTES_PER_DAY
    day = arrival // MINUTES_PER_DAY
    best: tuple[int, int, int] | None = None
    for shift in (day - 1, day, day + 1):
        start = window_start + shift * MINUTES_PER_DAY
        end = window_end + shift * MINUTES_PER_DAY
        gap = max(0, start - arrival, arrival - end)
        if best is None or gap < best[0]:
            best = (gap, start, end)
    return best[1], best[2]
