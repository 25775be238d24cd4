from __future__ import annotations

from datetime import datetime, time, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .states import DEFAULT_TIMEZONE, timezone_for_state

DAY_KEYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def _parse_clock(value: Any) -> time | None:
    if not isinstance(value, dict):
        return None
    try:
        hour = int(value.get("hour", 0))
        minute = int(value.get("minute", 0))
    except (TypeError, ValueError):
        return None
    if hour == 24 and minute == 0:
        return time(23, 59, 59)
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return time(hour, minute)


def _windows(timetable: dict, day_index: int) -> list[tuple[time, time]]:
    parsed = []
    for window in timetable.get(DAY_KEYS[day_index % 7]) or []:
        if not isinstance(window, dict):
            continue
        start = _parse_clock(window.get("open"))
        end = _parse_clock(window.get("close"))
        if start is None or end is None:
            continue
        parsed.append((start, end))
    return parsed


def is_open_now(work_hours: dict | None, state: str | None, now_utc: datetime | None = None) -> bool:
    """A window whose close is not after its open runs past midnight into the next day."""
    if not work_hours:
        return False
    timetable = work_hours.get("timetable")
    if not isinstance(timetable, dict):
        return False

    try:
        local_zone = ZoneInfo(timezone_for_state(state))
    except ZoneInfoNotFoundError:
        local_zone = ZoneInfo(DEFAULT_TIMEZONE)

    now = now_utc or datetime.now(timezone.utc)
    local_now = now.astimezone(local_zone)
    weekday = local_now.weekday()
    current_t = local_now.time()

    for start, end in _windows(timetable, weekday):
        if start < end:
            if start <= current_t < end:
                return True
        elif current_t >= start:
            return True

    # Yesterday's overnight windows spill into the early hours of today.
    for start, end in _windows(timetable, weekday - 1):
        if start >= end and current_t < end:
            return True

    return False
