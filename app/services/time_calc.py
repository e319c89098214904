"""Timezone-aware class time arithmetic.

Times are wall-clock ``HH:mm`` strings interpreted in the class's IANA
timezone. End times wrap past midnight: a 23:30 start with a 40 minute
call ends at 00:10 on the following day, so ``end_time <= start_time``
always means "next day" when the two are compared back. Calls run at most
``MAX_CALL_DURATION`` minutes.
"""
from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta

import pytz

JOIN_EARLY_MINUTES = 10
MAX_CALL_DURATION = 24 * 60

HHMM_RE = re.compile(r"[0-9]{2}:[0-9]{2}")


def get_zone(timezone_name: str):
    """Return the pytz zone; raises ValueError for unknown names."""
    try:
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError as e:
        raise ValueError(f"Unknown timezone: {timezone_name}") from e


def is_valid_timezone(timezone_name: str | None) -> bool:
    if not timezone_name:
        return False
    try:
        get_zone(timezone_name)
    except ValueError:
        return False
    return True


def parse_hhmm(value: str) -> time:
    if not isinstance(value, str) or not HHMM_RE.fullmatch(value):
        raise ValueError(f"Time must be in HH:mm format: {value}")
    h, m = value.split(":")
    return time(int(h), int(m))


def is_valid_hhmm(value: str | None) -> bool:
    if not value:
        return False
    try:
        parse_hhmm(value)
    except ValueError:
        return False
    return True


def compute_start(day: date, start_time: str, timezone_name: str) -> datetime:
    zone = get_zone(timezone_name)
    return zone.localize(datetime.combine(day, parse_hhmm(start_time)))


def compute_end(day: date, start_time: str, duration_minutes: int, timezone_name: str) -> datetime:
    """Aware end instant; carries into the next day when the call crosses midnight."""
    zone = get_zone(timezone_name)
    start = compute_start(day, start_time, timezone_name)
    return zone.normalize(start + timedelta(minutes=duration_minutes))


def compute_end_time(day: date, start_time: str, duration_minutes: int, timezone_name: str) -> str:
    return compute_end(day, start_time, duration_minutes, timezone_name).strftime("%H:%M")


def _as_aware_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        return pytz.utc.localize(now)
    return now


def is_joinable(
    day: date,
    start_time: str,
    duration_minutes: int,
    timezone_name: str,
    now: datetime,
    early_minutes: int = JOIN_EARLY_MINUTES,
) -> bool:
    """True iff ``now`` lies in [start - early_minutes, end], both ends inclusive.

    The end is derived from the duration, so calls crossing midnight end on
    the following day. Naive ``now`` values are treated as UTC.
    """
    start = compute_start(day, start_time, timezone_name)
    end = compute_end(day, start_time, duration_minutes, timezone_name)
    now = _as_aware_utc(now)
    return start - timedelta(minutes=early_minutes) <= now <= end


def minutes_until_start(day: date, start_time: str, timezone_name: str, now: datetime) -> int:
    """Whole minutes from ``now`` to the class start, truncated toward zero."""
    delta = compute_start(day, start_time, timezone_name) - _as_aware_utc(now)
    return int(delta.total_seconds() / 60)
