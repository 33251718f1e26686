"""Timestamp parsing and calendar-day normalization shared by every series builder.

Two semantics are kept apart:

- ``parse_instant`` returns the exact instant (aware datetime). Use it for
  ordering and for elapsed-time math.
- ``parse_day`` returns the calendar day written in the timestamp itself.
  It never converts the instant into another zone first, so an event stored
  as ``2024-02-01T23:30:00-05:00`` stays on Feb 1 even when the local zone
  is UTC. Everything that buckets by day goes through it.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone

from dateutil import tz
from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from ..config import settings

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_MS = timedelta(milliseconds=1)

_WRITTEN_DATE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")


def resolve_zone(tz_name: str | None = None):
    name = tz_name or settings.local_tz
    zone = tz.gettz(name)
    if zone is None:
        raise ValueError(f"unknown timezone {name}")
    return zone


def _from_epoch_ms(val) -> datetime | None:
    try:
        return EPOCH + timedelta(milliseconds=float(val))
    except (OverflowError, ValueError):
        return None


def _isoparse(text: str) -> datetime | None:
    try:
        return isoparse(text)
    except (ValueError, OverflowError):
        return None


def parse_instant(value, tz_name: str | None = None) -> datetime | None:
    """Exact instant for ``value``; naive values are read as local wall time."""
    if value is None or isinstance(value, bool):
        return None
    zone = resolve_zone(tz_name)
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=zone)
    if isinstance(value, date):
        return local_midnight(value, tz_name)
    if isinstance(value, (int, float)):
        return _from_epoch_ms(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    parsed = _isoparse(text)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone)
    return parsed


def parse_day(value, tz_name: str | None = None) -> date | None:
    """Calendar day of ``value`` without shifting it through another zone."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        instant = _from_epoch_ms(value)
        if instant is None:
            return None
        return instant.astimezone(resolve_zone(tz_name)).date()
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    parsed = _isoparse(text)
    if parsed is None:
        return None
    # isoparse rolls "T24:00" into the next day; keep the date as written.
    written = _WRITTEN_DATE.match(text)
    if written:
        return date(*(int(part) for part in written.groups()))
    return parsed.date()


def local_midnight(day: date, tz_name: str | None = None) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=resolve_zone(tz_name))


def to_epoch_ms(dt: datetime) -> int:
    return (dt - EPOCH) // ONE_MS


def local_today(now: datetime, tz_name: str | None = None) -> date:
    zone = resolve_zone(tz_name)
    if now.tzinfo is None:
        now = now.replace(tzinfo=zone)
    return now.astimezone(zone).date()


def add_months(day: date, months: int) -> date:
    return day + relativedelta(months=months)


def month_start(day: date) -> date:
    return day.replace(day=1)


def day_label(day: date) -> str:
    return day.isoformat()


def month_label(day: date) -> str:
    return f"{day.year}-{day.month:02d}"
