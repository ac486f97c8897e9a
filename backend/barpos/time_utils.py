from __future__ import annotations

from datetime import date, datetime, time, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" is interpreted as midnight UTC
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_date(value) -> Optional[date]:
    """Accept a date, a datetime or an ISO string; return a date (or None)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    if len(s) == 10:
        return date.fromisoformat(s)
    dt = parse_iso_datetime(s)
    return dt.date() if dt else None


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Inclusive [start, end] datetimes covering a calendar day."""
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """
    Business timezone from config.

    - None / "" -> None (the host's local time, like the desktop shell)
    - "UTC" -> timezone.utc
    - anything else is an IANA name, e.g. "Asia/Kolkata"
    """
    if not name or not name.strip():
        return None
    name = name.strip()
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def business_date(moment: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> date:
    """
    Calendar day of a UTC-naive moment (default: now) in the business timezone.

    tz=None means the host's local time.
    """
    moment = moment or utcnow()
    return moment.replace(tzinfo=timezone.utc).astimezone(tz).date()


def utc_day_bounds(day: date, tz: Optional[tzinfo] = None) -> tuple[datetime, datetime]:
    """
    Inclusive UTC-naive [start, end] covering one business-timezone calendar day.

    Stored timestamps are UTC-naive, so day filters compare against these.
    """
    bounds = []
    for moment in (datetime.combine(day, time.min), datetime.combine(day, time.max)):
        # astimezone() on a naive datetime reads it as host local time
        aware = moment.replace(tzinfo=tz) if tz is not None else moment.astimezone()
        bounds.append(aware.astimezone(timezone.utc).replace(tzinfo=None))
    return bounds[0], bounds[1]


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
