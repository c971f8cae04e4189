"""
Time helpers.

Storage convention: every datetime column holds UTC without tzinfo. The
wire format is ISO-8601 with a trailing 'Z'. Only the dashboard's "today"
needs the store's local timezone.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_utc(dt: datetime) -> datetime:
    # Naive values are already UTC by convention
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    "2026-03-01T12:00:00-05:00" -> datetime(2026, 3, 1, 17, 0) (UTC, naive).

    Blank input gives None; an offset-less string is taken as UTC. Raises
    ValueError for anything fromisoformat rejects.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return _as_utc(datetime.fromisoformat(text)).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Whole-second ISO-8601 with 'Z', e.g. "2026-03-01T17:00:00Z"."""
    if dt is None:
        return None
    return _as_utc(dt).replace(microsecond=0, tzinfo=None).isoformat() + "Z"


def start_of_local_day(tz_name: str, now: Optional[datetime] = None) -> datetime:
    """Midnight of the store's current day in tz_name, as UTC-naive."""
    local = _as_utc(now or utcnow()).astimezone(ZoneInfo(tz_name))
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc).replace(tzinfo=None)
