"""
Timestamps are stored as naive UTC. These helpers convert at the edges:
request/CLI strings in, ISO-8601 'Z' strings out.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as naive UTC (the form stored on sales)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    ISO-8601 string -> naive UTC datetime.

    Blank input gives None. Offsets (including a trailing 'Z') are applied;
    a string without an offset is already UTC.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _is_date_only(value: str) -> bool:
    return len(value.strip()) == 10 and "T" not in value


def parse_date_range(
    start: Optional[str],
    end: Optional[str],
) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Parse report bounds into a half-open [start, end) UTC range.

    A date-only end ("2026-10-19") covers that whole day.
    Raises ValueError on unparseable input.
    """
    start_dt = parse_iso_datetime(start) if start else None
    end_dt = parse_iso_datetime(end) if end else None
    if end_dt is not None and _is_date_only(end):
        end_dt = end_dt + timedelta(days=1)
    elif end_dt is not None:
        # explicit timestamps are inclusive
        end_dt = end_dt + timedelta(microseconds=1)
    return start_dt, end_dt


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Whole-second ISO-8601 with a trailing 'Z'; naive input is UTC."""
    if dt is None:
        return None
    aware = dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)
    aware = aware.astimezone(timezone.utc).replace(microsecond=0)
    return aware.strftime("%Y-%m-%dT%H:%M:%SZ")
