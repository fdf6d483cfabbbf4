from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a calendar date in YYYY-MM-DD form.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM..." is rejected; business dates carry no time part
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    return datetime.strptime(s, "%Y-%m-%d").date()


def to_iso_date(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


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
