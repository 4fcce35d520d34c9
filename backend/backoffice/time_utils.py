# Overview: UTC time helpers shared by models, marketplace payload parsing and report windows.
# Stored datetimes are naive UTC; marketplace timestamps arrive with offsets
# and are normalized on the way in.

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC now, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Marketplace timestamp -> naive UTC.

    "2024-03-01T10:00:00-05:00" becomes 2024-03-01 15:00. Values without an
    offset are taken as UTC already. Raises ValueError on garbage.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(value: Optional[datetime]) -> Optional[str]:
    """API form: second precision with a trailing Z."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=0).isoformat() + "Z"


# Inclusive report window bounds
def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max)
