"""
UTC helpers for stored timestamps.

Every DateTime column holds naive UTC. Values are rendered with a trailing
'Z' (to_utc_z) and ledger filters accept any ISO-8601 offset
(parse_iso_datetime).
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Column default and ledger timestamp: naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    '2024-05-01T09:30', '2024-05-01T09:30Z' or '2024-05-01T11:30+02:00'
    -> naive UTC datetime. Blank input is None; offset-less input is UTC.

    Raises ValueError for text that is not ISO-8601.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return _as_utc(datetime.fromisoformat(text)).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Whole-second ISO-8601 in UTC, e.g. '2024-05-01T09:30:00Z'."""
    if dt is None:
        return None
    return _as_utc(dt).replace(microsecond=0, tzinfo=None).isoformat() + "Z"
