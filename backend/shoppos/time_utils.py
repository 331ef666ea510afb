# Overview: UTC clock and ISO-8601 conversions shared by models, services and request parsing.

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form every column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def parse_iso_datetime(value: str | None) -> datetime | None:
    """
    Read a timestamp from a query string or JSON body.

    Accepts a bare date ("2026-03-01"), a naive datetime (taken as UTC), or
    a datetime with "Z" / "+HH:MM", which is shifted to UTC. Blank input
    gives None; anything else malformed raises ValueError.
    """
    if value is None or not value.strip():
        return None

    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: datetime | None) -> str | None:
    """Render as "2026-03-01T12:00:00Z", second precision; naive means UTC."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"
