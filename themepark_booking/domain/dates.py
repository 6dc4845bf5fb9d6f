"""Datetime helpers shared by the DTOs, adapters and models."""

from datetime import date, datetime, timezone


def parse_datetime(value) -> datetime | None:
    """
    Parse vendor timestamps into timezone-aware UTC datetimes.

    Accepts ISO-8601 strings (with ``Z`` or an offset), plain dates,
    datetimes and ``None``. Naive values are treated as UTC.
    """
    parsed = parse_local(value)
    return as_utc(parsed) if parsed is not None else None


def parse_local(value) -> datetime | None:
    """Like :func:`parse_datetime` but keeps the vendor's own UTC offset (park local time)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return as_utc(value).isoformat().replace("+00:00", "Z")
