"""Directory timestamp normalization (FILETIME / GeneralizedTime -> calendar date)."""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any

from adResolve.resolver.errors import TimestampUnsetError

# FILETIME counts 100ns intervals since this instant
FILETIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)
# Stored by AD for "never"
FILETIME_NEVER = 0x7FFFFFFFFFFFFFFF


def filetime_to_datetime(value: int) -> datetime:
    """Convert a Windows FILETIME integer to an aware UTC datetime."""
    if value <= 0 or value >= FILETIME_NEVER:
        raise TimestampUnsetError(f"FILETIME value {value} does not denote a point in time")
    try:
        return FILETIME_EPOCH + timedelta(microseconds=value // 10)
    except OverflowError as exc:
        raise TimestampUnsetError(f"FILETIME value {value} is out of range") from exc


def generalized_time_to_datetime(value: str) -> datetime:
    """Parse LDAP GeneralizedTime such as ``20230221143000.0Z``."""
    text = value.strip()
    aware = text.endswith("Z")
    if aware:
        text = text[:-1]
    fmt = "%Y%m%d%H%M%S.%f" if "." in text else "%Y%m%d%H%M%S"
    try:
        parsed = datetime.strptime(text, fmt)
    except ValueError as exc:
        raise TimestampUnsetError(f"Unrecognized timestamp {value!r}") from exc
    return parsed.replace(tzinfo=timezone.utc) if aware else parsed


def to_calendar_date(value: Any) -> date:
    """
    Reduce a directory timestamp to a calendar date, dropping time-of-day.

    Accepts datetimes (as produced by ldap3 when the schema is loaded),
    FILETIME integers or their decimal strings, and GeneralizedTime strings.
    Aware datetimes are converted to local time first.

    Raises:
        TimestampUnsetError: if the value is absent or holds a "never" marker
    """
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None or value == "":
        raise TimestampUnsetError("Timestamp attribute is not set")
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="replace")

    if isinstance(value, datetime):
        # ldap3 renders 0 as the FILETIME epoch and "never" as datetime.max
        if value.year <= 1601 or value.year >= 9999:
            raise TimestampUnsetError(f"Timestamp {value.isoformat()} marks an unset value")
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, int):
        moment = filetime_to_datetime(value)
    elif isinstance(value, str) and value.strip().isdigit() and len(value.strip()) != 14:
        moment = filetime_to_datetime(int(value))
    elif isinstance(value, str):
        moment = generalized_time_to_datetime(value)
    else:
        raise TimestampUnsetError(f"Unsupported timestamp type {type(value).__name__}")
    return to_calendar_date(moment)


def format_short_date(value: date) -> str:
    """Short calendar form without zero padding, e.g. ``2/21/2023``."""
    return f"{value.month}/{value.day}/{value.year}"
