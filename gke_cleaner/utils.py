"""
GKE Cleaner — shared utility helpers.

Time handling shared by the store, the inventory adapter and configuration.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

# Fixed-width UTC layout; lexical order of stored values equals time order.
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

_DURATION_UNITS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 0.001,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ms|h|m|s)")


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def parse_datetime(dt_str: str) -> datetime:
    """Parse an RFC 3339 / ISO 8601 string into an aware UTC datetime."""
    value = dt_str.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime for storage."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Inverse of format_timestamp."""
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def parse_duration(text: str) -> timedelta:
    """
    Parse a duration string such as ``10m``, ``24h`` or ``1h30m45.5s``.

    Raises:
        ValueError: If the string is empty or contains anything besides
            ``<number><unit>`` groups.
    """
    value = text.strip()
    if not value:
        raise ValueError("empty duration")
    if value == "0":
        return timedelta(0)

    seconds = 0.0
    position = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != position:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()

    if position != len(value):
        raise ValueError(f"invalid duration {text!r}")
    return timedelta(seconds=seconds)


def format_duration(delta: timedelta) -> str:
    """Format a timedelta in the same grammar parse_duration accepts."""
    total = delta.total_seconds()
    hours, rest = divmod(int(total), 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")
    return "".join(parts)


def split_label_filter(item: str) -> tuple[str, str]:
    """
    Split a ``key=value`` label filter on the first ``=``.

    Raises:
        ValueError: If there is no ``=`` or the key is empty.
    """
    key, sep, value = item.partition("=")
    if not sep or not key:
        raise ValueError(f"invalid label filter {item!r}, expected key=value")
    return key, value
