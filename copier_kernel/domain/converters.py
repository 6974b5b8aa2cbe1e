"""
Built-in converters between timestamps and RFC 3339 text.

Both are ordinary ``Converter`` values; register them like any other.
Text is rendered at second precision (``2026-02-01T09:30:00Z``); naive
datetimes are treated as local time, matching how they are displayed.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from copier_kernel.domain.registry import Converter


def format_rfc3339(value: datetime) -> str:
    """Format a datetime as RFC 3339 with a mandatory offset."""
    if value.tzinfo is None or value.utcoffset() is None:
        try:
            value = value.astimezone()
        except (OverflowError, OSError, ValueError):
            # Outside the platform's local-time range (e.g. datetime.min)
            value = value.replace(tzinfo=UTC)
    offset = value.utcoffset() or timedelta(0)
    text = value.replace(microsecond=0, tzinfo=None).isoformat()
    if offset == timedelta(0):
        return f"{text}Z"
    sign = "+" if offset >= timedelta(0) else "-"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def parse_rfc3339(text: str) -> datetime:
    """Parse RFC 3339 text. Raises ValueError on empty text or a missing offset."""
    s = text.strip()
    if not s:
        raise ValueError("cannot parse empty string as RFC 3339 timestamp")
    if "T" not in s and "t" not in s:
        raise ValueError(f"not an RFC 3339 timestamp: {text!r}")
    parsed = datetime.fromisoformat(s.replace("Z", "+00:00").replace("z", "+00:00"))
    if parsed.tzinfo is None:
        raise ValueError(f"RFC 3339 timestamp requires a UTC offset: {text!r}")
    return parsed


def _time_to_string(value: Any, target_type: Any) -> Any:
    if isinstance(value, datetime):
        return format_rfc3339(value)
    return value


def _string_to_time(value: Any, target_type: Any) -> Any:
    if isinstance(value, str):
        return parse_rfc3339(value)
    return value


TIME_STRING_CONVERTER = Converter(origin=datetime, target=str, fn=_time_to_string)

STRING_TIME_CONVERTER = Converter(origin=str, target=datetime, fn=_string_to_time)

BUILTIN_CONVERTERS: dict[str, Converter] = {
    "time_to_string": TIME_STRING_CONVERTER,
    "string_to_time": STRING_TIME_CONVERTER,
}
