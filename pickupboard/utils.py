"""Utility functions for the application."""

from __future__ import annotations

import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .core.constants import CUSTOM_TIME_LABEL, DEFAULT_TIME_ZONE


def normalize_name(name: str | None) -> str:
    """Return the identity key for a display name (trimmed, lowercase)."""
    return (name or "").strip().lower()


def names_equal(a: str | None, b: str | None) -> bool:
    """Compare two display names the way the board identifies people."""
    return normalize_name(a) == normalize_name(b)


def get_zone(time_zone: str | None) -> datetime.tzinfo:
    """Resolve a time zone name, falling back to UTC for unknown names."""
    try:
        return ZoneInfo(time_zone or DEFAULT_TIME_ZONE)
    except (ZoneInfoNotFoundError, ValueError):
        return datetime.timezone.utc


def parse_time_raw(
    time_raw: str | None, time_zone: str | None = None
) -> datetime.datetime | None:
    """Parse a stored session time into an aware datetime.

    Values without an offset (what a ``datetime-local`` input produces) are
    read in ``time_zone``. Returns None when the value cannot be parsed.
    """
    if not time_raw or not isinstance(time_raw, str):
        return None
    value = time_raw.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=get_zone(time_zone))
    return parsed


def format_time_label(time_raw: str | None, time_zone: str | None = None) -> str:
    """Render a short label like ``Jan 10, 6:30 PM``."""
    parsed = parse_time_raw(time_raw, time_zone)
    if parsed is None:
        return CUSTOM_TIME_LABEL
    local = parsed.astimezone(get_zone(time_zone))
    hour = local.hour % 12 or 12
    return f"{local:%b} {local.day}, {hour}:{local:%M} {local:%p}"


def now_utc() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def first_form_error(form) -> str:
    """Return the first validation message of a submitted form."""
    for field_name, errors in form.errors.items():
        if errors:
            field = getattr(form, field_name, None) if field_name else None
            label = field.label.text if field is not None else field_name
            return f"{label}: {errors[0]}"
    return "Invalid form submission."


def parse_version(value) -> int | None:
    """Read an optional ``version`` from a request payload."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("version must be an integer")
    return int(value)
