"""Data shapes exchanged with the calendar functions."""

from __future__ import annotations

import base64
import datetime
import hashlib
from typing import Any, TypedDict

from pickupboard.core.constants import CALENDAR_EVENT_DURATION_MINUTES
from pickupboard.events.lifecycle import participant_names
from pickupboard.events.models import Event
from pickupboard.sports import find_sport
from pickupboard.utils import normalize_name, parse_time_raw


class _CalendarEventDataBase(TypedDict):
    summary: str
    description: str
    location: str
    startDateTime: str
    endDateTime: str
    timeZone: str


class CalendarEventData(_CalendarEventDataBase, total=False):
    """Plain-data description of a session for the calendar functions."""

    # Board event id, used to derive stable per-person calendar ids.
    eventId: str


def build_event_data(event: Event, time_zone: str) -> CalendarEventData | None:
    """Describe an event for Google Calendar.

    Returns None when the event's time cannot be parsed, since no calendar
    entry can be placed without an instant.
    """
    start = parse_time_raw(event.timeRaw, time_zone)
    if start is None:
        return None
    end = start + datetime.timedelta(minutes=CALENDAR_EVENT_DURATION_MINUTES)

    sport = find_sport(event.sportId)
    sport_name = sport.name if sport else event.sportId.title()
    players = ", ".join(participant_names(event))

    return CalendarEventData(
        summary=f"{sport_name} pickup game",
        description=(
            f"Hosted by {event.hostName}.\n"
            f"Players ({len(event.participants) + 1}): {players}"
        ),
        location=event.location,
        startDateTime=start.isoformat(),
        endDateTime=end.isoformat(),
        timeZone=time_zone,
        eventId=event.id,
    )


def calendar_event_id(event_id: str, name: str) -> str:
    """Derive the Google event id for one person's copy of a session.

    Google accepts client-chosen ids made of base32hex characters, so the
    same (event, person) pair always maps to the same calendar entry.
    """
    digest = hashlib.sha1(  # nosec B324
        f"{event_id}:{normalize_name(name)}".encode("utf-8")
    ).digest()
    return base64.b32hexencode(digest).decode("ascii").rstrip("=").lower()


def to_google_body(event_data: CalendarEventData) -> dict[str, Any]:
    """Build the Google Calendar API event resource."""
    return {
        "summary": event_data.get("summary"),
        "description": event_data.get("description"),
        "location": event_data.get("location"),
        "start": {
            "dateTime": event_data.get("startDateTime"),
            "timeZone": event_data.get("timeZone"),
        },
        "end": {
            "dateTime": event_data.get("endDateTime"),
            "timeZone": event_data.get("timeZone"),
        },
    }
