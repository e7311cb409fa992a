"""Pure state transitions over the events-by-sport mapping.

Every function takes the current ``EventsBySport`` and returns a new one
without touching its input. When an operation has nothing to do, the input
mapping itself is returned so callers can skip the write.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, replace
from typing import NamedTuple

from pickupboard.utils import format_time_label, names_equal, now_utc, parse_time_raw

from .models import Event, EventDraft, EventsBySport


class ExpiryResult(NamedTuple):
    """Result of an expiry sweep."""

    state: EventsBySport
    changed: bool


@dataclass(frozen=True)
class EventRef:
    """Location of an event inside the mapping."""

    sport_id: str
    index: int
    event: Event


def find_event(state: EventsBySport, sport_id: str, event_id: str) -> EventRef | None:
    """Locate an event by sport and id."""
    for index, event in enumerate(state.get(sport_id) or []):
        if event.id == event_id:
            return EventRef(sport_id, index, event)
    return None


def participant_names(event: Event) -> list[str]:
    """Everyone attending: the host followed by the roster."""
    return [event.hostName, *event.participants]


def _with_event(state: EventsBySport, ref: EventRef, event: Event) -> EventsBySport:
    events = list(state.get(ref.sport_id) or [])
    events[ref.index] = event
    return {**state, ref.sport_id: events}


def _new_event_id(state: EventsBySport, sport_id: str, now: datetime.datetime) -> str:
    base = f"{sport_id}-{int(now.timestamp() * 1000)}"
    taken = {event.id for event in state.get(sport_id) or []}
    event_id = base
    suffix = 1
    while event_id in taken:
        event_id = f"{base}-{suffix}"
        suffix += 1
    return event_id


def create_event(
    state: EventsBySport,
    sport_id: str,
    draft: EventDraft,
    now: datetime.datetime | None = None,
    time_zone: str | None = None,
) -> EventsBySport:
    """Append a new event with an empty roster.

    Raises:
        ValidationError: If the draft is incomplete.
    """
    draft.validate()
    now = now or now_utc()
    time_raw = draft.timeRaw.strip()
    event = Event(
        id=_new_event_id(state, sport_id, now),
        sportId=sport_id,
        hostName=draft.hostName.strip(),
        timeRaw=time_raw,
        timeLabel=format_time_label(time_raw, time_zone),
        location=draft.location.strip(),
        maxPlayers=int(draft.maxPlayers),
        minPlayers=int(draft.minPlayers),
    )
    return {**state, sport_id: [*(state.get(sport_id) or []), event]}


def join_event(
    state: EventsBySport, sport_id: str, event_id: str, name: str
) -> EventsBySport:
    """Add a player to an event's roster if there is room."""
    name = (name or "").strip()
    if not name:
        return state

    ref = find_event(state, sport_id, event_id)
    if ref is None:
        return state

    event = ref.event
    if names_equal(name, event.hostName):
        return state
    if any(names_equal(name, p) for p in event.participants):
        return state
    if event.is_full:
        return state

    return _with_event(
        state, ref, replace(event, participants=(*event.participants, name))
    )


def leave_event(
    state: EventsBySport, sport_id: str, event_id: str, name: str
) -> EventsBySport:
    """Remove a player from an event's roster."""
    ref = find_event(state, sport_id, event_id)
    if ref is None:
        return state

    event = ref.event
    remaining = tuple(p for p in event.participants if not names_equal(p, name))
    if len(remaining) == len(event.participants):
        return state

    return _with_event(state, ref, replace(event, participants=remaining))


def delete_event(state: EventsBySport, sport_id: str, event_id: str) -> EventsBySport:
    """Remove an event. Who may do this is decided by the caller."""
    ref = find_event(state, sport_id, event_id)
    if ref is None:
        return state

    events = list(state[sport_id])
    del events[ref.index]
    return {**state, sport_id: events}


def is_expired(
    event: Event, now: datetime.datetime, time_zone: str | None = None
) -> bool:
    """Whether an event's start time is strictly in the past."""
    start = parse_time_raw(event.timeRaw, time_zone)
    if start is None:
        return False
    return start < now


def expire_events(
    state: EventsBySport,
    now: datetime.datetime | None = None,
    time_zone: str | None = None,
) -> ExpiryResult:
    """Drop events that have already started.

    Events whose time cannot be parsed are kept. Sports left with no events
    are removed from the mapping.
    """
    now = now or now_utc()
    changed = False
    cleaned: EventsBySport = {}

    for sport_id, events in state.items():
        kept = [event for event in events if not is_expired(event, now, time_zone)]
        if len(kept) != len(events):
            changed = True
        if kept:
            cleaned[sport_id] = kept

    if not changed:
        return ExpiryResult(state, False)
    return ExpiryResult(cleaned, True)
