"""Data models for the events blueprint."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple  # noqa: UP035

from pickupboard.core.constants import DEFAULT_MAX_PLAYERS, DEFAULT_MIN_PLAYERS
from pickupboard.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """One pickup session as stored in the shared events document."""

    id: str
    sportId: str
    hostName: str
    timeRaw: str
    location: str
    maxPlayers: int
    minPlayers: int = DEFAULT_MIN_PLAYERS
    timeLabel: str = ""
    participants: Tuple[str, ...] = ()
    calendarEventIds: Dict[str, Optional[str]] = field(default_factory=dict)
    version: int = 0

    @property
    def is_confirmed(self) -> bool:
        """Whether the roster has reached the minimum headcount."""
        return len(self.participants) >= self.minPlayers

    @property
    def is_full(self) -> bool:
        """Whether no more players can join."""
        return len(self.participants) >= self.maxPlayers

    def same_content(self, other: Event) -> bool:
        """Compare everything except the version counter."""
        return _content(self) == _content(other)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], sport_id: str = "") -> Event:
        """Build an Event from a Firestore map, applying defaults once.

        Raises:
            ValueError: If the map has no usable id.
        """
        event_id = data.get("id")
        if not event_id:
            raise ValueError("Event is missing an id.")

        participants = data.get("participants") or []
        if not isinstance(participants, (list, tuple)):
            participants = []

        calendar_ids = data.get("calendarEventIds") or {}
        if not isinstance(calendar_ids, Mapping):
            calendar_ids = {}

        return cls(
            id=str(event_id),
            sportId=str(data.get("sportId") or sport_id),
            hostName=str(data.get("hostName") or ""),
            timeRaw=str(data.get("timeRaw") or ""),
            timeLabel=str(data.get("timeLabel") or ""),
            location=str(data.get("location") or ""),
            maxPlayers=_as_int(data.get("maxPlayers"), DEFAULT_MAX_PLAYERS),
            minPlayers=_as_int(data.get("minPlayers"), DEFAULT_MIN_PLAYERS),
            participants=tuple(str(p) for p in participants if p),
            calendarEventIds={str(k): v for k, v in calendar_ids.items()},
            version=_as_int(data.get("version"), 0),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the Firestore/JSON shape."""
        return {
            "id": self.id,
            "sportId": self.sportId,
            "hostName": self.hostName,
            "timeRaw": self.timeRaw,
            "timeLabel": self.timeLabel,
            "location": self.location,
            "maxPlayers": self.maxPlayers,
            "minPlayers": self.minPlayers,
            "participants": list(self.participants),
            "calendarEventIds": dict(self.calendarEventIds),
            "version": self.version,
        }


EventsBySport = Dict[str, List[Event]]  # noqa: UP006


@dataclass
class EventDraft:
    """Dataclass for a new event submission."""

    hostName: str
    timeRaw: str
    location: str
    maxPlayers: int = DEFAULT_MAX_PLAYERS
    minPlayers: int = DEFAULT_MIN_PLAYERS

    def validate(self) -> None:
        """Validate the draft before anything is written."""
        if not (self.hostName or "").strip():
            raise ValidationError("Host name is required.")
        if not (self.timeRaw or "").strip():
            raise ValidationError("Time is required.")
        if not (self.location or "").strip():
            raise ValidationError("Location is required.")
        if self.maxPlayers is None or self.maxPlayers < 1:
            raise ValidationError("Max players must be at least 1.")
        if self.minPlayers is None or self.minPlayers < 1:
            raise ValidationError("Min players must be at least 1.")
        if self.minPlayers > self.maxPlayers:
            raise ValidationError("Min players cannot be more than max players.")


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except (TypeError, ValueError):
        return default


def _content(event: Event) -> tuple[Any, ...]:
    data = event.to_dict()
    data.pop("version")
    data["participants"] = tuple(data["participants"])
    data["calendarEventIds"] = tuple(sorted(data["calendarEventIds"].items()))
    return tuple(sorted(data.items()))


def parse_events_by_sport(raw: Any) -> EventsBySport:
    """Turn the raw ``eventsBySport`` map into typed events.

    Non-list sport entries are treated as empty and malformed events are
    dropped, so every consumer works with complete records.
    """
    if not isinstance(raw, Mapping):
        return {}

    events_by_sport: EventsBySport = {}
    for sport_id, entries in raw.items():
        if not isinstance(entries, list):
            continue
        events = []
        for entry in entries:
            if not isinstance(entry, Mapping):
                logger.warning(f"Dropping malformed event in {sport_id}: {entry!r}")
                continue
            try:
                events.append(Event.from_dict(entry, sport_id=sport_id))
            except ValueError as e:
                logger.warning(f"Dropping malformed event in {sport_id}: {e}")
        events_by_sport[str(sport_id)] = events
    return events_by_sport


def serialize_events_by_sport(events_by_sport: EventsBySport) -> dict[str, Any]:
    """Inverse of parse_events_by_sport."""
    return {
        sport_id: [event.to_dict() for event in events]
        for sport_id, events in events_by_sport.items()
    }
