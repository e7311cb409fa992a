"""Service layer for event data access and orchestration."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Optional

from pickupboard.errors import AuthorizationError, NotFoundError
from pickupboard.sports import get_sport
from pickupboard.utils import names_equal, now_utc

from .lifecycle import (
    create_event,
    delete_event,
    expire_events,
    find_event,
    join_event,
    leave_event,
)
from .models import Event, EventDraft, EventsBySport
from .store import EventStore

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


class EventService:
    """Service class for event operations requested by signed-in users."""

    @staticmethod
    def _get_event(state: EventsBySport, sport_id: str, event_id: str) -> Event:
        ref = find_event(state, sport_id, event_id)
        if ref is None:
            raise NotFoundError("Event not found.")
        return ref.event

    @staticmethod
    def list_events(
        db: Client,
        sport_id: str,
        time_zone: Optional[str] = None,
        now: Optional[datetime.datetime] = None,
    ) -> list[Event]:
        """Upcoming events for a sport, in creation order."""
        get_sport(sport_id)
        state = expire_events(EventStore(db).load(), now or now_utc(), time_zone).state
        return list(state.get(sport_id) or [])

    @staticmethod
    def create(
        db: Client,
        sport_id: str,
        draft: EventDraft,
        time_zone: Optional[str] = None,
    ) -> Event:
        """Validate a draft and add it to the board."""
        get_sport(sport_id)
        draft.validate()
        now = now_utc()
        result = EventStore(db).mutate(
            lambda state: create_event(state, sport_id, draft, now, time_zone)
        )
        return result.current[sport_id][-1]

    @staticmethod
    def join(
        db: Client,
        sport_id: str,
        event_id: str,
        name: str,
        version: Optional[int] = None,
    ) -> tuple[Event, bool]:
        """Add ``name`` to the roster. Returns the event and whether it changed."""
        result = EventStore(db).mutate(
            lambda state: join_event(state, sport_id, event_id, name),
            {event_id: version},
        )
        return EventService._get_event(result.current, sport_id, event_id), result.changed

    @staticmethod
    def leave(
        db: Client,
        sport_id: str,
        event_id: str,
        name: str,
        version: Optional[int] = None,
    ) -> tuple[Event, bool]:
        """Remove ``name`` from the roster. Returns the event and whether it changed."""
        result = EventStore(db).mutate(
            lambda state: leave_event(state, sport_id, event_id, name),
            {event_id: version},
        )
        return EventService._get_event(result.current, sport_id, event_id), result.changed

    @staticmethod
    def delete(
        db: Client,
        sport_id: str,
        event_id: str,
        actor: str,
        version: Optional[int] = None,
    ) -> Event:
        """Delete an event on behalf of its host and return the removed record.

        Raises:
            AuthorizationError: If ``actor`` is not the host.
        """

        def operation(state: EventsBySport) -> EventsBySport:
            event = EventService._get_event(state, sport_id, event_id)
            if not names_equal(event.hostName, actor):
                raise AuthorizationError("Only the host can delete this event.")
            return delete_event(state, sport_id, event_id)

        result = EventStore(db).mutate(operation, {event_id: version})
        return EventService._get_event(result.previous, sport_id, event_id)
