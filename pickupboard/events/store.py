"""Firestore access for the shared events document."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Optional

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from pickupboard.core.constants import (
    APP_STATE_COLLECTION,
    EVENTS_BY_SPORT_FIELD,
    EVENTS_DOCUMENT,
)
from pickupboard.errors import ConflictError, NotFoundError, StoreUnavailableError
from pickupboard.utils import normalize_name

from .lifecycle import find_event, participant_names
from .models import (
    Event,
    EventsBySport,
    parse_events_by_sport,
    serialize_events_by_sport,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.transaction import Transaction

logger = logging.getLogger(__name__)

Operation = Callable[[EventsBySport], EventsBySport]
# Maps event id to the version the caller saw; None only requires existence.
ExpectedVersions = Mapping[str, Optional[int]]
CalendarIds = dict[str, Optional[str]]


@dataclass(frozen=True)
class MutationResult:
    """The board before and after a committed mutation."""

    previous: EventsBySport
    current: EventsBySport
    changed: bool


@dataclass(frozen=True)
class CalendarIdsUpdate:
    """Outcome of applying a calendar id delta to one event."""

    stored: bool
    # Added ids the event could not hold.
    rejected: CalendarIds = field(default_factory=dict)


def _locate(state: EventsBySport, event_id: str) -> Event | None:
    for events in state.values():
        for event in events:
            if event.id == event_id:
                return event
    return None


def bump_versions(previous: EventsBySport, updated: EventsBySport) -> EventsBySport:
    """Increment the version of every event whose content changed."""
    result: EventsBySport = {}
    for sport_id, events in updated.items():
        bumped = []
        for event in events:
            ref = find_event(previous, sport_id, event.id)
            if ref is None:
                bumped.append(replace(event, version=event.version + 1))
            elif not event.same_content(ref.event):
                bumped.append(replace(event, version=ref.event.version + 1))
            else:
                bumped.append(replace(event, version=ref.event.version))
        result[sport_id] = bumped
    return result


class EventStore:
    """Read, write and watch the single ``appState/events`` document."""

    def __init__(self, db: Client) -> None:
        """Bind the store to a Firestore client."""
        self.db = db
        self.doc_ref = db.collection(APP_STATE_COLLECTION).document(EVENTS_DOCUMENT)

    @staticmethod
    def _parse_snapshot(snapshot: DocumentSnapshot | None) -> EventsBySport:
        if snapshot is None or not snapshot.exists:
            return {}
        data = snapshot.to_dict() or {}
        return parse_events_by_sport(data.get(EVENTS_BY_SPORT_FIELD))

    def _write(self, writer: Any, state: EventsBySport) -> None:
        writer.set(self.doc_ref, {EVENTS_BY_SPORT_FIELD: serialize_events_by_sport(state)})

    def load(self) -> EventsBySport:
        """Read the board. Read failures yield an empty board."""
        try:
            return self._parse_snapshot(self.doc_ref.get())
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Failed to load events from Firestore: {e}")
            return {}

    def save(self, state: EventsBySport) -> bool:
        """Replace the whole board. Failures are logged and not retried."""
        try:
            self.doc_ref.set(
                {EVENTS_BY_SPORT_FIELD: serialize_events_by_sport(state)}
            )
            return True
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Failed to save events to Firestore: {e}")
            return False

    def _mutate_in_transaction(
        self,
        transaction: Transaction,
        operation: Operation,
        expected_versions: ExpectedVersions | None,
    ) -> MutationResult:
        previous = self._parse_snapshot(self.doc_ref.get(transaction=transaction))

        for event_id, version in (expected_versions or {}).items():
            event = _locate(previous, event_id)
            if event is None:
                raise NotFoundError("Event not found.")
            if version is not None and event.version != version:
                raise ConflictError()

        updated = operation(previous)
        if updated is previous or updated == previous:
            return MutationResult(previous, previous, False)

        current = bump_versions(previous, updated)
        self._write(transaction, current)
        return MutationResult(previous, current, True)

    def mutate(
        self,
        operation: Operation,
        expected_versions: ExpectedVersions | None = None,
    ) -> MutationResult:
        """Apply a lifecycle operation to the freshest board, atomically.

        The operation runs inside a Firestore transaction, so edits to other
        events made concurrently are never overwritten.

        Raises:
            NotFoundError: If an event in ``expected_versions`` is gone.
            ConflictError: If an event's version no longer matches.
            StoreUnavailableError: If Firestore cannot be reached.
        """
        transaction = self.db.transaction()
        try:
            return firestore.transactional(self._mutate_in_transaction)(
                transaction, operation, expected_versions
            )
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Event mutation failed: {e}")
            raise StoreUnavailableError() from e

    def calendar_ids(self, sport_id: str, event_id: str) -> CalendarIds | None:
        """Read the ids currently stored for one event, or None if it is gone."""
        ref = find_event(self.load(), sport_id, event_id)
        return dict(ref.event.calendarEventIds) if ref else None

    def _patch_in_transaction(
        self,
        transaction: Transaction,
        sport_id: str,
        event_id: str,
        added: Mapping[str, Optional[str]],
        removed: frozenset[str],
    ) -> CalendarIdsUpdate:
        state = self._parse_snapshot(self.doc_ref.get(transaction=transaction))
        ref = find_event(state, sport_id, event_id)
        if ref is None:
            return CalendarIdsUpdate(stored=False, rejected=dict(added))

        event = ref.event
        roster = {normalize_name(name) for name in participant_names(event)}
        accepted: CalendarIds = {}
        rejected: CalendarIds = {}
        for key, value in added.items():
            if event.is_confirmed and key in roster:
                accepted[key] = value
            else:
                rejected[key] = value

        ids = {k: v for k, v in event.calendarEventIds.items() if k not in removed}
        ids.update(accepted)
        if ids != event.calendarEventIds:
            events = list(state[sport_id])
            events[ref.index] = replace(event, calendarEventIds=ids)
            self._write(transaction, {**state, sport_id: events})
        return CalendarIdsUpdate(stored=True, rejected=rejected)

    def update_calendar_ids(
        self,
        sport_id: str,
        event_id: str,
        added: Mapping[str, Optional[str]] | None = None,
        removed: Iterable[str] = (),
    ) -> CalendarIdsUpdate:
        """Apply a delta to one event's ``calendarEventIds`` and nothing else.

        The delta is applied to the ids stored at commit time, so entries
        written by other syncs are kept. Added ids are refused for an event
        that is gone, no longer confirmed, or no longer has that person on
        its roster; the caller owns cleaning those up.
        """
        transaction = self.db.transaction()
        try:
            return firestore.transactional(self._patch_in_transaction)(
                transaction, sport_id, event_id, dict(added or {}), frozenset(removed)
            )
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Failed to store calendar ids for {event_id}: {e}")
            return CalendarIdsUpdate(stored=False)

    def subscribe(
        self, callback: Callable[[EventsBySport], None]
    ) -> Any:
        """Call ``callback`` with the parsed board on every change.

        Returns the Firestore watch; call ``unsubscribe()`` on it to stop.
        """

        def on_snapshot(doc_snapshots: list[Any], changes: Any, read_time: Any) -> None:
            snapshot = doc_snapshots[0] if doc_snapshots else None
            try:
                callback(self._parse_snapshot(snapshot))
            except Exception as e:
                # Keep the listener thread alive.
                logger.exception(f"Error handling events snapshot: {e}")

        return self.doc_ref.on_snapshot(on_snapshot)
