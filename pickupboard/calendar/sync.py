"""Turn confirmation transitions into calendar create/update/delete calls."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Protocol

from pickupboard.core.constants import DEFAULT_TIME_ZONE
from pickupboard.events.confirmation import Transition, TransitionKind
from pickupboard.events.lifecycle import participant_names
from pickupboard.events.models import Event
from pickupboard.utils import normalize_name

from .client import CalendarError
from .models import CalendarEventData, build_event_data

if TYPE_CHECKING:
    from pickupboard.events.store import EventStore

logger = logging.getLogger(__name__)

CalendarIds = dict[str, Optional[str]]


class CalendarRPC(Protocol):
    """The calendar functions the synchronizer depends on."""

    def create_calendar_events(
        self, event_data: CalendarEventData, participants: Iterable[str]
    ) -> Mapping[str, Optional[str]]: ...

    def update_calendar_events(
        self,
        event_data: CalendarEventData,
        calendar_event_ids: Mapping[str, Optional[str]],
    ) -> Mapping[str, bool]: ...

    def delete_calendar_events(
        self, calendar_event_ids: Mapping[str, Optional[str]]
    ) -> Mapping[str, bool]: ...


@dataclass
class SyncReport:
    """Outcome of synchronizing one transition."""

    calendar_event_ids: CalendarIds
    # People who should have an entry but do not (or whose entry is outdated).
    failed: list[str] = field(default_factory=list)
    # People whose entry could not be removed and may now be stale.
    stale: list[str] = field(default_factory=list)
    notices: list[str] = field(default_factory=list)
    # The delta written back to the store.
    created: CalendarIds = field(default_factory=dict)
    removed: set[str] = field(default_factory=set)

    def add_failed(self, names: Iterable[str]) -> None:
        names = sorted(set(names) - set(self.failed))
        if names:
            self.failed.extend(names)
            self.notices.append(
                f"Calendar invites could not be sent to {', '.join(names)}. "
                "They need to connect Google Calendar and try again."
            )

    def add_outdated(self, names: Iterable[str]) -> None:
        names = sorted(set(names) - set(self.failed))
        if names:
            self.failed.extend(names)
            self.notices.append(
                f"Calendar entries for {', '.join(names)} could not be updated "
                "and may show old details."
            )

    def add_stale(self, names: Iterable[str]) -> None:
        names = sorted(set(names) - set(self.stale))
        if names:
            self.stale.extend(names)
            self.notices.append(
                f"Calendar entries for {', '.join(names)} could not be removed. "
                "Please delete them manually."
            )


def _known_ids(
    stored: Mapping[str, Optional[str]] | None, *events: Event | None
) -> CalendarIds:
    """Union of the ids in the snapshots and the stored ids, stored last.

    Null entries are kept, but never replace a known id.
    """
    sources = [event.calendarEventIds for event in events if event is not None]
    sources.append(stored or {})
    ids: CalendarIds = {}
    for source in sources:
        for key, value in source.items():
            if value or key not in ids:
                ids[key] = value
    return ids


def _present(ids: Mapping[str, Optional[str]]) -> CalendarIds:
    return {k: v for k, v in ids.items() if v}


class CalendarSynchronizer:
    """Drives per-participant calendar entries from board transitions."""

    def __init__(
        self,
        rpc: CalendarRPC,
        store: EventStore | None = None,
        time_zone: str = DEFAULT_TIME_ZONE,
    ) -> None:
        """Initialize with the calendar functions and, optionally, a store."""
        self.rpc = rpc
        self.store = store
        self.time_zone = time_zone

    def sync(self, transition: Transition) -> SyncReport:
        """Issue the calendar calls implied by a transition.

        Transitions may be handled after the board has moved on, so the ids
        stored right now are merged with the snapshot's. When a store is
        attached, only the ids created or removed here are written back.
        """
        event = transition.event
        stored = self._stored_ids(transition.sport_id, event)
        if transition.kind is TransitionKind.BECAME_CONFIRMED:
            report = self._on_confirmed(event, stored)
        elif transition.kind is TransitionKind.BECAME_UNCONFIRMED:
            report = self._on_unconfirmed(event, transition.previous, stored)
        else:
            report = self._on_roster_changed(
                event, transition.previous, stored, transition.joined, transition.left
            )

        self._write_back(transition.sport_id, event, report)
        for notice in report.notices:
            logger.warning(f"[{event.id}] {notice}")
        return report

    def _stored_ids(self, sport_id: str, event: Event) -> CalendarIds | None:
        if self.store is None:
            return None
        return self.store.calendar_ids(sport_id, event.id)

    def _write_back(self, sport_id: str, event: Event, report: SyncReport) -> None:
        if self.store is None or not (report.created or report.removed):
            return
        update = self.store.update_calendar_ids(
            sport_id, event.id, report.created, report.removed
        )
        if update.rejected:
            # The event was deleted, unconfirmed or left while the calls ran.
            logger.info(f"[{event.id}] Removing entries the event no longer needs")
            for key in update.rejected:
                report.calendar_event_ids.pop(key, None)
            self._delete(update.rejected, report)
        elif not update.stored:
            logger.warning(f"Could not store calendar ids for {event.id}")

    def _event_data(self, event: Event, report: SyncReport) -> CalendarEventData | None:
        event_data = build_event_data(event, self.time_zone)
        if event_data is None:
            report.notices.append(
                f"Time '{event.timeRaw}' is not a date, so no calendar entries were made."
            )
        return event_data

    def _create(
        self, event_data: CalendarEventData, names: list[str], report: SyncReport
    ) -> None:
        try:
            results = self.rpc.create_calendar_events(event_data, names)
        except CalendarError as e:
            logger.error(f"Calendar create call failed: {e}")
            results = {}
        created = _present(results)
        report.created.update(created)
        report.calendar_event_ids.update(created)
        report.add_failed(
            name
            for name in names
            if not report.calendar_event_ids.get(normalize_name(name))
        )

    def _delete(self, ids: Mapping[str, Optional[str]], report: SyncReport) -> None:
        ids = _present(ids)
        if not ids:
            return
        try:
            results = self.rpc.delete_calendar_events(ids)
        except CalendarError as e:
            logger.error(f"Calendar delete call failed: {e}")
            results = {}
        report.add_stale(name for name in ids if not results.get(name))

    def _on_confirmed(self, event: Event, stored: CalendarIds | None) -> SyncReport:
        report = SyncReport(calendar_event_ids=_known_ids(stored, event))
        event_data = self._event_data(event, report)
        if event_data is not None:
            self._create(event_data, participant_names(event), report)
        return report

    def _on_unconfirmed(
        self, event: Event, previous: Event | None, stored: CalendarIds | None
    ) -> SyncReport:
        ids = _known_ids(stored, previous, event)
        report = SyncReport(calendar_event_ids={}, removed=set(ids))
        self._delete(ids, report)
        return report

    def _on_roster_changed(
        self,
        event: Event,
        previous: Event | None,
        stored: CalendarIds | None,
        joined: Iterable[str],
        left: Iterable[str],
    ) -> SyncReport:
        ids = _known_ids(stored, previous, event)
        left_keys = {normalize_name(name) for name in left}
        report = SyncReport(
            calendar_event_ids={k: v for k, v in ids.items() if k not in left_keys},
            removed=left_keys & set(ids),
        )

        self._delete({k: v for k, v in ids.items() if k in left_keys}, report)

        event_data = self._event_data(event, report)
        if event_data is None:
            return report

        remaining = _present(report.calendar_event_ids)
        if remaining:
            try:
                updated = self.rpc.update_calendar_events(event_data, remaining)
            except CalendarError as e:
                logger.error(f"Calendar update call failed: {e}")
                updated = {}
            report.add_outdated(name for name in remaining if not updated.get(name))

        joined = sorted(joined)
        if joined:
            self._create(event_data, joined, report)
        return report

    def delete_event_entries(self, event: Event) -> SyncReport:
        """Remove everyone's entry for an event that was deleted outright."""
        report = SyncReport(calendar_event_ids={})
        self._delete(event.calendarEventIds, report)
        return report
