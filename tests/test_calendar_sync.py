"""Tests for the calendar synchronizer."""

import unittest
from unittest.mock import MagicMock

from pickupboard.calendar.client import CalendarError
from pickupboard.calendar.sync import CalendarSynchronizer
from pickupboard.events.confirmation import Transition, TransitionKind
from pickupboard.events.models import Event
from pickupboard.events.store import EventStore
from tests.mock_utils import build_db

IDS = {"ann": "id-ann", "ben": "id-ben", "cid": "id-cid"}


def make_event(participants=(), calendar_ids=None, **overrides):
    data = {
        "id": "soccer-1",
        "sportId": "soccer",
        "hostName": "Ann",
        "timeRaw": "2030-01-11T18:30",
        "location": "Field 3",
        "maxPlayers": 4,
        "minPlayers": 2,
        "participants": tuple(participants),
        "calendarEventIds": dict(calendar_ids or {}),
    }
    data.update(overrides)
    return Event(**data)


class FakeRPC:
    """In-memory calendar functions."""

    def __init__(self, unavailable=()):
        self.unavailable = {name.lower() for name in unavailable}
        self.created = []
        self.updated = []
        self.deleted = []

    def create_calendar_events(self, event_data, participants):
        self.created.append(list(participants))
        return {
            name.lower(): None if name.lower() in self.unavailable else f"id-{name.lower()}"
            for name in participants
        }

    def update_calendar_events(self, event_data, calendar_event_ids):
        self.updated.append(dict(calendar_event_ids))
        return {name: name not in self.unavailable for name in calendar_event_ids}

    def delete_calendar_events(self, calendar_event_ids):
        self.deleted.append(dict(calendar_event_ids))
        return {name: name not in self.unavailable for name in calendar_event_ids}


class CalendarSynchronizerTestCase(unittest.TestCase):
    """Tests for CalendarSynchronizer against a MockFirestore-backed store."""

    def setUp(self):
        self.rpc = FakeRPC()
        self.store = EventStore(build_db(self))
        self.synchronizer = CalendarSynchronizer(self.rpc, self.store, "UTC")

    def store_event(self, event):
        self.store.save({"soccer": [event]})
        return event

    def stored_ids(self):
        return self.store.calendar_ids("soccer", "soccer-1")

    def test_became_confirmed_creates_for_everyone(self):
        """Host and participants each get an entry and the ids are stored."""
        event = self.store_event(make_event(["Ben", "Cid"]))
        report = self.synchronizer.sync(
            Transition("soccer", event, TransitionKind.BECAME_CONFIRMED)
        )
        self.assertEqual(self.rpc.created, [["Ann", "Ben", "Cid"]])
        self.assertEqual(report.calendar_event_ids, IDS)
        self.assertEqual(report.failed, [])
        self.assertEqual(self.stored_ids(), IDS)

    def test_unconnected_participant_gets_a_notice(self):
        """People without calendar access are reported, the rest are served."""
        synchronizer = CalendarSynchronizer(FakeRPC(unavailable=["Cid"]), None, "UTC")
        event = make_event(["Ben", "Cid"])
        report = synchronizer.sync(
            Transition("soccer", event, TransitionKind.BECAME_CONFIRMED)
        )
        self.assertEqual(report.failed, ["Cid"])
        self.assertEqual(set(report.calendar_event_ids), {"ann", "ben"})
        self.assertIn("Cid", report.notices[0])

    def test_became_unconfirmed_deletes_all_and_clears(self):
        """Every known id is deleted and the stored map is emptied."""
        previous = make_event(["Ben", "Cid"], IDS)
        current = self.store_event(make_event(["Cid"], IDS))
        report = self.synchronizer.sync(
            Transition(
                "soccer",
                current,
                TransitionKind.BECAME_UNCONFIRMED,
                previous=previous,
                left=frozenset({"Ben"}),
            )
        )
        self.assertEqual(self.rpc.deleted, [IDS])
        self.assertEqual(report.calendar_event_ids, {})
        self.assertEqual(self.stored_ids(), {})

    def test_unconfirmed_uses_ids_stored_after_the_snapshot(self):
        """Ids written by an earlier sync are deleted even if the snapshot lacks them."""
        current = make_event(["Cid"])
        self.store_event(make_event(["Cid"], IDS))
        self.synchronizer.sync(
            Transition(
                "soccer",
                current,
                TransitionKind.BECAME_UNCONFIRMED,
                previous=make_event(["Ben", "Cid"]),
            )
        )
        self.assertEqual(self.rpc.deleted, [IDS])
        self.assertEqual(self.stored_ids(), {})

    def test_roster_change_deletes_updates_and_creates(self):
        """Leavers are removed, stayers updated, joiners created."""
        previous = make_event(["Ben", "Cid"], IDS)
        current = self.store_event(make_event(["Ben", "Dee"], IDS))
        report = self.synchronizer.sync(
            Transition(
                "soccer",
                current,
                TransitionKind.ROSTER_CHANGED_WHILE_CONFIRMED,
                previous=previous,
                joined=frozenset({"Dee"}),
                left=frozenset({"Cid"}),
            )
        )
        expected = {"ann": "id-ann", "ben": "id-ben", "dee": "id-dee"}
        self.assertEqual(self.rpc.deleted, [{"cid": "id-cid"}])
        self.assertEqual(self.rpc.updated, [{"ann": "id-ann", "ben": "id-ben"}])
        self.assertEqual(self.rpc.created, [["Dee"]])
        self.assertEqual(report.calendar_event_ids, expected)
        self.assertEqual(self.stored_ids(), expected)

    def test_roster_change_keeps_null_entries(self):
        """People recorded without an entry keep their null mapping."""
        ids = {"ann": "id-ann", "ben": None}
        previous = make_event(["Ben"], ids, minPlayers=1)
        current = self.store_event(make_event(["Ben", "Cid"], ids, minPlayers=1))
        self.synchronizer.sync(
            Transition(
                "soccer",
                current,
                TransitionKind.ROSTER_CHANGED_WHILE_CONFIRMED,
                previous=previous,
                joined=frozenset({"Cid"}),
            )
        )
        self.assertEqual(self.rpc.updated, [{"ann": "id-ann"}])
        self.assertEqual(
            self.stored_ids(), {"ann": "id-ann", "ben": None, "cid": "id-cid"}
        )

    def test_entries_for_a_deleted_event_are_removed(self):
        """Ids created for an event deleted meanwhile are not left behind."""
        self.store.save({"soccer": []})
        report = self.synchronizer.sync(
            Transition("soccer", make_event(["Ben", "Cid"]), TransitionKind.BECAME_CONFIRMED)
        )
        self.assertEqual(self.rpc.deleted, [IDS])
        self.assertEqual(report.calendar_event_ids, {})

    def test_failed_delete_is_reported_as_stale(self):
        """Entries that could not be removed are reported."""
        rpc = FakeRPC(unavailable=["cid"])
        synchronizer = CalendarSynchronizer(rpc, None, "UTC")
        report = synchronizer.sync(
            Transition(
                "soccer",
                make_event(["Ben"], IDS),
                TransitionKind.BECAME_UNCONFIRMED,
                previous=make_event(["Ben", "Cid"], IDS),
            )
        )
        self.assertEqual(report.stale, ["cid"])
        self.assertEqual(report.calendar_event_ids, {})

    def test_rpc_outage_does_not_raise(self):
        """A failing calendar backend leaves everyone marked as failed."""
        rpc = MagicMock()
        rpc.create_calendar_events.side_effect = CalendarError("down")
        synchronizer = CalendarSynchronizer(rpc, None, "UTC")
        report = synchronizer.sync(
            Transition("soccer", make_event(["Ben", "Cid"]), TransitionKind.BECAME_CONFIRMED)
        )
        self.assertEqual(report.failed, ["Ann", "Ben", "Cid"])
        self.assertEqual(report.calendar_event_ids, {})

    def test_free_text_time_skips_calendar_calls(self):
        """No calendar entries are made without a parseable time."""
        event = self.store_event(make_event(["Ben", "Cid"], timeRaw="after practice"))
        report = self.synchronizer.sync(
            Transition("soccer", event, TransitionKind.BECAME_CONFIRMED)
        )
        self.assertEqual(self.rpc.created, [])
        self.assertEqual(len(report.notices), 1)
        self.assertEqual(self.stored_ids(), {})

    def test_delete_event_entries(self):
        """Deleting an event removes every stored entry."""
        ids = {"ann": "id-ann", "ben": None}
        self.synchronizer.delete_event_entries(make_event(["Ben"], ids))
        self.assertEqual(self.rpc.deleted, [{"ann": "id-ann"}])


if __name__ == "__main__":
    unittest.main()
