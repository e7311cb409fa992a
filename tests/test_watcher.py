"""Tests for the board watcher and the expiry sweeper."""

from __future__ import annotations

import datetime
import unittest
from concurrent.futures import Future
from unittest.mock import MagicMock, patch

from pickupboard import create_app
from pickupboard.calendar.sync import CalendarSynchronizer
from pickupboard.errors import StoreUnavailableError
from pickupboard.events.confirmation import TransitionKind
from pickupboard.events.lifecycle import join_event, leave_event
from pickupboard.events.models import Event
from pickupboard.events.store import EventStore
from pickupboard.events.watcher import ExpirySweeper, SessionWatcher, remove_expired
from pickupboard.workers import start_background_workers
from tests.mock_utils import build_db
from tests.test_calendar_sync import FakeRPC

NOW = datetime.datetime(2025, 1, 10, 18, 0, tzinfo=datetime.timezone.utc)


class ImmediateExecutor:
    """Runs submitted work on the calling thread."""

    def __init__(self) -> None:
        self.shutdown_called = False

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        future.set_result(fn(*args, **kwargs))
        return future

    def shutdown(self, wait: bool = True) -> None:
        self.shutdown_called = True


def make_event(participants=(), **overrides) -> Event:
    data = {
        "id": "soccer-1",
        "sportId": "soccer",
        "hostName": "Ann",
        "timeRaw": "2030-01-11T18:30",
        "location": "Field 3",
        "maxPlayers": 4,
        "minPlayers": 2,
        "participants": tuple(participants),
    }
    data.update(overrides)
    return Event(**data)


class SessionWatcherTestCase(unittest.TestCase):
    """Tests for SessionWatcher."""

    def setUp(self) -> None:
        self.store = MagicMock()
        self.synchronizer = MagicMock()
        self.executor = ImmediateExecutor()
        self.watcher = SessionWatcher(
            self.store, self.synchronizer, "UTC", executor=self.executor
        )

    def test_first_snapshot_is_baseline(self) -> None:
        """No calendar work happens for the first snapshot."""
        self.watcher.on_board({"soccer": [make_event(["Ben", "Cid"])]})
        self.synchronizer.sync.assert_not_called()

    def test_transitions_are_synchronized(self) -> None:
        """A confirmation between snapshots is handed to the synchronizer."""
        self.watcher.on_board({"soccer": [make_event(["Ben"])]})
        self.watcher.on_board({"soccer": [make_event(["Ben", "Cid"])]})

        self.synchronizer.sync.assert_called_once()
        transition = self.synchronizer.sync.call_args[0][0]
        self.assertIs(transition.kind, TransitionKind.BECAME_CONFIRMED)

    def test_sync_errors_are_logged(self) -> None:
        """A failing sync does not propagate out of the worker."""
        self.synchronizer.sync.side_effect = RuntimeError("boom")
        self.watcher.on_board({"soccer": [make_event(["Ben"])]})
        with self.assertLogs("pickupboard.events.watcher", level="ERROR"):
            self.watcher.on_board({"soccer": [make_event(["Ben", "Cid"])]})

    def test_expired_events_trigger_cleanup(self) -> None:
        """Seeing an expired event persists the cleaned board."""
        past = make_event(id="old", timeRaw="2001-01-01T10:00")
        self.store.mutate.return_value = MagicMock(changed=False)
        self.watcher.on_board({"soccer": [past]})
        self.store.mutate.assert_called_once()

        operation = self.store.mutate.call_args[0][0]
        self.assertEqual(operation({"soccer": [past]}), {})

    def test_without_synchronizer(self) -> None:
        """Calendar sync can be disabled."""
        watcher = SessionWatcher(self.store, None, "UTC", executor=self.executor)
        watcher.on_board({"soccer": [make_event(["Ben"])]})
        self.assertEqual(watcher.on_board({"soccer": [make_event(["Ben", "Cid"])]}), [])

    def test_start_and_stop(self) -> None:
        """The watcher subscribes and unsubscribes."""
        watch = self.store.subscribe.return_value
        self.watcher.start()
        self.store.subscribe.assert_called_once_with(self.watcher.on_board)
        self.watcher.stop()
        watch.unsubscribe.assert_called_once()
        self.assertTrue(self.executor.shutdown_called)


class ExpirySweeperTestCase(unittest.TestCase):
    """Tests for ExpirySweeper and remove_expired."""

    def setUp(self) -> None:
        self.store = EventStore(build_db(self))
        self.store.save(
            {
                "soccer": [
                    make_event(id="old", timeRaw="2025-01-10T17:00"),
                    make_event(id="new"),
                ],
                "squash": [make_event(id="gone", timeRaw="2025-01-09T17:00")],
            }
        )

    def test_sweep_once_removes_expired(self) -> None:
        """Past events are removed and empty sports dropped."""
        sweeper = ExpirySweeper(self.store, interval=60, time_zone="UTC")
        self.assertTrue(sweeper.sweep_once(NOW))
        board = self.store.load()
        self.assertEqual([e.id for e in board["soccer"]], ["new"])
        self.assertNotIn("squash", board)

    def test_sweep_is_idempotent(self) -> None:
        """A second sweep with the same clock finds nothing to do."""
        sweeper = ExpirySweeper(self.store, interval=60, time_zone="UTC")
        sweeper.sweep_once(NOW)
        self.assertFalse(sweeper.sweep_once(NOW))

    def test_unavailable_store_is_skipped(self) -> None:
        """An unreachable store only logs a warning."""
        store = MagicMock()
        store.mutate.side_effect = StoreUnavailableError()
        with self.assertLogs("pickupboard.events.watcher", level="WARNING"):
            self.assertFalse(remove_expired(store, "UTC", NOW))

    def test_thread_runs_until_stopped(self) -> None:
        """The sweeper sweeps on start and stops promptly."""
        sweeper = ExpirySweeper(self.store, interval=60, time_zone="UTC")
        with patch.object(sweeper, "sweep_once") as sweep_once:
            sweeper.start()
            sweeper.stop(timeout=5)
        sweep_once.assert_called_once_with()


class StartBackgroundWorkersTestCase(unittest.TestCase):
    """Tests for the worker wiring."""

    @patch("pickupboard.workers.ExpirySweeper")
    @patch("pickupboard.workers.SessionWatcher")
    @patch("pickupboard.workers.firestore")
    def test_wiring(self, mock_firestore, mock_watcher, mock_sweeper):
        """The watcher gets a synchronizer and the sweeper the configured interval."""
        app = create_app({"TESTING": True, "EXPIRY_SWEEP_SECONDS": 5, "TIME_ZONE": "UTC"})
        workers = start_background_workers(app)

        store, synchronizer, time_zone = mock_watcher.call_args[0]
        self.assertIsInstance(store, EventStore)
        self.assertIsNotNone(synchronizer)
        self.assertIs(synchronizer.store, store)
        self.assertEqual(time_zone, "UTC")
        mock_sweeper.assert_called_once_with(store, 5, "UTC")
        mock_watcher.return_value.start.assert_called_once()
        mock_sweeper.return_value.start.assert_called_once()

        workers.stop()
        mock_watcher.return_value.stop.assert_called_once()
        mock_sweeper.return_value.stop.assert_called_once()

    @patch("pickupboard.workers.ExpirySweeper")
    @patch("pickupboard.workers.SessionWatcher")
    @patch("pickupboard.workers.firestore")
    def test_calendar_sync_disabled(self, mock_firestore, mock_watcher, mock_sweeper):
        """Without calendar sync the watcher only handles expiry."""
        app = create_app({"TESTING": True, "CALENDAR_SYNC_ENABLED": False})
        workers = start_background_workers(app)
        self.assertIsNone(mock_watcher.call_args[0][1])
        self.assertIsNone(workers.functions)


class DeferredExecutor:
    """Queues submitted work until ``run_all`` is called."""

    def __init__(self) -> None:
        self.pending: list = []

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run_all(self) -> None:
        while self.pending:
            future, fn, args, kwargs = self.pending.pop(0)
            future.set_result(fn(*args, **kwargs))

    def shutdown(self, wait: bool = True) -> None:
        self.run_all()


class QueuedTransitionsTestCase(unittest.TestCase):
    """Several transitions for one event queued before any sync runs."""

    def setUp(self) -> None:
        self.store = EventStore(build_db(self))
        self.rpc = FakeRPC()
        self.executor = DeferredExecutor()
        self.watcher = SessionWatcher(
            self.store,
            CalendarSynchronizer(self.rpc, self.store, "UTC"),
            "UTC",
            executor=self.executor,
        )

    def start(self, event: Event) -> None:
        self.store.save({"soccer": [event]})
        self.watcher.on_board(self.store.load())

    def apply(self, operation) -> None:
        self.store.mutate(operation)
        self.watcher.on_board(self.store.load())

    def stored_ids(self) -> dict:
        return self.store.calendar_ids("soccer", "soccer-1")

    def test_two_joins_while_confirmed_keep_both_ids(self) -> None:
        """The second sync does not drop the id the first one stored."""
        ids = {"ann": "id-ann", "ben": "id-ben", "cid": "id-cid"}
        self.start(make_event(["Ben", "Cid"], calendarEventIds=ids))
        self.apply(lambda s: join_event(s, "soccer", "soccer-1", "Dee"))
        self.apply(lambda s: join_event(s, "soccer", "soccer-1", "Eve"))
        self.executor.run_all()

        self.assertEqual(self.rpc.created, [["Dee"], ["Eve"]])
        self.assertEqual(
            set(self.stored_ids()), {"ann", "ben", "cid", "dee", "eve"}
        )
        # The second update reaches Dee as well.
        self.assertIn("dee", self.rpc.updated[1])

    def test_confirm_then_unconfirm_leaves_no_entries(self) -> None:
        """Entries created for a confirmation that was already undone are removed."""
        self.start(make_event(["Ben"]))
        self.apply(lambda s: join_event(s, "soccer", "soccer-1", "Cid"))
        self.apply(lambda s: leave_event(s, "soccer", "soccer-1", "Ben"))
        self.executor.run_all()

        board = self.store.load()
        self.assertFalse(board["soccer"][0].is_confirmed)
        self.assertEqual(self.stored_ids(), {})
        self.assertEqual(self.rpc.created, [["Ann", "Ben", "Cid"]])
        self.assertEqual(
            self.rpc.deleted,
            [{"ann": "id-ann", "ben": "id-ben", "cid": "id-cid"}],
        )

    def test_join_then_leave_while_confirmed(self) -> None:
        """A joiner who left before their sync ran keeps no entry."""
        ids = {"ann": "id-ann", "ben": "id-ben", "cid": "id-cid"}
        self.start(make_event(["Ben", "Cid"], calendarEventIds=ids))
        self.apply(lambda s: join_event(s, "soccer", "soccer-1", "Dee"))
        self.apply(lambda s: leave_event(s, "soccer", "soccer-1", "Dee"))
        self.executor.run_all()

        self.assertEqual(self.stored_ids(), ids)
        self.assertIn({"dee": "id-dee"}, self.rpc.deleted)


if __name__ == "__main__":
    unittest.main()
