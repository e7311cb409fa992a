"""Background consumers of the shared board.

``SessionWatcher`` listens to the events document, removes expired
sessions as they show up and hands confirmation transitions to the
calendar synchronizer. ``ExpirySweeper`` removes expired sessions on a
fixed interval even when nobody is editing the board.
"""

from __future__ import annotations

import datetime
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Optional

from pickupboard.core.constants import DEFAULT_TIME_ZONE, EXPIRY_SWEEP_SECONDS
from pickupboard.errors import StoreUnavailableError
from pickupboard.utils import now_utc

from .confirmation import Transition, detect_transitions
from .lifecycle import expire_events
from .models import EventsBySport

if TYPE_CHECKING:
    from pickupboard.calendar.sync import CalendarSynchronizer

    from .store import EventStore

logger = logging.getLogger(__name__)


def remove_expired(
    store: EventStore,
    time_zone: str = DEFAULT_TIME_ZONE,
    now: Optional[datetime.datetime] = None,
) -> bool:
    """Drop past sessions from the stored board. Returns whether any were removed."""
    now = now or now_utc()
    try:
        result = store.mutate(lambda state: expire_events(state, now, time_zone).state)
    except StoreUnavailableError as e:
        logger.warning(f"Skipping expiry sweep: {e}")
        return False
    if result.changed:
        removed = sum(len(events) for events in result.previous.values()) - sum(
            len(events) for events in result.current.values()
        )
        logger.info(f"Removed {removed} expired event(s)")
    return result.changed


class SessionWatcher:
    """Reacts to every snapshot of the board."""

    def __init__(
        self,
        store: EventStore,
        synchronizer: CalendarSynchronizer | None = None,
        time_zone: str = DEFAULT_TIME_ZONE,
        executor: Executor | None = None,
    ) -> None:
        """Initialize the watcher.

        Calendar work runs on ``executor``. The default is a single worker so
        transitions for the same event are synchronized in order.
        """
        self.store = store
        self.synchronizer = synchronizer
        self.time_zone = time_zone
        self.executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="calendar-sync"
        )
        self._previous: EventsBySport | None = None
        self._lock = threading.Lock()
        self._watch: Any = None

    def start(self) -> None:
        """Subscribe to the board."""
        self._watch = self.store.subscribe(self.on_board)
        logger.info("Watching the events board")

    def stop(self) -> None:
        """Unsubscribe and wait for queued calendar work."""
        if self._watch is not None:
            self._watch.unsubscribe()
            self._watch = None
        self.executor.shutdown(wait=True)

    def on_board(self, state: EventsBySport) -> list[Future]:
        """Handle one snapshot of the board."""
        if expire_events(state, now_utc(), self.time_zone).changed:
            # The cleaned board arrives as the next snapshot.
            remove_expired(self.store, self.time_zone)

        with self._lock:
            previous, self._previous = self._previous, state

        if self.synchronizer is None:
            return []
        return [
            self.executor.submit(self._sync, transition)
            for transition in detect_transitions(previous, state)
        ]

    def _sync(self, transition: Transition) -> None:
        if self.synchronizer is None:
            return
        logger.info(f"{transition.event.id}: {transition.kind.value}")
        try:
            self.synchronizer.sync(transition)
        except Exception as e:
            logger.exception(f"Calendar sync for {transition.event.id} failed: {e}")


class ExpirySweeper:
    """Periodically removes expired sessions."""

    def __init__(
        self,
        store: EventStore,
        interval: float = EXPIRY_SWEEP_SECONDS,
        time_zone: str = DEFAULT_TIME_ZONE,
    ) -> None:
        """Initialize the sweeper."""
        self.store = store
        self.interval = interval
        self.time_zone = time_zone
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def sweep_once(self, now: Optional[datetime.datetime] = None) -> bool:
        """Run a single sweep."""
        return remove_expired(self.store, self.time_zone, now)

    def _run(self) -> None:
        self.sweep_once()
        while not self._stop_event.wait(self.interval):
            self.sweep_once()

    def start(self) -> None:
        """Sweep now and then every ``interval`` seconds on a daemon thread."""
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="expiry-sweeper", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop sweeping."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
