"""Wiring for the background workers that keep the board tidy."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from firebase_admin import firestore

from .calendar.functions import CalendarFunctions
from .calendar.sync import CalendarSynchronizer
from .events.store import EventStore
from .events.watcher import ExpirySweeper, SessionWatcher

if TYPE_CHECKING:
    from flask import Flask

logger = logging.getLogger(__name__)


@dataclass
class BackgroundWorkers:
    """Handles to the running background workers."""

    watcher: SessionWatcher
    sweeper: ExpirySweeper
    functions: CalendarFunctions | None = None

    def stop(self) -> None:
        """Stop sweeping, unsubscribe and drain queued calendar work."""
        self.sweeper.stop()
        self.watcher.stop()
        if self.functions is not None:
            self.functions.client.close()
        logger.info("Background workers stopped")


def start_background_workers(app: Flask) -> BackgroundWorkers:
    """Start the board watcher and the expiry sweeper for ``app``."""
    db = firestore.client()
    store = EventStore(db)
    time_zone = app.config["TIME_ZONE"]

    functions = None
    synchronizer = None
    if app.config.get("CALENDAR_SYNC_ENABLED"):
        functions = CalendarFunctions.from_config(db, app.config)
        synchronizer = CalendarSynchronizer(
            functions,
            store=store,
            time_zone=time_zone,
        )
    else:
        logger.info("Calendar sync is disabled")

    watcher = SessionWatcher(store, synchronizer, time_zone)
    sweeper = ExpirySweeper(store, app.config["EXPIRY_SWEEP_SECONDS"], time_zone)
    watcher.start()
    sweeper.start()
    return BackgroundWorkers(watcher, sweeper, functions)
