"""Background calendar work started from request handlers."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from firebase_admin import firestore

from .functions import CalendarFunctions
from .sync import CalendarSynchronizer

if TYPE_CHECKING:
    from flask import Flask

    from pickupboard.events.models import Event

logger = logging.getLogger(__name__)


def delete_calendar_entries_background(app: Flask, event: Event) -> threading.Thread:
    """Remove every participant's calendar entry for a deleted event."""

    def task() -> None:
        """Perform the deletion in the background."""
        with app.app_context():
            functions = CalendarFunctions.from_config(firestore.client(), app.config)
            synchronizer = CalendarSynchronizer(
                functions, time_zone=app.config["TIME_ZONE"]
            )
            try:
                report = synchronizer.delete_event_entries(event)
                for notice in report.notices:
                    logger.warning(f"[{event.id}] {notice}")
            except Exception as e:
                logger.exception(f"Calendar cleanup for {event.id} failed: {e}")
            finally:
                functions.client.close()

    thread = threading.Thread(target=task, daemon=True)
    thread.start()
    return thread
