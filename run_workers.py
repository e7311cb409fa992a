"""Entry point for the background worker process."""

import logging
import os
import signal
import threading

from pickupboard import create_app
from pickupboard.workers import start_background_workers


def main():
    """Run the board watcher and expiry sweeper until signalled."""
    logging.basicConfig(
        level=(os.environ.get("LOG_LEVEL") or "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app()
    stop = threading.Event()

    def handle_signal(signum, frame):
        logging.getLogger(__name__).info(f"Received signal {signum}, shutting down")
        stop.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    with app.app_context():
        workers = start_background_workers(app)
    stop.wait()
    workers.stop()


if __name__ == "__main__":
    main()
