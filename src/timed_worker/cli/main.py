# src/timed_worker/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, asks the local host scheduler to run the resume
handler (a countdown persisted by a previous run continues), then runs the console REPL
or waits for a signal.
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state, shutdown_state
from ..config import get_settings
from ..connectors.console_connector import make_event_printer, run_console_loop
from ..host.resume import schedule_resume
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(
        settings=settings,
        deliver=make_event_printer(show_progress=settings.show_progress),
    )

    schedule_resume(state.scheduler, earliest_seconds=settings.resume_delay_seconds)

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
        if not settings.console_enabled:
            # The console REPL handles Ctrl+C itself (KeyboardInterrupt in input()).
            signal.signal(signal.SIGINT, _handle_signal)
    except (ValueError, OSError):
        # Not in the main thread, or SIGTERM unsupported on this platform.
        logger.debug("Signal handlers not installed.", exc_info=True)

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Countdown runs in the background. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        shutdown_state(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
