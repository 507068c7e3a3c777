# src/timed_worker/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from ..cli.commands import registry as command_registry
from ..core.models import WorkerEvent
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def format_event(event: str, payload: dict[str, Any]) -> str:
    task = payload.get("taskId") or "-"
    if event in (WorkerEvent.STARTED, WorkerEvent.PROGRESS):
        return f"<<< {event} {task} remaining={int(payload.get('remainingMs', 0)) / 1000.0:.1f}s"
    if event in (WorkerEvent.CANCELLED, WorkerEvent.COMPLETED):
        return f"<<< {event} {task} fromUi={bool(payload.get('fromUi'))}"
    return f"<<< {event} {task}"


def make_event_printer(*, show_progress: bool = False):
    """Event delivery for the console (runs on the sink's dispatcher thread)."""

    def deliver(event: str, payload: dict[str, Any]) -> None:
        if event == WorkerEvent.PROGRESS and not show_progress:
            return
        _print_ts(format_event(event, payload))

    return deliver


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    while True:
        try:
            user_input = input(">>> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            response = command_registry.handle(state, user_input)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is None:
            response = "Commands start with '/'. Use /help to list them."
        _print_ts(response)

    logger.info("Console connector finished.")
