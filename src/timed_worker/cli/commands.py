# src/timed_worker/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.errors import ChannelError
from ..core.state import AppState
from ..host.resume import schedule_resume

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/start, /status, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, args)
        except ChannelError as e:
            return f"[{e.code}] {e.message}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def parse_duration_ms(raw: str) -> int | None:
    """
    "90" -> 90 s, "1.5" -> 1.5 s, "1500ms" -> 1500 ms, "2m" -> 2 min.
    Returns None if it cannot be parsed.
    """
    s = raw.strip().lower()
    scale = 1000.0
    if s.endswith("ms"):
        s, scale = s[:-2], 1.0
    elif s.endswith("s"):
        s = s[:-1]
    elif s.endswith("m"):
        s, scale = s[:-1], 60_000.0

    try:
        value = float(s)
    except ValueError:
        return None
    return int(round(value * scale))


def _from_ui_args(args: list[str]) -> dict[str, bool]:
    # Console is a UI; "--bg" simulates a non-UI caller.
    return {"fromUi": "--bg" not in args}


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_start(state: AppState, args: list[str]) -> str:
    """
    /start <taskId> <duration>   duration: seconds, or with ms / s / m suffix
    """
    if len(args) < 2:
        return "Usage: /start <taskId> <duration> (e.g. /start tea 3m, /start t1 1500ms)"

    duration_ms = parse_duration_ms(args[1])
    if duration_ms is None:
        return f"Bad duration: {args[1]!r}"

    state.channel.handle("start", {"taskId": args[0], "durationMs": duration_ms})
    return f"Started {args[0]} ({duration_ms} ms)."


def cmd_cancel(state: AppState, args: list[str]) -> str:
    # A pending task left by an expiry is dropped too, so ask status, not is_running.
    had_task = state.worker.status().task_id is not None
    state.channel.handle("cancel", _from_ui_args(args))
    return "Cancelled." if had_task else "Nothing to cancel."


def cmd_completed(state: AppState, args: list[str]) -> str:
    was_running = state.worker.is_running
    state.channel.handle("completed", _from_ui_args(args))
    return "Marked completed." if was_running else "Nothing running."


def cmd_status(state: AppState, args: list[str]) -> str:
    st = state.channel.handle("status")
    running = "RUNNING" if st["isRunning"] else "IDLE"
    task = st["taskId"] or "-"
    last = state.worker.last_outcome
    return (
        "Status:\n"
        f"  State: {running} (last={last.value if last else '-'})\n"
        f"  Task: {task}\n"
        f"  Remaining: {st['remainingMs'] / 1000.0:.1f}s"
    )


def cmd_resume(state: AppState, args: list[str]) -> str:
    """
    /resume          -> ask the host to relaunch the resume handler now
    /resume <delay>  -> ... after <delay> (same format as /start)
    """
    delay_ms = parse_duration_ms(args[0]) if args else 0
    if delay_ms is None:
        return f"Bad delay: {args[0]!r}"

    if schedule_resume(state.scheduler, earliest_seconds=delay_ms / 1000.0) is None:
        return "Failed to schedule resume (see logs)."
    return f"Resume scheduled in {delay_ms / 1000.0:.1f}s."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("start", cmd_start, help_text="Start a countdown: /start <taskId> <duration>.")
registry.register("cancel", cmd_cancel, help_text="Cancel the running countdown (--bg: not from UI).")
registry.register(
    "completed",
    cmd_completed,
    help_text="Signal completion now (--bg: not from UI).",
    aliases=["done"],
)
registry.register("status", cmd_status, help_text="Show running flag, task and remaining time.")
registry.register("resume", cmd_resume, help_text="Schedule a resume of a pending countdown: /resume [delay].")
