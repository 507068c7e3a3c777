# src/timed_worker/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Console thresholds by logger prefix; the longest matching prefix wins.
_CONSOLE_THRESHOLDS: dict[str, int] = {
    "timed_worker": logging.DEBUG,
    # Thread/timer adapters log every arm, grant and launch.
    "timed_worker.host": logging.INFO,
    # Per-event delivery lines duplicate what the event printer shows.
    "timed_worker.connectors.event_sinks": logging.WARNING,
}


class _ConsoleFilter(logging.Filter):
    """
    Keeps the REPL readable while a countdown ticks.

    Per-tick loggers (".ticks" suffix) reach the console only at WARNING+.
    Anything outside timed_worker (including py.warnings) needs ERROR+.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.endswith(".ticks"):
            return record.levelno >= logging.WARNING

        threshold = logging.ERROR
        matched = ""
        for prefix, level in _CONSOLE_THRESHOLDS.items():
            if (name == prefix or name.startswith(prefix + ".")) and len(prefix) > len(matched):
                matched, threshold = prefix, level
        return record.levelno >= threshold


def setup_logging(
    *,
    log_dir: str | Path = ".local/timed_worker",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Route all logs to stderr (filtered) and to <log_dir>/timed_worker.log (unfiltered).

    Replaces existing root handlers. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "timed_worker.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleFilter())
    root.addHandler(console)

    # Ticks, grants and sink deliveries all land here.
    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
