# src/timed_worker/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole process.
- Malformed values fall back to defaults instead of failing at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TIMED_WORKER"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Console connector ----
    console_enabled: bool
    show_progress: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    state_db_path: Path

    # ---- Countdown / host ----
    tick_interval_ms: int
    grant_budget_seconds: float
    resume_window_seconds: float
    min_resume_window_ms: int
    resume_delay_seconds: float

    @property
    def tick_interval_seconds(self) -> float:
        return self.tick_interval_ms / 1000.0

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "timed-worker") or "timed-worker"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        show_progress = _env_bool(_k("SHOW_PROGRESS"), False)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/timed_worker"))
        state_db_path = _env_path(_k("STATE_DB_PATH"), data_dir / "state.sqlite3")

        tick_interval_ms = _env_int(_k("TICK_INTERVAL_MS"), 500)
        if tick_interval_ms <= 0:
            tick_interval_ms = 500

        grant_budget_seconds = max(0.0, _env_float(_k("GRANT_BUDGET_SECONDS"), 0.0))
        resume_window_seconds = max(0.0, _env_float(_k("RESUME_WINDOW_SECONDS"), 0.0))
        min_resume_window_ms = max(0, _env_int(_k("MIN_RESUME_WINDOW_MS"), 0))
        resume_delay_seconds = max(0.0, _env_float(_k("RESUME_DELAY_SECONDS"), 0.0))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            show_progress=show_progress,
            data_dir=data_dir,
            state_db_path=state_db_path,
            tick_interval_ms=tick_interval_ms,
            grant_budget_seconds=grant_budget_seconds,
            resume_window_seconds=resume_window_seconds,
            min_resume_window_ms=min_resume_window_ms,
            resume_delay_seconds=resume_delay_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
