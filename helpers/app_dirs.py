"""Centralized application directory resolution.

The state directory holds the difficulty database, the session log and the
saved configuration. ``TYPING_TRAINER_STATE_DIR`` overrides the default
``$HOME/.local/state/typing-trainer``.
"""

import os
from pathlib import Path
from typing import Optional

APP_NAME = "typing-trainer"
STATE_DIR_ENV = "TYPING_TRAINER_STATE_DIR"

STATS_DB_NAME = "stats.db"
SESSION_LOG_NAME = "log.csv"
CONFIG_NAME = "config.json"


def state_dir() -> Optional[Path]:
    """Return the state directory, or None when no home directory is known."""
    override = os.environ.get(STATE_DIR_ENV)
    if override:
        return Path(override).expanduser()
    home = os.environ.get("HOME")
    if home:
        return Path(home) / ".local" / "state" / APP_NAME
    try:
        return Path.home() / ".local" / "state" / APP_NAME
    except RuntimeError:
        return None


def _in_state_dir(name: str) -> Optional[Path]:
    base = state_dir()
    return base / name if base is not None else None


def stats_db_path() -> Optional[Path]:
    return _in_state_dir(STATS_DB_NAME)


def session_log_path() -> Optional[Path]:
    return _in_state_dir(SESSION_LOG_NAME)


def config_path() -> Optional[Path]:
    return _in_state_dir(CONFIG_NAME)
