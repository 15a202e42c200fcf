"""Service initialization module.

Factory helpers to create and wire the trainer's collaborators.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from helpers import app_dirs
from helpers.app_dirs import CONFIG_NAME, SESSION_LOG_NAME, STATS_DB_NAME
from models.difficulty_store import DifficultyStore, open_difficulty_store
from models.session_log import SessionLogManager
from models.trainer_config import ConfigStore

logger = logging.getLogger(__name__)


def init_services(
    state_dir: Optional[Union[str, Path]] = None,
) -> Tuple[Optional[DifficultyStore], Optional[SessionLogManager], Optional[ConfigStore]]:
    """Open the difficulty store, session log and config store.

    Uses the default state directory when ``state_dir`` is None. Every
    element is None when no state directory can be determined; the store is
    also None when its database cannot be opened.

    Example:
        store, session_log, config_store = init_services("/tmp/trainer-state").
    """
    base = Path(state_dir) if state_dir is not None else app_dirs.state_dir()
    if base is None:
        logger.warning("No state directory available; running without persistence")
        return None, None, None

    store = open_difficulty_store(base / STATS_DB_NAME)
    return store, SessionLogManager(base / SESSION_LOG_NAME), ConfigStore(base / CONFIG_NAME)
