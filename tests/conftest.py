"""Shared pytest fixtures for the typing trainer tests.

Provides temporary SQLite databases, a difficulty store, a controllable
clock and a seeded random generator.
"""

import datetime
import os
import random
import tempfile
from typing import Generator

import pytest

from db.database_manager import DatabaseManager
from helpers.debug_util import DebugUtil
from models.char_stat import CharStat
from models.difficulty_store import DifficultyStore

BASE_TIME = datetime.datetime(2026, 3, 14, 9, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime.datetime = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, seconds: float = 0.0, ms: float = 0.0) -> datetime.datetime:
        self.now += datetime.timedelta(seconds=seconds, milliseconds=ms)
        return self.now


def make_stat(
    character: str = "a",
    time_to_press_ms: int = 150,
    was_correct: bool = True,
    was_uppercase: bool = False,
    timestamp: datetime.datetime = BASE_TIME,
    session_id: str = "history",
) -> CharStat:
    """Build a CharStat with sensible defaults for tests."""
    return CharStat(
        character=character,
        time_to_press_ms=time_to_press_ms,
        was_correct=was_correct,
        was_uppercase=was_uppercase,
        timestamp=timestamp,
        session_id=session_id,
    )


@pytest.fixture(scope="function")
def temp_db() -> Generator[DatabaseManager, None, None]:
    """Create a temporary file-backed DatabaseManager.

    Ensures the connection is closed and the temp files removed after the test.
    """
    with tempfile.NamedTemporaryFile(delete=False, suffix=".db") as tmp:
        db_path = tmp.name

    db = DatabaseManager(db_path, debug_util=DebugUtil("loud"))
    yield db
    db.close()
    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(db_path + suffix)
        except FileNotFoundError:
            pass


@pytest.fixture(scope="function")
def store(temp_db: DatabaseManager) -> DifficultyStore:
    """Difficulty store on a fresh temporary database."""
    return DifficultyStore(temp_db)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)
