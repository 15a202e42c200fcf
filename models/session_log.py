"""Append-only CSV log with one row per finished session."""

import csv
import datetime
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from models.session_scorer import SessionResult

logger = logging.getLogger(__name__)

LOG_COLUMNS = ["date", "num_words", "num_secs", "elapsed_secs", "wpm", "accuracy", "std_dev"]


class SessionLogEntry(BaseModel):
    date: datetime.datetime = Field(default_factory=datetime.datetime.now)
    num_words: int = Field(ge=0)
    num_secs: Optional[float] = None
    elapsed_secs: float = Field(ge=0.0)
    wpm: float = Field(ge=0.0)
    accuracy: float = Field(ge=0.0, le=100.0)
    std_dev: float = Field(ge=0.0)

    @classmethod
    def from_result(
        cls,
        result: SessionResult,
        num_words: int,
        num_secs: Optional[float] = None,
        date: Optional[datetime.datetime] = None,
    ) -> "SessionLogEntry":
        return cls(
            date=date or datetime.datetime.now(),
            num_words=num_words,
            num_secs=num_secs,
            elapsed_secs=result.elapsed_seconds,
            wpm=result.wpm,
            accuracy=result.accuracy,
            std_dev=result.std_dev,
        )

    def to_row(self) -> Dict[str, str]:
        return {
            "date": self.date.isoformat(timespec="seconds"),
            "num_words": str(self.num_words),
            "num_secs": f"{self.num_secs:.2f}" if self.num_secs is not None else "",
            "elapsed_secs": f"{self.elapsed_secs:.2f}",
            "wpm": f"{self.wpm:g}",
            "accuracy": f"{self.accuracy:g}",
            "std_dev": f"{self.std_dev:.2f}",
        }


class SessionLogManager:
    """Writes and reads the session log file."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def append(self, entry: SessionLogEntry) -> bool:
        """Append ``entry``, writing the header first for a new file.

        Returns False (and logs) if the file could not be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            needs_header = not self.path.exists() or self.path.stat().st_size == 0
            with open(self.path, "a", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=LOG_COLUMNS)
                if needs_header:
                    writer.writeheader()
                writer.writerow(entry.to_row())
            return True
        except OSError as e:
            logger.warning("Could not write session log %s: %s", self.path, e)
            return False

    def read_all(self) -> List[Dict[str, str]]:
        """Return every logged row as a dictionary; [] if the log does not exist."""
        if not self.path.exists():
            return []
        with open(self.path, "r", newline="", encoding="utf-8") as f:
            return list(csv.DictReader(f))
