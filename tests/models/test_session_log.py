"""Tests for the CSV session log."""

import datetime
from pathlib import Path

from models.session_log import LOG_COLUMNS, SessionLogEntry, SessionLogManager
from models.session_scorer import SessionResult

WHEN = datetime.datetime(2026, 3, 14, 9, 30, 5)


def entry(**overrides: object) -> SessionLogEntry:
    result = SessionResult(wpm=42.0, accuracy=96.0, std_dev=1.234, elapsed_seconds=12.5)
    fields = {"num_words": 10, "num_secs": None, "date": WHEN}
    fields.update(overrides)
    return SessionLogEntry.from_result(result, **fields)  # type: ignore[arg-type]


class TestSessionLogEntry:
    def test_to_row(self) -> None:
        row = entry(num_secs=30.0).to_row()
        assert list(row) == LOG_COLUMNS
        assert row == {
            "date": "2026-03-14T09:30:05",
            "num_words": "10",
            "num_secs": "30.00",
            "elapsed_secs": "12.50",
            "wpm": "42",
            "accuracy": "96",
            "std_dev": "1.23",
        }

    def test_untimed_session_has_blank_seconds(self) -> None:
        assert entry().to_row()["num_secs"] == ""


class TestSessionLogManager:
    def test_header_written_once(self, tmp_path: Path) -> None:
        path = tmp_path / "logs" / "session_log.csv"
        log = SessionLogManager(path)
        assert log.append(entry())
        assert log.append(entry(num_words=20))
        lines = path.read_text().splitlines()
        assert lines[0] == ",".join(LOG_COLUMNS)
        assert len(lines) == 3
        assert [row["num_words"] for row in log.read_all()] == ["10", "20"]

    def test_read_missing_file(self, tmp_path: Path) -> None:
        assert SessionLogManager(tmp_path / "missing.csv").read_all() == []

    def test_unwritable_path_returns_false(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("x")
        assert SessionLogManager(blocker / "log.csv").append(entry()) is False
