"""Difficulty store: durable per-keystroke log with per-character aggregation.

Raw attempts are appended to ``character_stats``. ``compact()`` folds old raw
rows into per-character sums in ``character_rollups``; every aggregate is
computed as rollups plus remaining raw rows, so compaction never changes a
query result.
"""

import datetime
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field

from db.database_manager import DatabaseManager
from db.exceptions import DatabaseError
from helpers import app_dirs
from models.char_stat import CharStat
from models.character_difficulty import CharacterDifficulty

logger = logging.getLogger(__name__)

COMPACTION_ROW_THRESHOLD = 10_000
COMPACTION_SIZE_THRESHOLD = 10 * 1024 * 1024
DEFAULT_COMPACTION_AGE_DAYS = 30

# Values assumed for characters whose history lacks the relevant attempts.
DEFAULT_AVG_TIME_MS = 500.0
DEFAULT_UPPERCASE_AVG_TIME_MS = 700.0
DEFAULT_MISS_RATE = 50.0
DEFAULT_UPPERCASE_MISS_RATE = 75.0
DEFAULT_UPPERCASE_PENALTY = 0.5


class CharacterSummary(BaseModel):
    """Aggregated history for one character as shown in statistics listings."""

    character: str
    avg_time_ms: float = Field(ge=0.0)
    miss_rate: float = Field(ge=0.0, le=100.0)
    attempts: int = Field(ge=0)


class CharacterDelta(BaseModel):
    """How one character fared in a session compared with its prior history.

    Negative deltas are improvements. Both deltas are None for a character
    with no prior history; its historical fields then carry the session's own
    figures.
    """

    character: str
    historical_avg_time: float
    historical_miss_rate: float
    historical_attempts: int
    time_delta: Optional[float] = None
    miss_delta: Optional[float] = None
    session_attempts: int = 0
    last_seen: Optional[datetime.datetime] = None

    @property
    def is_new(self) -> bool:
        return self.time_delta is None and self.miss_delta is None


class _Totals:
    """Additive per-character sums; the unit both rollups and queries work in."""

    __slots__ = (
        "total",
        "correct",
        "correct_time_ms",
        "upper_total",
        "upper_correct",
        "upper_time_ms",
        "last_seen",
    )

    def __init__(self) -> None:
        self.total = 0
        self.correct = 0
        self.correct_time_ms = 0
        self.upper_total = 0
        self.upper_correct = 0
        self.upper_time_ms = 0
        self.last_seen: Optional[datetime.datetime] = None

    def add_stat(self, stat: CharStat) -> None:
        self.total += 1
        if stat.was_uppercase:
            self.upper_total += 1
        if stat.was_correct:
            self.correct += 1
            self.correct_time_ms += stat.time_to_press_ms
            if stat.was_uppercase:
                self.upper_correct += 1
                self.upper_time_ms += stat.time_to_press_ms
        self._touch(stat.timestamp)

    def add(self, other: "_Totals") -> None:
        self.total += other.total
        self.correct += other.correct
        self.correct_time_ms += other.correct_time_ms
        self.upper_total += other.upper_total
        self.upper_correct += other.upper_correct
        self.upper_time_ms += other.upper_time_ms
        self._touch(other.last_seen)

    def subtract(self, other: "_Totals") -> None:
        self.total = max(0, self.total - other.total)
        self.correct = max(0, self.correct - other.correct)
        self.correct_time_ms = max(0, self.correct_time_ms - other.correct_time_ms)
        self.upper_total = max(0, self.upper_total - other.upper_total)
        self.upper_correct = max(0, self.upper_correct - other.upper_correct)
        self.upper_time_ms = max(0, self.upper_time_ms - other.upper_time_ms)

    def _touch(self, when: Optional[datetime.datetime]) -> None:
        if when is not None and (self.last_seen is None or when > self.last_seen):
            self.last_seen = when

    def avg_time(self) -> float:
        return self.correct_time_ms / self.correct if self.correct else 0.0

    def miss_rate(self) -> float:
        return (self.total - self.correct) * 100.0 / self.total if self.total else 0.0

    def upper_avg_time(self) -> float:
        return self.upper_time_ms / self.upper_correct if self.upper_correct else 0.0

    def upper_miss_rate(self) -> float:
        if not self.upper_total:
            return 0.0
        return (self.upper_total - self.upper_correct) * 100.0 / self.upper_total

    def to_difficulty(self, with_defaults: bool = False) -> CharacterDifficulty:
        """Build a CharacterDifficulty.

        With ``with_defaults`` the pessimistic selection defaults stand in for
        averages that have no supporting attempts.
        """
        if with_defaults:
            avg = self.avg_time() if self.correct else DEFAULT_AVG_TIME_MS
            miss = self.miss_rate() if self.total else DEFAULT_MISS_RATE
            upper_avg = self.upper_avg_time() if self.upper_correct else DEFAULT_UPPERCASE_AVG_TIME_MS
            upper_miss = self.upper_miss_rate() if self.upper_total else DEFAULT_UPPERCASE_MISS_RATE
        else:
            avg = self.avg_time()
            miss = self.miss_rate()
            upper_avg = self.upper_avg_time()
            upper_miss = self.upper_miss_rate()

        if self.upper_total > 0:
            time_penalty = max(0.0, upper_avg - avg) / avg if avg > 0 else 0.0
            miss_penalty = max(0.0, upper_miss - miss) / 100.0
            penalty = min(1.0, time_penalty + miss_penalty)
        else:
            penalty = DEFAULT_UPPERCASE_PENALTY

        return CharacterDifficulty(
            miss_rate=miss,
            avg_time_ms=avg,
            total_attempts=self.total,
            uppercase_miss_rate=upper_miss,
            uppercase_avg_time=upper_avg,
            uppercase_attempts=self.upper_total,
            uppercase_penalty=penalty,
        )


def _totals_by_character(stats: Iterable[CharStat]) -> Dict[str, _Totals]:
    totals: Dict[str, _Totals] = {}
    for stat in stats:
        totals.setdefault(stat.character, _Totals()).add_stat(stat)
    return totals


def _parse_timestamp(value: object) -> Optional[datetime.datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.datetime.fromisoformat(value)
    except ValueError:
        return None


class DifficultyStore:
    """Manager for the character statistics tables.

    The store owns its DatabaseManager and closes it in ``close()``. Writes
    raise ``db.exceptions.DatabaseError`` subclasses; callers that treat the
    store as best-effort decide themselves what to ignore.
    """

    _INSERT_SQL = (
        "INSERT INTO character_stats "
        "(session_id, character, time_to_press_ms, was_correct, was_uppercase, "
        "timestamp, context_before, context_after) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?)"
    )

    def __init__(self, db_manager: DatabaseManager) -> None:
        self.db_manager = db_manager
        self.db_manager.init_tables()

    @property
    def db_path(self) -> str:
        return self.db_manager.db_path

    @staticmethod
    def _params(stat: CharStat) -> Tuple[object, ...]:
        return (
            stat.session_id,
            stat.character,
            stat.time_to_press_ms,
            int(stat.was_correct),
            int(stat.was_uppercase),
            stat.timestamp.isoformat(),
            stat.context_before,
            stat.context_after,
        )

    def record(self, stat: CharStat) -> None:
        """Append one attempt row.

        Raises:
            DatabaseError: If the row could not be written.
        """
        self.db_manager.execute(self._INSERT_SQL, self._params(stat))

    def record_batch(self, stats: Sequence[CharStat]) -> None:
        """Append all rows in one transaction, or none of them."""
        if not stats:
            return
        with self.db_manager.transaction():
            self.db_manager.execute_many(self._INSERT_SQL, [self._params(s) for s in stats])

    def _load_raw_rows(
        self, character: Optional[str] = None
    ) -> List[Tuple[int, CharStat]]:
        """Load raw rows as (id, CharStat), skipping rows that fail validation."""
        query = (
            "SELECT id, session_id, character, time_to_press_ms, was_correct, was_uppercase, "
            "timestamp, context_before, context_after FROM character_stats"
        )
        params: Tuple[object, ...] = ()
        if character is not None:
            query += " WHERE character = ?"
            params = (character,)
        rows = self.db_manager.fetchall(query + " ORDER BY id", params)

        parsed: List[Tuple[int, CharStat]] = []
        for row in rows:
            data = dict(row)
            try:
                parsed.append((int(data["id"]), CharStat.from_dict(data)))
            except (ValueError, TypeError) as e:
                self.db_manager.debug_util.debugMessage(
                    f"Skipping malformed character_stats row {data.get('id')}: {e}"
                )
        return parsed

    def _load_rollups(self, character: Optional[str] = None) -> Dict[str, _Totals]:
        query = (
            "SELECT character, total_attempts, correct_attempts, correct_time_ms, "
            "uppercase_attempts, uppercase_correct, uppercase_time_ms, last_seen "
            "FROM character_rollups"
        )
        params: Tuple[object, ...] = ()
        if character is not None:
            query += " WHERE character = ?"
            params = (character,)

        rollups: Dict[str, _Totals] = {}
        for row in self.db_manager.fetchall(query, params):
            totals = _Totals()
            totals.total = int(row["total_attempts"])
            totals.correct = int(row["correct_attempts"])
            totals.correct_time_ms = int(row["correct_time_ms"])
            totals.upper_total = int(row["uppercase_attempts"])
            totals.upper_correct = int(row["uppercase_correct"])
            totals.upper_time_ms = int(row["uppercase_time_ms"])
            totals.last_seen = _parse_timestamp(row["last_seen"])
            rollups[str(row["character"])] = totals
        return rollups

    def _load_totals(self, character: Optional[str] = None) -> Dict[str, _Totals]:
        """Combine rollups and raw rows into per-character totals."""
        totals = self._load_rollups(character)
        for _, stat in self._load_raw_rows(character):
            totals.setdefault(stat.character, _Totals()).add_stat(stat)
        return totals

    def aggregate(self, character: str) -> CharacterDifficulty:
        """Aggregate every attempt of ``character`` regardless of case.

        Returns an all-zero CharacterDifficulty for a character never typed.
        """
        key = character.lower()[:1]
        totals = self._load_totals(key).get(key, _Totals())
        return totals.to_difficulty()

    def all_character_summaries(self) -> Dict[str, CharacterSummary]:
        """Return ``{character: CharacterSummary}`` ordered by character."""
        totals = self._load_totals()
        return {
            char: CharacterSummary(
                character=char,
                avg_time_ms=t.avg_time(),
                miss_rate=t.miss_rate(),
                attempts=t.total,
            )
            for char, t in sorted(totals.items())
        }

    def character_difficulties(
        self, min_attempts: int = 3
    ) -> Dict[str, CharacterDifficulty]:
        """Difficulty map for word selection.

        Characters with fewer than ``min_attempts`` attempts are left out so a
        single slip does not dominate selection.
        """
        return {
            char: t.to_difficulty(with_defaults=True)
            for char, t in sorted(self._load_totals().items())
            if t.total >= min_attempts
        }

    def session_vs_history_delta(self, session_rows: Sequence[CharStat]) -> List[CharacterDelta]:
        """Compare a session against the history that preceded it.

        ``session_rows`` must be exactly the rows the session managed to
        persist. The baseline is the stored aggregate minus those rows, which
        stays exact after compaction.
        """
        session_totals = _totals_by_character(session_rows)
        if not session_totals:
            return []

        stored = self._load_totals()
        session_ids = {row.session_id for row in session_rows if row.session_id}
        last_seen = self._last_seen_excluding(session_ids)

        deltas: List[CharacterDelta] = []
        for char, session in sorted(session_totals.items()):
            history = _Totals()
            if char in stored:
                history.add(stored[char])
            history.subtract(session)

            if history.total == 0:
                deltas.append(
                    CharacterDelta(
                        character=char,
                        historical_avg_time=session.avg_time(),
                        historical_miss_rate=session.miss_rate(),
                        historical_attempts=session.total,
                        session_attempts=session.total,
                    )
                )
                continue

            hist_avg = history.avg_time()
            session_avg = session.avg_time()
            time_delta = session_avg - hist_avg if session_avg > 0 and hist_avg > 0 else None
            deltas.append(
                CharacterDelta(
                    character=char,
                    historical_avg_time=hist_avg,
                    historical_miss_rate=history.miss_rate(),
                    historical_attempts=history.total,
                    time_delta=time_delta,
                    miss_delta=session.miss_rate() - history.miss_rate(),
                    session_attempts=session.total,
                    last_seen=last_seen.get(char),
                )
            )
        return deltas

    def _last_seen_excluding(self, session_ids: Iterable[str]) -> Dict[str, datetime.datetime]:
        excluded = set(session_ids)
        latest: Dict[str, datetime.datetime] = {}
        for char, totals in self._load_rollups().items():
            if totals.last_seen is not None:
                latest[char] = totals.last_seen
        for _, stat in self._load_raw_rows():
            if stat.session_id is not None and stat.session_id in excluded:
                continue
            current = latest.get(stat.character)
            if current is None or stat.timestamp > current:
                latest[stat.character] = stat.timestamp
        return latest

    def raw_row_count(self) -> int:
        row = self.db_manager.fetchone("SELECT COUNT(*) AS n FROM character_stats")
        return int(row["n"]) if row is not None else 0

    def compaction_info(self) -> Tuple[int, int, float]:
        """Return (raw row count, database size in bytes, size in MiB)."""
        size = self.db_manager.database_size_bytes()
        return self.raw_row_count(), size, size / (1024.0 * 1024.0)

    def needs_compaction(self) -> bool:
        rows, size, _ = self.compaction_info()
        return rows > COMPACTION_ROW_THRESHOLD or size > COMPACTION_SIZE_THRESHOLD

    def compact(
        self,
        older_than_days: int = DEFAULT_COMPACTION_AGE_DAYS,
        now: Optional[datetime.datetime] = None,
    ) -> int:
        """Fold raw rows older than the cutoff into the rollup table.

        Runs in one transaction and returns the number of raw rows folded.
        Malformed rows are left in place. Calling it again with nothing old
        enough is a no-op.
        """
        if older_than_days < 0:
            raise ValueError("older_than_days must be >= 0")
        cutoff = (now or datetime.datetime.now()) - datetime.timedelta(days=older_than_days)

        with self.db_manager.transaction():
            old_rows = [(row_id, stat) for row_id, stat in self._load_raw_rows() if stat.timestamp < cutoff]
            if not old_rows:
                return 0
            folded = _totals_by_character(stat for _, stat in old_rows)
            self.db_manager.execute_many(
                """
                INSERT INTO character_rollups (
                    character, total_attempts, correct_attempts, correct_time_ms,
                    uppercase_attempts, uppercase_correct, uppercase_time_ms, last_seen
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(character) DO UPDATE SET
                    total_attempts = total_attempts + excluded.total_attempts,
                    correct_attempts = correct_attempts + excluded.correct_attempts,
                    correct_time_ms = correct_time_ms + excluded.correct_time_ms,
                    uppercase_attempts = uppercase_attempts + excluded.uppercase_attempts,
                    uppercase_correct = uppercase_correct + excluded.uppercase_correct,
                    uppercase_time_ms = uppercase_time_ms + excluded.uppercase_time_ms,
                    last_seen = MAX(COALESCE(last_seen, ''), excluded.last_seen)
                """,
                [
                    (
                        char,
                        t.total,
                        t.correct,
                        t.correct_time_ms,
                        t.upper_total,
                        t.upper_correct,
                        t.upper_time_ms,
                        t.last_seen.isoformat() if t.last_seen else None,
                    )
                    for char, t in folded.items()
                ],
            )
            self.db_manager.execute_many(
                "DELETE FROM character_stats WHERE id = ?",
                [(row_id,) for row_id, _ in old_rows],
            )

        self.db_manager.vacuum()
        logger.info("Compacted %d character_stats rows into %d rollups", len(old_rows), len(folded))
        return len(old_rows)

    def auto_compact(self) -> int:
        """Compact only when the raw log has grown past the thresholds."""
        if self.needs_compaction():
            return self.compact()
        return 0

    def clear(self) -> None:
        """Delete every raw row and rollup."""
        with self.db_manager.transaction():
            self.db_manager.execute("DELETE FROM character_stats")
            self.db_manager.execute("DELETE FROM character_rollups")

    def close(self) -> None:
        self.db_manager.close()

    def __enter__(self) -> "DifficultyStore":
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()


def open_difficulty_store(
    path: Optional[Union[str, Path]] = None,
) -> Optional[DifficultyStore]:
    """Open the store at ``path`` (default: the state directory's stats.db).

    Returns None when no state directory is known or the database cannot be
    opened, so callers fall back to non-adaptive behaviour.
    """
    if path is None:
        path = app_dirs.stats_db_path()
        if path is None:
            logger.warning("No state directory available; character statistics disabled")
            return None
    try:
        db_manager = DatabaseManager(str(path))
    except DatabaseError as e:
        logger.warning("Character statistics unavailable (%s): %s", path, e)
        return None
    try:
        return DifficultyStore(db_manager)
    except DatabaseError as e:
        logger.warning("Could not prepare character statistics tables (%s): %s", path, e)
        db_manager.close()
        return None
