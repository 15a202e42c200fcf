"""Typing session state machine.

A session owns one prompt and the attempts typed against it. Normal mode
records every keystroke and always moves on; strict mode keeps the cursor on
a position until it is typed correctly, overwriting the attempt stored there.
Each accepted keystroke is also written, best-effort, to the difficulty store.
"""

import datetime
import enum
import logging
import unicodedata
import uuid
from typing import Callable, List, Optional, Set

from pydantic import ValidationError

from db.exceptions import DatabaseError
from models.char_stat import CharStat
from models.difficulty_store import CharacterDelta, DifficultyStore
from models.keystroke import Attempt, Outcome
from models.session_log import SessionLogEntry, SessionLogManager
from models.session_scorer import SessionResult, score_attempts

logger = logging.getLogger(__name__)

DEFAULT_TIME_TO_PRESS_MS = 150
MIN_PLAUSIBLE_KEYPRESS_MS = 5
TICK_RATE_MS = 100
IDLE_TIMEOUT_SECS = 30.0

Clock = Callable[[], datetime.datetime]


class SessionStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class SessionFinishedError(Exception):
    """Raised when a keystroke arrives after the session has finished."""


def _elapsed_ms(start: datetime.datetime, end: datetime.datetime) -> int:
    return max(0, int((end - start).total_seconds() * 1000))


class TypingSession:
    """State for one pass over a prompt.

    Attempt timestamps and ``started_at`` live on the session's active
    timeline: wall-clock time minus every idle period, so pauses never count
    towards elapsed time or WPM.
    """

    def __init__(
        self,
        prompt: str,
        number_of_words: int = 0,
        time_limit_secs: Optional[float] = None,
        strict: bool = False,
        store: Optional[DifficultyStore] = None,
        clock: Clock = datetime.datetime.now,
        tick_rate_ms: int = TICK_RATE_MS,
        idle_timeout_secs: float = IDLE_TIMEOUT_SECS,
        session_log: Optional[SessionLogManager] = None,
    ) -> None:
        if time_limit_secs is not None and time_limit_secs <= 0:
            raise ValueError("time_limit_secs must be positive")
        self.prompt = unicodedata.normalize("NFC", prompt)
        self.number_of_words = number_of_words
        self.time_limit_secs = time_limit_secs
        self.strict = strict
        self.store = store
        self.session_log = session_log
        self.clock = clock
        self.tick_rate_ms = tick_rate_ms
        self.idle_timeout_secs = idle_timeout_secs
        self.session_id = str(uuid.uuid4())

        self.attempts: List[Attempt] = []
        self.cursor_pos = 0
        self.corrected_positions: Set[int] = set()
        self.started_at: Optional[datetime.datetime] = None
        self.seconds_remaining: Optional[float] = time_limit_secs
        self.persisted_stats: List[CharStat] = []

        self.is_idle = False
        self._idle_offset = datetime.timedelta(0)
        self._last_activity: Optional[datetime.datetime] = None
        self._keypress_start: Optional[datetime.datetime] = None
        self._last_attempt_at: Optional[datetime.datetime] = None
        self._ended_at: Optional[datetime.datetime] = None
        self._result: Optional[SessionResult] = None

    # -- clock -------------------------------------------------------------

    def _active_now(self) -> datetime.datetime:
        return self.clock() - self._idle_offset

    def _mark_activity(self) -> None:
        """Record activity, resuming the timer if the session was idle."""
        now = self.clock()
        if self.is_idle and self._last_activity is not None:
            self._idle_offset += now - self._last_activity
            self.is_idle = False
            logger.debug("Session %s resumed after idle", self.session_id)
        self._last_activity = now

    # -- state queries -----------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        if self.has_finished():
            return SessionStatus.FINISHED
        if self.has_started():
            return SessionStatus.IN_PROGRESS
        return SessionStatus.NOT_STARTED

    def has_started(self) -> bool:
        return self.started_at is not None

    def has_finished(self) -> bool:
        if len(self.attempts) == len(self.prompt):
            return True
        return self.seconds_remaining is not None and self.seconds_remaining <= 0

    def expected_char(self, idx: int) -> str:
        return self.prompt[idx]

    @property
    def result(self) -> Optional[SessionResult]:
        return self._result

    # -- input -------------------------------------------------------------

    def on_keypress_start(self) -> None:
        """Anchor the timing of the next keystroke at the key-down moment."""
        self._keypress_start = self.clock()

    def _time_to_press(self, wall_now: datetime.datetime, active_now: datetime.datetime) -> int:
        if self._keypress_start is not None:
            anchored = _elapsed_ms(self._keypress_start, wall_now)
            if anchored > MIN_PLAUSIBLE_KEYPRESS_MS:
                return anchored
        if self._last_attempt_at is None:
            if self.started_at is not None:
                since_start = _elapsed_ms(self.started_at, active_now)
                if since_start > 0:
                    return since_start
            return DEFAULT_TIME_TO_PRESS_MS
        inter_key = _elapsed_ms(self._last_attempt_at, active_now)
        return inter_key if inter_key > 0 else DEFAULT_TIME_TO_PRESS_MS

    def write(self, char: str) -> Attempt:
        """Accept one typed character and return the attempt recorded for it.

        Raises:
            SessionFinishedError: If the session has already finished.
        """
        if self.has_finished():
            raise SessionFinishedError("Session has already finished")

        self._mark_activity()
        wall_now = self.clock()
        active_now = self._active_now()
        if self.started_at is None:
            self.started_at = active_now

        idx = self.cursor_pos
        expected = self.expected_char(idx)
        typed = unicodedata.normalize("NFC", char)
        outcome = Outcome.CORRECT if typed == expected else Outcome.INCORRECT
        time_to_press = self._time_to_press(wall_now, active_now)

        attempt = Attempt(
            char_typed=typed,
            expected_char=expected,
            outcome=outcome,
            timestamp=active_now,
            time_to_press_ms=time_to_press,
            text_index=idx,
            keypress_start=self._keypress_start,
        )

        # The store is best-effort; its result never changes how the keystroke is handled.
        self._record_stat(idx, time_to_press, outcome is Outcome.CORRECT, wall_now)

        if self.strict:
            self._apply_strict(idx, attempt)
        else:
            self.attempts.insert(idx, attempt)
            self.cursor_pos += 1

        self._keypress_start = None
        self._last_attempt_at = active_now
        if self.has_finished():
            self._ended_at = active_now
        return attempt

    def _apply_strict(self, idx: int, attempt: Attempt) -> None:
        occupied = idx < len(self.attempts)
        if attempt.is_correct and occupied and not self.attempts[idx].is_correct:
            self.corrected_positions.add(idx)
        if occupied:
            self.attempts[idx] = attempt
        else:
            self.attempts.append(attempt)
        if attempt.is_correct:
            self.cursor_pos += 1

    def backspace(self) -> None:
        """Remove the attempt before the cursor. Ignored once the session is finished."""
        if self.has_finished() or self.cursor_pos == 0:
            return
        self._mark_activity()
        self.cursor_pos -= 1
        if self.strict:
            # Also drop a pending incorrect attempt at the old cursor.
            del self.attempts[self.cursor_pos :]
            self.corrected_positions = {i for i in self.corrected_positions if i < self.cursor_pos}
        else:
            del self.attempts[self.cursor_pos]

    def on_tick(self) -> None:
        """Advance the countdown by one tick and check for idleness."""
        if not self.has_started() or self.has_finished():
            return
        self._check_idle()
        if self.is_idle:
            return
        if self.seconds_remaining is not None:
            # Rounded so repeated tenths reach exactly zero.
            self.seconds_remaining = round(self.seconds_remaining - self.tick_rate_ms / 1000.0, 6)
            if self.seconds_remaining <= 0:
                self._ended_at = self._active_now()

    def _check_idle(self) -> None:
        if self.is_idle or self._last_activity is None:
            return
        idle_for = (self.clock() - self._last_activity).total_seconds()
        if idle_for >= self.idle_timeout_secs:
            self.is_idle = True
            logger.debug("Session %s idle after %.1fs", self.session_id, idle_for)

    # -- persistence -------------------------------------------------------

    def _record_stat(
        self, idx: int, time_to_press_ms: int, was_correct: bool, timestamp: datetime.datetime
    ) -> bool:
        """Write one CharStat row. Returns False when there is no store or the write failed."""
        if self.store is None:
            return False
        try:
            stat = CharStat.for_keystroke(
                self.prompt,
                idx,
                time_to_press_ms=time_to_press_ms,
                was_correct=was_correct,
                timestamp=timestamp,
                session_id=self.session_id,
            )
            self.store.record(stat)
        except (DatabaseError, ValidationError) as e:
            logger.warning("Failed to record character stat at index %d: %s", idx, e)
            return False
        self.persisted_stats.append(stat)
        return True

    def session_delta(self) -> Optional[List[CharacterDelta]]:
        """Per-character comparison with prior history, or None without a store."""
        if self.store is None:
            return None
        try:
            return self.store.session_vs_history_delta(self.persisted_stats)
        except DatabaseError as e:
            logger.warning("Could not compute session delta: %s", e)
            return None

    # -- completion --------------------------------------------------------

    def finish(self) -> SessionResult:
        """Score the session. Later calls return the same result.

        The first call also appends the session log row and lets the store
        compact itself if it has grown too large.
        """
        if self._result is not None:
            return self._result

        ended_at = self._ended_at or (self._active_now() if self.started_at else None)
        self._result = score_attempts(self.attempts, self.started_at, ended_at)

        if self.session_log is not None and self.started_at is not None:
            self.session_log.append(
                SessionLogEntry.from_result(
                    self._result, self.number_of_words, self.time_limit_secs
                )
            )

        if self.store is not None:
            try:
                self.store.auto_compact()
            except DatabaseError as e:
                logger.warning("Automatic compaction failed: %s", e)

        return self._result
