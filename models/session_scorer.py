"""Session scoring: WPM time series, final WPM, accuracy and consistency.

Correct attempts are bucketed by whole second since the session started.
The cumulative correct count at each bucket gives a WPM point; the last
point, rounded up, is the session WPM. Standard deviation is taken over the
per-bucket counts, leaving out the final (usually partial) bucket.
"""

import datetime
import math
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from models.keystroke import Attempt

CHARS_PER_WORD = 5.0


class TimeSeriesPoint(BaseModel):
    elapsed_seconds: float = Field(gt=0.0)
    wpm: float = Field(ge=0.0)


class SessionResult(BaseModel):
    """Scored outcome of a finished session."""

    wpm: float = 0.0
    accuracy: float = 0.0
    std_dev: float = 0.0
    wpm_coords: List[TimeSeriesPoint] = Field(default_factory=list)
    elapsed_seconds: float = 0.0
    correct_count: int = 0
    total_count: int = 0


def mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def std_dev(values: Sequence[float]) -> Optional[float]:
    """Population standard deviation, None for an empty sequence."""
    avg = mean(values)
    if avg is None:
        return None
    variance = sum((avg - v) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def _bucket_for(offset: float, elapsed: float) -> float:
    """Whole-second bucket for an attempt ``offset`` seconds into the session."""
    if offset <= 0.0:
        return 1.0
    bucket = float(math.ceil(offset))
    if bucket > math.floor(elapsed):
        return elapsed
    return bucket


def score_attempts(
    attempts: Sequence[Attempt],
    started_at: Optional[datetime.datetime],
    ended_at: Optional[datetime.datetime],
) -> SessionResult:
    """Score a finished session's attempt log.

    An empty log (or a session that never started) scores all zeros.
    """
    total = len(attempts)
    correct = [a for a in attempts if a.is_correct]
    if total == 0 or started_at is None:
        return SessionResult(total_count=total, correct_count=len(correct))

    end = ended_at or started_at
    elapsed = max(0.0, (end - started_at).total_seconds())

    buckets: Dict[float, int] = {}
    for attempt in correct:
        offset = (attempt.timestamp - started_at).total_seconds()
        key = _bucket_for(offset, elapsed)
        buckets[key] = buckets.get(key, 0) + 1
    ordered = sorted(buckets.items())

    counts = [float(count) for _, count in ordered[:-1]]
    deviation = std_dev(counts) if counts else 0.0

    coords: List[TimeSeriesPoint] = []
    cumulative = 0
    for seconds, count in ordered:
        cumulative += count
        wpm = (60.0 / seconds) * cumulative / CHARS_PER_WORD
        coords.append(TimeSeriesPoint(elapsed_seconds=seconds, wpm=wpm))

    return SessionResult(
        wpm=float(math.ceil(coords[-1].wpm)) if coords else 0.0,
        accuracy=_round_half_up(len(correct) / total * 100.0),
        std_dev=deviation or 0.0,
        wpm_coords=coords,
        elapsed_seconds=elapsed,
        correct_count=len(correct),
        total_count=total,
    )
