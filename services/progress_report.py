"""One-line summaries comparing a session with the user's history."""

from typing import Optional, Sequence

from models.difficulty_store import CharacterDelta

TIME_THRESHOLD_MS = 5.0
MISS_THRESHOLD_PCT = 2.0

NO_STATISTICS = "No character statistics available"
NO_HISTORY = "New session - no historical comparison available"


def describe_session_delta(deltas: Optional[Sequence[CharacterDelta]]) -> str:
    """Summarize per-character deltas as a single line.

    ``None`` means there was no store to compare against. Averages are taken
    over every character typed in the session.
    """
    if deltas is None:
        return NO_STATISTICS

    typed = [d for d in deltas if d.session_attempts > 0]
    if not typed:
        return NO_HISTORY

    improved = regressed = 0
    time_total = miss_total = 0.0
    compared = 0
    for delta in typed:
        if delta.time_delta is not None:
            compared += 1
            time_total += delta.time_delta
            if delta.time_delta < -TIME_THRESHOLD_MS:
                improved += 1
            elif delta.time_delta > TIME_THRESHOLD_MS:
                regressed += 1
        if delta.miss_delta is not None:
            compared += 1
            miss_total += delta.miss_delta
    if compared == 0:
        return NO_HISTORY

    avg_time = time_total / len(typed)
    avg_miss = miss_total / len(typed)

    if avg_time < -TIME_THRESHOLD_MS:
        time_summary = f"↓{abs(avg_time):.0f}ms faster"
    elif avg_time > TIME_THRESHOLD_MS:
        time_summary = f"↑{avg_time:.0f}ms slower"
    else:
        time_summary = "similar speed"

    if avg_miss < -MISS_THRESHOLD_PCT:
        miss_summary = f"↓{abs(avg_miss):.1f}% more accurate"
    elif avg_miss > MISS_THRESHOLD_PCT:
        miss_summary = f"↑{avg_miss:.1f}% less accurate"
    else:
        miss_summary = "similar accuracy"

    if improved or regressed:
        return f"vs historical: {time_summary} • {miss_summary} • ↑{improved} ↓{regressed} chars"
    return f"vs historical: {time_summary} • {miss_summary}"
