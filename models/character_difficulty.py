"""Per-character difficulty metrics and the scoring used to rank characters and words.

A character's combined score grows with its miss rate and with how far its
average time-to-press exceeds 200 ms. Uppercase occurrences are weighted by
the character's uppercase penalty plus a secondary term built from the
uppercase-only statistics.
"""

import logging
from typing import Dict, List, Mapping

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

BASELINE_TIME_MS = 200.0
UNKNOWN_ALPHA_SCORE = 5.0
UNKNOWN_UPPERCASE_MULTIPLIER = 1.5
UNKNOWN_OTHER_SCORE = 3.0


class CharacterDifficulty(BaseModel):
    """Aggregated performance for one (lowercase) character."""

    miss_rate: float = Field(default=0.0, ge=0.0, le=100.0)
    avg_time_ms: float = Field(default=0.0, ge=0.0)
    total_attempts: int = Field(default=0, ge=0)
    uppercase_miss_rate: float = Field(default=0.0, ge=0.0, le=100.0)
    uppercase_avg_time: float = Field(default=0.0, ge=0.0)
    uppercase_attempts: int = Field(default=0, ge=0)
    uppercase_penalty: float = Field(default=0.0, ge=0.0, le=1.0)

    model_config = {"frozen": True}

    def base_score(self) -> float:
        """Combined score ignoring case."""
        return self.miss_rate * 2.0 + max(0.0, (self.avg_time_ms - BASELINE_TIME_MS) / 100.0)

    def uppercase_score(self) -> float:
        """Secondary term from uppercase-only statistics, 0 with no uppercase history."""
        if self.uppercase_attempts <= 0:
            return 0.0
        raw = self.uppercase_miss_rate * 1.5 + max(
            0.0, (self.uppercase_avg_time - BASELINE_TIME_MS) / 100.0
        )
        return raw * 0.5


def character_score(
    char: str, difficulty_map: Mapping[str, CharacterDifficulty], is_uppercase: bool = False
) -> float:
    """Score one character occurrence; higher means weaker.

    Characters absent from ``difficulty_map`` get a fixed default so that
    unseen letters are still favoured over well-practised ones.
    """
    difficulty = difficulty_map.get(char.lower()[:1])
    if difficulty is None:
        if char.isalpha():
            return UNKNOWN_ALPHA_SCORE * (UNKNOWN_UPPERCASE_MULTIPLIER if is_uppercase else 1.0)
        return UNKNOWN_OTHER_SCORE

    score = difficulty.base_score()
    if is_uppercase:
        score *= 1.0 + difficulty.uppercase_penalty
        score += difficulty.uppercase_score()
    return score


def word_difficulty_score(word: str, difficulty_map: Mapping[str, CharacterDifficulty]) -> float:
    """Mean character score of ``word``; 0 for an empty word."""
    if not word:
        return 0.0
    total = sum(character_score(ch, difficulty_map, ch.isupper()) for ch in word)
    return total / len(word)


def get_weakest_characters(
    difficulty_map: Mapping[str, CharacterDifficulty], count: int
) -> List[str]:
    """Return up to ``count`` characters ordered by descending base score.

    ``sorted`` is stable, so ties keep the mapping's iteration order.
    """
    if count <= 0:
        return []
    scored: Dict[str, float] = {
        char: difficulty.base_score() for char, difficulty in difficulty_map.items()
    }
    ranked = sorted(scored, key=lambda char: scored[char], reverse=True)
    return ranked[:count]
