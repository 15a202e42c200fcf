"""Word selection strategies for building practice prompts.

Every selector answers ``select(corpus, count, difficulty_map)`` and falls
back to a plain random sample when no difficulty history is available.
"""

import abc
import enum
import logging
import random
from typing import List, Mapping, Optional, Sequence, Union

from models.character_difficulty import (
    CharacterDifficulty,
    get_weakest_characters,
    word_difficulty_score,
)
from models.corpus import Corpus

logger = logging.getLogger(__name__)

INTELLIGENT_POOL_FRACTION = 0.3
SUBSTITUTION_PROBABILITY = 0.3
SUBSTITUTION_WEAK_CHARS = 10

DifficultyMap = Mapping[str, CharacterDifficulty]


class SelectionStrategy(str, enum.Enum):
    RANDOM = "random"
    INTELLIGENT = "intelligent"
    SUBSTITUTION = "substitution"


def strategy_from_flags(random_words: bool = False, substitute: bool = False) -> SelectionStrategy:
    """Map command-line flags to a strategy.

    Random wins over substitution; intelligent is the default.
    """
    if random_words:
        return SelectionStrategy.RANDOM
    if substitute:
        return SelectionStrategy.SUBSTITUTION
    return SelectionStrategy.INTELLIGENT


class WordSelector(abc.ABC):
    """Base class for selection strategies."""

    strategy: SelectionStrategy

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def random_sample(self, words: Sequence[str], count: int) -> List[str]:
        """Uniform sample without replacement, bounded by the corpus size."""
        if count <= 0 or not words:
            return []
        return self.rng.sample(list(words), min(count, len(words)))

    def select(
        self, corpus: Union[Corpus, Sequence[str]], count: int, difficulty_map: DifficultyMap
    ) -> List[str]:
        """Choose up to ``count`` words from ``corpus`` (a Corpus or a word list)."""
        words = corpus.words if isinstance(corpus, Corpus) else corpus
        if not difficulty_map:
            logger.debug("No difficulty history; using random selection")
            return self.random_sample(words, count)
        return self._select(words, count, difficulty_map)

    @abc.abstractmethod
    def _select(self, words: Sequence[str], count: int, difficulty_map: DifficultyMap) -> List[str]:
        """Strategy-specific selection with a non-empty difficulty map."""


class RandomSelector(WordSelector):
    strategy = SelectionStrategy.RANDOM

    def _select(self, words: Sequence[str], count: int, difficulty_map: DifficultyMap) -> List[str]:
        return self.random_sample(words, count)


class IntelligentSelector(WordSelector):
    """Sample from the hardest slice of the corpus.

    The pool is the top ``max(count, 30% of corpus)`` words by difficulty, so
    weak characters show up often without repeating the same top words.
    """

    strategy = SelectionStrategy.INTELLIGENT

    def _select(self, words: Sequence[str], count: int, difficulty_map: DifficultyMap) -> List[str]:
        if count <= 0 or not words:
            return []
        ranked = sorted(
            words, key=lambda w: word_difficulty_score(w, difficulty_map), reverse=True
        )
        pool_size = min(len(ranked), max(count, int(len(ranked) * INTELLIGENT_POOL_FRACTION)))
        pool = ranked[:pool_size]
        return self.rng.sample(pool, min(count, len(pool)))


class SubstitutionSelector(WordSelector):
    """Random words with some letters swapped for the weakest characters."""

    strategy = SelectionStrategy.SUBSTITUTION

    def _select(self, words: Sequence[str], count: int, difficulty_map: DifficultyMap) -> List[str]:
        sample = self.random_sample(words, count)
        weak = get_weakest_characters(difficulty_map, SUBSTITUTION_WEAK_CHARS)
        if not weak:
            return sample
        return [self.substitute(word, weak) for word in sample]

    def substitute(self, word: str, weak_chars: Sequence[str]) -> str:
        out = []
        for ch in word:
            if ch.isalpha() and self.rng.random() < SUBSTITUTION_PROBABILITY:
                replacement = self.rng.choice(weak_chars)
                out.append(replacement.upper() if ch.isupper() else replacement.lower())
            else:
                out.append(ch)
        return "".join(out)


_SELECTORS = {
    SelectionStrategy.RANDOM: RandomSelector,
    SelectionStrategy.INTELLIGENT: IntelligentSelector,
    SelectionStrategy.SUBSTITUTION: SubstitutionSelector,
}


def build_selector(
    strategy: SelectionStrategy, rng: Optional[random.Random] = None
) -> WordSelector:
    return _SELECTORS[SelectionStrategy(strategy)](rng)
