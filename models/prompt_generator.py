"""Builds the prompt text for a session from a configuration."""

import logging
import random
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, Field

from db.exceptions import DatabaseError
from models.character_difficulty import CharacterDifficulty
from models.corpus import Corpus, SupportedLanguage, load_corpus
from models.difficulty_store import DifficultyStore
from models.text_formatter import format_words
from models.word_selector import build_selector, strategy_from_flags

logger = logging.getLogger(__name__)


class WordGenConfig(BaseModel):
    number_of_words: int = Field(default=15, ge=1)
    number_of_sentences: Optional[int] = Field(default=None, ge=0)
    custom_prompt: Optional[str] = None
    language: SupportedLanguage = SupportedLanguage.ENGLISH
    random_words: bool = False
    substitute: bool = False
    capitalize: bool = False
    symbols: bool = False


class PromptGenerator:
    """Generate ``(prompt, word_count)`` pairs.

    A custom prompt is used verbatim; otherwise sentences are generated when a
    sentence count is set, else words are selected and formatted. Word
    selection is adaptive only when a store is supplied.
    """

    def __init__(
        self,
        config: WordGenConfig,
        store: Optional[DifficultyStore] = None,
        corpus: Optional[Corpus] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config
        self.store = store
        self._corpus = corpus
        self.rng = rng or random.Random()

    @property
    def corpus(self) -> Corpus:
        """The configured corpus, loaded on first use (CorpusLoadError propagates)."""
        if self._corpus is None:
            self._corpus = load_corpus(self.config.language.file_id)
        return self._corpus

    def generate_prompt(self) -> Tuple[str, int]:
        if self.config.custom_prompt is not None:
            return self.config.custom_prompt, self.config.number_of_words
        if self.config.number_of_sentences is not None:
            sentences, word_count = self.corpus.random_sentences(
                self.config.number_of_sentences, self.rng
            )
            return " ".join(sentences), word_count
        return self.generate_words()

    def generate_words(self) -> Tuple[str, int]:
        strategy = strategy_from_flags(self.config.random_words, self.config.substitute)
        selector = build_selector(strategy, self.rng)
        words = selector.select(self.corpus, self.config.number_of_words, self.difficulty_map())
        text = format_words(words, self.config.capitalize, self.config.symbols, self.rng)
        return text, len(words)

    def difficulty_map(self) -> Dict[str, CharacterDifficulty]:
        """Character difficulties from the store, empty when unavailable."""
        if self.store is None:
            return {}
        try:
            return self.store.character_difficulties()
        except DatabaseError as e:
            logger.warning("Could not read character difficulties: %s", e)
            return {}
