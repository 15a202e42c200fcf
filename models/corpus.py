"""Word corpora shipped with the trainer.

Each language is a JSON file under ``models/lang`` of the form
``{"name": ..., "size": ..., "words": [...]}``.
"""

import enum
import json
import logging
import random
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, ValidationError, field_validator

logger = logging.getLogger(__name__)

LANG_DIR = Path(__file__).parent / "lang"

MIN_SENTENCE_WORDS = 3
MAX_SENTENCE_WORDS = 12


class CorpusLoadError(Exception):
    """Raised when a language's word list cannot be loaded."""


class SupportedLanguage(str, enum.Enum):
    """Word lists available out of the box."""

    ENGLISH = "english"
    ENGLISH_1K = "english_1k"

    @property
    def file_id(self) -> str:
        return self.value


class Corpus(BaseModel):
    """An immutable word list for one language."""

    name: str
    words: Tuple[str, ...]

    model_config = {"frozen": True}

    @field_validator("words", mode="before")
    @classmethod
    def validate_words(cls, v: object) -> Tuple[str, ...]:
        """Drop blank entries; an empty list is rejected."""
        if not isinstance(v, (list, tuple)):
            raise ValueError("words must be a list of strings")
        words = tuple(str(w).strip() for w in v if str(w).strip())
        if not words:
            raise ValueError("word list is empty")
        return words

    @property
    def size(self) -> int:
        return len(self.words)

    def __len__(self) -> int:
        return len(self.words)

    def random_sentences(
        self, count: int, rng: Optional[random.Random] = None
    ) -> Tuple[List[str], int]:
        """Build ``count`` sentences of corpus words.

        Each sentence has 3 to 12 words, starts with a capital letter and ends
        with a period, except the final one which carries no terminator.
        Returns the sentences and the number of inter-word spaces across them.
        """
        rng = rng or random.Random()
        sentences: List[str] = []
        word_count = 0
        for i in range(count):
            length = rng.randint(MIN_SENTENCE_WORDS, MAX_SENTENCE_WORDS)
            words = [rng.choice(self.words) for _ in range(length)]
            words[0] = words[0][:1].upper() + words[0][1:]
            sentence = " ".join(words)
            word_count += sentence.count(" ")
            if i < count - 1:
                sentence += "."
            sentences.append(sentence)
        return sentences, word_count


def load_corpus(
    language_id: str = SupportedLanguage.ENGLISH.value, lang_dir: Optional[Path] = None
) -> Corpus:
    """Load the word list for ``language_id``.

    Raises:
        CorpusLoadError: If the language is unknown, the file is unreadable or
            malformed, or the word list is empty.
    """
    if isinstance(language_id, SupportedLanguage):
        language_id = language_id.file_id
    if not language_id or "/" in language_id or "\\" in language_id:
        raise CorpusLoadError(f"Invalid language id: {language_id!r}")

    path = (lang_dir or LANG_DIR) / f"{language_id}.json"
    if not path.is_file():
        raise CorpusLoadError(f"Unknown language: {language_id}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CorpusLoadError(f"Failed to read word list {path}: {e}") from e

    if not isinstance(data, dict):
        raise CorpusLoadError(f"Word list {path} is not a JSON object")

    try:
        corpus = Corpus(
            name=data.get("name", language_id),
            words=data.get("words") or [],
        )
    except ValidationError as e:
        raise CorpusLoadError(f"Invalid word list {path}: {e}") from e

    logger.debug("Loaded corpus %s with %d words", corpus.name, len(corpus))
    return corpus
