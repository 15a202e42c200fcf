"""
Models package for the typing trainer.

This package contains the data models, the difficulty store and the typing
session engine.
"""

__all__ = [
    "Attempt",
    "CharStat",
    "CharacterDifficulty",
    "Corpus",
    "DifficultyStore",
    "Outcome",
    "PromptGenerator",
    "SessionResult",
    "TypingSession",
]

from models.char_stat import CharStat
from models.character_difficulty import CharacterDifficulty
from models.corpus import Corpus
from models.difficulty_store import DifficultyStore
from models.keystroke import Attempt, Outcome
from models.prompt_generator import PromptGenerator
from models.session_scorer import SessionResult
from models.typing_session import TypingSession
