"""CharStat model: the persisted per-keystroke record used for difficulty analysis."""

import datetime
import unicodedata
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

CONTEXT_SIZE = 3


def extract_context(text: str, position: int, context_size: int = CONTEXT_SIZE) -> Tuple[str, str]:
    """Return up to ``context_size`` characters before and after ``position`` in ``text``.

    The character at ``position`` itself belongs to neither side.
    """
    if position < 0 or position >= len(text):
        return "", ""
    before = text[max(0, position - context_size) : position]
    after = text[position + 1 : position + context_size + 1]
    return before, after


class CharStat(BaseModel):
    """One keystroke attempt as stored in the character_stats table.

    ``character`` is always the lowercase form; ``was_uppercase`` remembers the
    case the prompt asked for.
    """

    character: str
    time_to_press_ms: int = Field(ge=0)
    was_correct: bool
    was_uppercase: bool = False
    timestamp: datetime.datetime = Field(default_factory=datetime.datetime.now)
    context_before: str = ""
    context_after: str = ""
    session_id: Optional[str] = None

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @field_validator("character", mode="before")
    @classmethod
    def validate_character(cls, v: object) -> str:
        """Ensure the character is a single lowercase scalar value."""
        if not isinstance(v, str):
            raise ValueError("character must be a string")
        v = unicodedata.normalize("NFC", v)
        if len(v) != 1:
            raise ValueError("character must be exactly one character")
        # Some lowercase mappings expand (U+0130 -> "i" + U+0307); keep the base letter.
        return v.lower()[0]

    @classmethod
    def for_keystroke(
        cls,
        prompt: str,
        index: int,
        time_to_press_ms: int,
        was_correct: bool,
        timestamp: datetime.datetime,
        session_id: Optional[str] = None,
    ) -> "CharStat":
        """Build the record for the prompt character at ``index``."""
        expected = prompt[index]
        before, after = extract_context(prompt, index)
        return cls(
            character=expected,
            time_to_press_ms=max(0, int(time_to_press_ms)),
            was_correct=was_correct,
            was_uppercase=expected.isupper(),
            timestamp=timestamp,
            context_before=before,
            context_after=after,
            session_id=session_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "character": self.character,
            "time_to_press_ms": self.time_to_press_ms,
            "was_correct": self.was_correct,
            "was_uppercase": self.was_uppercase,
            "timestamp": self.timestamp.isoformat(),
            "context_before": self.context_before,
            "context_after": self.context_after,
            "session_id": self.session_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CharStat":
        """Create a CharStat from a database row dictionary.

        Raises:
            ValueError: If the timestamp or character cannot be parsed.
        """
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.datetime.fromisoformat(timestamp)
        return cls(
            character=data.get("character"),
            time_to_press_ms=int(data.get("time_to_press_ms", 0)),
            was_correct=bool(data.get("was_correct")),
            was_uppercase=bool(data.get("was_uppercase")),
            timestamp=timestamp,
            context_before=data.get("context_before") or "",
            context_after=data.get("context_after") or "",
            session_id=data.get("session_id"),
        )
