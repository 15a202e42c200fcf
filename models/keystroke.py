"""Attempt model for tracking keystrokes during a typing session."""

import datetime
import enum
import logging
import unicodedata
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class Outcome(str, enum.Enum):
    """Result of comparing a typed character against the prompt."""

    CORRECT = "correct"
    INCORRECT = "incorrect"


class Attempt(BaseModel):
    """Pydantic model for one keystroke at a prompt position.

    Attempts are replaced wholesale when a strict-mode position is retyped,
    never mutated field by field.
    """

    char_typed: str
    expected_char: str = ""
    outcome: Outcome
    timestamp: datetime.datetime = Field(default_factory=datetime.datetime.now)
    time_to_press_ms: int = Field(default=0, ge=0)
    text_index: int = Field(
        default=0, ge=0, description="Index of the expected character in the prompt"
    )
    keypress_start: Optional[datetime.datetime] = None

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @field_validator("char_typed", "expected_char", mode="before")
    @classmethod
    def _normalize_nfc(cls, v: object) -> str:
        """Normalize character fields to NFC form so comparisons are stable."""
        if v is None:
            return ""
        if not isinstance(v, str):
            v = str(v)
        return unicodedata.normalize("NFC", v)

    @property
    def is_correct(self) -> bool:
        return self.outcome is Outcome.CORRECT

    def to_dict(self) -> Dict[str, Any]:
        """Convert the attempt to a dictionary with an ISO timestamp."""
        return {
            "char_typed": self.char_typed,
            "expected_char": self.expected_char,
            "outcome": self.outcome.value,
            "timestamp": self.timestamp.isoformat(),
            "time_to_press_ms": self.time_to_press_ms,
            "text_index": self.text_index,
            "keypress_start": self.keypress_start.isoformat() if self.keypress_start else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Attempt":
        """Create an Attempt from a dictionary, parsing ISO timestamps."""
        values = dict(data)
        for key in ("timestamp", "keypress_start"):
            if isinstance(values.get(key), str):
                values[key] = datetime.datetime.fromisoformat(values[key])
        return cls(**values)
