"""Persisted trainer preferences."""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from models.corpus import SupportedLanguage

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the configuration cannot be saved."""


class TrainerConfig(BaseModel):
    """Session preferences remembered between runs."""

    number_of_words: int = Field(default=15, ge=1)
    number_of_secs: Optional[float] = None
    supported_language: SupportedLanguage = SupportedLanguage.ENGLISH
    random_words: bool = False
    capitalize: bool = False
    strict: bool = False
    symbols: bool = False
    substitute: bool = False

    model_config = {"extra": "ignore", "validate_assignment": True}

    @field_validator("number_of_secs")
    @classmethod
    def validate_number_of_secs(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("number_of_secs must be positive")
        return v


class ConfigStore:
    """Load and save TrainerConfig as JSON."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> TrainerConfig:
        """Return the saved config, or defaults if the file is missing or invalid."""
        if not self.path.exists():
            return TrainerConfig()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return TrainerConfig.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Ignoring unreadable config %s: %s", self.path, e)
            return TrainerConfig()

    def save(self, config: TrainerConfig) -> None:
        """Write ``config`` as pretty-printed JSON.

        Raises:
            ConfigError: If the file cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(config.model_dump(mode="json"), f, indent=2)
        except OSError as e:
            raise ConfigError(f"Failed to save config to {self.path}: {e}") from e
