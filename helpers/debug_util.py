"""Debug utilities for controlling debug output across the trainer.

Provides a centralized way to handle debug messages, supporting both quiet mode
(logging only) and loud mode (print to stderr).
"""

import logging
import os
import sys

DEBUG_MODE_ENV = "TYPING_TRAINER_DEBUG_MODE"
_VALID_MODES = ("quiet", "loud")


class DebugUtil:
    """Manage debug output based on debug mode setting.

    Supports two modes:
    - "quiet": Debug messages are logged only
    - "loud": Debug messages are printed to stderr, which keeps them out of
      any prompt text written to stdout
    """

    def __init__(self, mode: str | None = None) -> None:
        """Initialize from an explicit mode or the TYPING_TRAINER_DEBUG_MODE variable.

        Defaults to "quiet" if not set or invalid.
        """
        requested = mode if mode is not None else os.environ.get(DEBUG_MODE_ENV, "quiet")
        self._mode = self._normalize(requested)
        self._logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def _normalize(mode: str) -> str:
        mode = mode.lower()
        return mode if mode in _VALID_MODES else "quiet"

    def debug_mode(self) -> str:
        """Get the current debug mode ("quiet" or "loud")."""
        return self._mode

    def debugMessage(self, *args: object) -> None:
        """Output a debug message based on the current debug mode.

        In "quiet" mode: Messages are logged using the logger.
        In "loud" mode: Messages are printed to stderr.
        """
        message = " ".join(str(arg) for arg in args)
        if not message:
            return
        if self._mode == "loud":
            print("[DEBUG]", message, file=sys.stderr)
        else:
            self._logger.debug(message)

    def set_mode(self, mode: str) -> None:
        """Change the debug mode. Invalid values default to "quiet"."""
        self._mode = self._normalize(mode)

    def is_loud(self) -> bool:
        """Check if debug mode is set to loud."""
        return self._mode == "loud"

    def is_quiet(self) -> bool:
        """Check if debug mode is set to quiet."""
        return self._mode == "quiet"
