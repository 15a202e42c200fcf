"""Helper utilities for the typing trainer.

This package contains debug output control and state directory resolution
shared across the application.
"""

from .debug_util import DebugUtil  # noqa: F401
