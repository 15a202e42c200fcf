"""
Database package for the typing trainer.
This package contains the SQLite connection manager and its exception types.
"""
from .database_manager import DatabaseManager

__all__ = ["DatabaseManager"]
