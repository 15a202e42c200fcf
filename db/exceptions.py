"""
Custom database exceptions for the typing trainer difficulty store.
"""


class DatabaseError(Exception):
    """Base class for all database-related exceptions."""


class DBConnectionError(DatabaseError):
    """Raised when the database file cannot be opened or the connection is gone."""


class ConstraintError(DatabaseError):
    """Raised when a NOT NULL, UNIQUE or CHECK constraint is violated."""


class DatabaseTypeError(DatabaseError, TypeError):
    """Raised when there's a type mismatch in database operations."""


class IntegrityError(DatabaseError):
    """Raised when database integrity is violated."""


class SchemaError(DatabaseError):
    """Raised when there are schema-related issues."""


class TableNotFoundError(DatabaseError):
    """Raised when a table is not found in the database."""
