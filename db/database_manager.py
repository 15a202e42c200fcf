"""Central database manager for the difficulty store.

Provides connection, query, transaction and schema management with specific
exception handling. Backed by a local SQLite file (or ":memory:").

All database access should go through this class so that sqlite3 errors are
translated consistently into the exceptions defined in `db.exceptions`.
"""

import contextlib
import logging
import sqlite3
import threading
import traceback
from pathlib import Path
from typing import Iterable, Iterator, List, NoReturn, Optional, Tuple

from helpers.debug_util import DebugUtil

from .exceptions import (
    ConstraintError,
    DatabaseError,
    DatabaseTypeError,
    DBConnectionError,
    IntegrityError,
    SchemaError,
    TableNotFoundError,
)

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class DatabaseManager:
    """Centralized manager for the SQLite connection and operations.

    Handles connection management, query execution, schema initialization, and
    exception translation. The connection is created with
    ``check_same_thread=False`` and every operation is serialized with a lock,
    so a manager may be handed to another thread and closed there.
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        debug_util: Optional[DebugUtil] = None,
    ) -> None:
        """Open (and create if needed) the SQLite database.

        Args:
            db_path: Path to the SQLite database file, or ":memory:". If None,
                an in-memory database is created.
            debug_util: Optional DebugUtil instance for handling debug output.

        Raises:
            DBConnectionError: If the parent directory cannot be created or the
                database file cannot be opened.
        """
        self.db_path: str = db_path or MEMORY_DB
        self.debug_util = debug_util or DebugUtil()
        self._lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None
        self._in_explicit_tx = False

        try:
            if self.db_path != MEMORY_DB:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            if self.db_path != MEMORY_DB:
                conn.execute("PRAGMA journal_mode=WAL")
            self._conn = conn
        except (OSError, sqlite3.Error) as e:
            logger.warning("Failed to open database at %s: %s", self.db_path, e)
            raise DBConnectionError(f"Failed to open database at {self.db_path}: {e}") from e

        self._debug_message(f"Opened SQLite database: {self.db_path}")

    def _debug_message(self, *args: object) -> None:
        self.debug_util.debugMessage(*args)

    @property
    def is_open(self) -> bool:
        """Whether the connection is still open."""
        return self._conn is not None

    def _get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DBConnectionError("Database connection is not established")
        return self._conn

    def init_tables(self) -> None:
        """Create the character statistics tables and indexes if they do not exist."""
        statements = [
            """
            CREATE TABLE IF NOT EXISTS character_stats (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT,
                character TEXT NOT NULL,
                time_to_press_ms INTEGER NOT NULL CHECK (time_to_press_ms >= 0),
                was_correct INTEGER NOT NULL,
                was_uppercase INTEGER NOT NULL DEFAULT 0,
                timestamp TEXT NOT NULL,
                context_before TEXT NOT NULL DEFAULT '',
                context_after TEXT NOT NULL DEFAULT ''
            )
            """,
            "CREATE INDEX IF NOT EXISTS idx_character_stats_char ON character_stats(character)",
            "CREATE INDEX IF NOT EXISTS idx_character_stats_ts ON character_stats(timestamp)",
            """
            CREATE TABLE IF NOT EXISTS character_rollups (
                character TEXT PRIMARY KEY,
                total_attempts INTEGER NOT NULL DEFAULT 0,
                correct_attempts INTEGER NOT NULL DEFAULT 0,
                correct_time_ms INTEGER NOT NULL DEFAULT 0,
                uppercase_attempts INTEGER NOT NULL DEFAULT 0,
                uppercase_correct INTEGER NOT NULL DEFAULT 0,
                uppercase_time_ms INTEGER NOT NULL DEFAULT 0,
                last_seen TEXT
            )
            """,
        ]
        for statement in statements:
            self.execute(statement)

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists in the database.

        Args:
            table_name: Name of the table to check
        Returns:
            True if the table exists, False otherwise
        """
        row = self.fetchone(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (table_name,),
        )
        return row is not None

    def list_tables(self) -> List[str]:
        """Return a list of all user table names in the database."""
        rows = self.fetchall(
            "SELECT name FROM sqlite_master WHERE type = 'table' "
            "AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [str(row["name"]) for row in rows]

    def _translate_and_raise(self, e: Exception) -> NoReturn:
        """Translate sqlite3 exceptions to our custom exceptions and raise.

        Always raises; does not return.
        """
        error_msg = str(e).lower()
        if isinstance(e, sqlite3.IntegrityError):
            if "not null" in error_msg or "unique" in error_msg or "check" in error_msg:
                raise ConstraintError(f"Constraint violation: {e}") from e
            raise IntegrityError(f"Integrity error: {e}") from e
        if isinstance(e, sqlite3.OperationalError):
            if "no such table" in error_msg:
                raise TableNotFoundError(f"Table not found: {e}") from e
            if "no such column" in error_msg or "has no column" in error_msg:
                raise SchemaError(f"Schema error: {e}") from e
            if "unable to open" in error_msg or "disk" in error_msg or "readonly" in error_msg:
                raise DBConnectionError(f"Database unavailable: {e}") from e
            raise DatabaseError(f"Database operation failed: {e}") from e
        if isinstance(e, (sqlite3.InterfaceError, sqlite3.DataError)):
            raise DatabaseTypeError(f"Type error in query parameters: {e}") from e
        if isinstance(e, sqlite3.ProgrammingError):
            if "closed" in error_msg:
                raise DBConnectionError(f"Database connection is closed: {e}") from e
            if "binding" in error_msg or "not supported" in error_msg:
                raise DatabaseTypeError(f"Type error in query parameters: {e}") from e
        if isinstance(e, DatabaseError):
            raise e
        if isinstance(e, sqlite3.Error):
            raise DatabaseError(f"Database error: {e}") from e

        # Fallback
        raise DatabaseError(f"Unexpected database error: {e}") from e

    def execute(self, query: str, params: Tuple[object, ...] = ()) -> sqlite3.Cursor:
        """Execute a SQL query with parameters and commit immediately.

        Inside a ``transaction()`` block the commit is deferred to the block.

        Raises:
            DBConnectionError, TableNotFoundError, SchemaError, DatabaseError,
            ConstraintError, IntegrityError, DatabaseTypeError
        """
        with self._lock:
            try:
                conn = self._get_connection()
                cursor = conn.execute(query, params)
                if not self._in_explicit_tx:
                    conn.commit()
                return cursor
            except Exception as e:
                self._debug_message(f"Exception during query: {e}. Rolling back transaction.")
                self._rollback_quietly()
                self._translate_and_raise(e)

    def execute_many(
        self, query: str, params_seq: Iterable[Tuple[object, ...]]
    ) -> sqlite3.Cursor:
        """Execute a parameterized statement for many rows in one commit."""
        with self._lock:
            try:
                conn = self._get_connection()
                cursor = conn.executemany(query, list(params_seq))
                if not self._in_explicit_tx:
                    conn.commit()
                return cursor
            except Exception as e:
                self._debug_message(f"Exception during execute_many: {e}. Rolling back transaction.")
                self._rollback_quietly()
                self._translate_and_raise(e)

    def fetchone(self, query: str, params: Tuple[object, ...] = ()) -> Optional[sqlite3.Row]:
        """Execute a query and return the first row, or None if no results."""
        with self._lock:
            try:
                return self._get_connection().execute(query, params).fetchone()
            except Exception as e:
                self._translate_and_raise(e)

    def fetchall(self, query: str, params: Tuple[object, ...] = ()) -> List[sqlite3.Row]:
        """Execute a query and return all rows as a list of sqlite3.Row objects."""
        with self._lock:
            try:
                return self._get_connection().execute(query, params).fetchall()
            except Exception as e:
                self._translate_and_raise(e)

    @contextlib.contextmanager
    def transaction(self) -> Iterator["DatabaseManager"]:
        """Run the enclosed statements atomically: commit on success, roll back on error."""
        with self._lock:
            conn = self._get_connection()
            if self._in_explicit_tx:
                # Nested blocks join the outer transaction.
                yield self
                return
            self._in_explicit_tx = True
            try:
                conn.execute("BEGIN")
                yield self
                conn.commit()
            except Exception as e:
                self._debug_message(f"Transaction failed: {e}. Rolling back.")
                self._rollback_quietly()
                if isinstance(e, sqlite3.Error):
                    self._translate_and_raise(e)
                raise
            finally:
                self._in_explicit_tx = False

    def _rollback_quietly(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.rollback()
        except sqlite3.Error as rollback_exc:
            traceback.print_exc()
            self._debug_message(f"Rollback failed: {rollback_exc}")

    def database_size_bytes(self) -> int:
        """Return the size of the database in bytes (page_count * page_size)."""
        row = self.fetchone(
            "SELECT page_count * page_size AS size FROM pragma_page_count(), pragma_page_size()"
        )
        return int(row["size"]) if row is not None else 0

    def vacuum(self) -> None:
        """Rebuild the database file and refresh query planner statistics."""
        with self._lock:
            try:
                conn = self._get_connection()
                conn.commit()
                conn.execute("VACUUM")
                conn.execute("ANALYZE")
            except Exception as e:
                self._translate_and_raise(e)

    def close(self) -> None:
        """Close the database connection. Safe to call more than once."""
        with self._lock:
            if self._conn is None:
                return
            try:
                self._conn.close()
            except sqlite3.Error as e:
                logging.error("Error closing database connection: %s", e)
                self._debug_message(f"Error closing database connection: {e}")
                raise DBConnectionError(f"Error closing database connection: {e}") from e
            finally:
                self._conn = None

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()
