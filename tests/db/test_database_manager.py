"""Tests for the SQLite DatabaseManager.

Covers connection handling, query helpers, transactions and the translation
of sqlite3 errors into db.exceptions.
"""

import sqlite3

import pytest

from db.database_manager import DatabaseManager
from db.exceptions import (
    ConstraintError,
    DatabaseError,
    DatabaseTypeError,
    DBConnectionError,
    IntegrityError,
    SchemaError,
    TableNotFoundError,
)

TEST_TABLE_NAME = "test_table"


@pytest.fixture
def initialized_db(temp_db: DatabaseManager) -> DatabaseManager:
    """Temporary database with a small populated table."""
    temp_db.execute(
        f"CREATE TABLE {TEST_TABLE_NAME} ("
        "id INTEGER PRIMARY KEY, name TEXT NOT NULL UNIQUE, age INTEGER CHECK (age >= 0))"
    )
    temp_db.execute_many(
        f"INSERT INTO {TEST_TABLE_NAME} (id, name, age) VALUES (?, ?, ?)",
        [(1, "Alice", 30), (2, "Bob", 25)],
    )
    return temp_db


class TestDatabaseManagerInitialization:
    """Connection lifecycle."""

    def test_default_is_in_memory(self) -> None:
        """Test that no path gives an in-memory database."""
        with DatabaseManager() as db:
            assert db.db_path == ":memory:"
            row = db.fetchone("SELECT 1 AS test_value")
            assert row is not None
            assert row["test_value"] == 1

    def test_creates_parent_directory(self, tmp_path) -> None:
        """Test that a missing parent directory is created."""
        path = tmp_path / "nested" / "dir" / "stats.db"
        with DatabaseManager(str(path)) as db:
            db.init_tables()
        assert path.exists()

    def test_unopenable_path_raises_connection_error(self, tmp_path) -> None:
        """Test that a path under a regular file cannot be opened."""
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")
        with pytest.raises(DBConnectionError):
            DatabaseManager(str(blocker / "stats.db"))

    def test_close_is_idempotent(self, temp_db: DatabaseManager) -> None:
        """Test that close can be called twice and operations then fail."""
        temp_db.close()
        temp_db.close()
        assert not temp_db.is_open
        with pytest.raises(DBConnectionError):
            temp_db.fetchone("SELECT 1")

    def test_init_tables_creates_schema(self, temp_db: DatabaseManager) -> None:
        """Test that init_tables creates both statistics tables."""
        temp_db.init_tables()
        temp_db.init_tables()
        assert temp_db.table_exists("character_stats")
        assert temp_db.table_exists("character_rollups")
        assert set(temp_db.list_tables()) >= {"character_stats", "character_rollups"}


class TestDatabaseOperations:
    """execute / fetchone / fetchall."""

    def test_fetchone_returns_none_for_no_results(self, initialized_db: DatabaseManager) -> None:
        result = initialized_db.fetchone(f"SELECT * FROM {TEST_TABLE_NAME} WHERE id = ?", (999,))
        assert result is None

    def test_fetchall_returns_all_results(self, initialized_db: DatabaseManager) -> None:
        rows = initialized_db.fetchall(f"SELECT * FROM {TEST_TABLE_NAME} ORDER BY id")
        assert [row["name"] for row in rows] == ["Alice", "Bob"]
        assert isinstance(rows[0], sqlite3.Row)

    def test_execute_commits(self, initialized_db: DatabaseManager) -> None:
        initialized_db.execute(
            f"UPDATE {TEST_TABLE_NAME} SET age = ? WHERE id = ?", (31, 1)
        )
        with DatabaseManager(initialized_db.db_path) as other:
            row = other.fetchone(f"SELECT age FROM {TEST_TABLE_NAME} WHERE id = 1")
        assert row is not None and row["age"] == 31

    def test_database_size_is_positive(self, initialized_db: DatabaseManager) -> None:
        assert initialized_db.database_size_bytes() > 0


class TestTransactions:
    """The transaction() context manager."""

    def test_transaction_commits(self, initialized_db: DatabaseManager) -> None:
        with initialized_db.transaction():
            initialized_db.execute(
                f"INSERT INTO {TEST_TABLE_NAME} (id, name, age) VALUES (?, ?, ?)", (3, "Cara", 41)
            )
        assert len(initialized_db.fetchall(f"SELECT id FROM {TEST_TABLE_NAME}")) == 3

    def test_transaction_rolls_back_on_error(self, initialized_db: DatabaseManager) -> None:
        """Test that a failing statement undoes earlier statements in the block."""
        with pytest.raises(ConstraintError):
            with initialized_db.transaction():
                initialized_db.execute(
                    f"INSERT INTO {TEST_TABLE_NAME} (id, name, age) VALUES (?, ?, ?)",
                    (3, "Cara", 41),
                )
                initialized_db.execute(
                    f"INSERT INTO {TEST_TABLE_NAME} (id, name, age) VALUES (?, ?, ?)",
                    (4, "Alice", 20),
                )
        assert len(initialized_db.fetchall(f"SELECT id FROM {TEST_TABLE_NAME}")) == 2

    def test_transaction_reraises_non_database_errors(
        self, initialized_db: DatabaseManager
    ) -> None:
        with pytest.raises(RuntimeError):
            with initialized_db.transaction():
                initialized_db.execute(f"DELETE FROM {TEST_TABLE_NAME}")
                raise RuntimeError("boom")
        assert len(initialized_db.fetchall(f"SELECT id FROM {TEST_TABLE_NAME}")) == 2

    def test_nested_transaction_joins_outer(self, initialized_db: DatabaseManager) -> None:
        with initialized_db.transaction():
            with initialized_db.transaction():
                initialized_db.execute(f"DELETE FROM {TEST_TABLE_NAME} WHERE id = 1")
        assert len(initialized_db.fetchall(f"SELECT id FROM {TEST_TABLE_NAME}")) == 1


class TestErrorTranslation:
    """sqlite3 errors surface as db.exceptions types."""

    def test_missing_table(self, temp_db: DatabaseManager) -> None:
        with pytest.raises(TableNotFoundError):
            temp_db.fetchall("SELECT * FROM no_such_table")

    def test_missing_column(self, initialized_db: DatabaseManager) -> None:
        with pytest.raises(SchemaError):
            initialized_db.fetchall(f"SELECT no_such_column FROM {TEST_TABLE_NAME}")

    def test_not_null_violation(self, initialized_db: DatabaseManager) -> None:
        with pytest.raises(ConstraintError):
            initialized_db.execute(
                f"INSERT INTO {TEST_TABLE_NAME} (id, name, age) VALUES (?, ?, ?)", (5, None, 1)
            )

    def test_check_violation(self, initialized_db: DatabaseManager) -> None:
        with pytest.raises(ConstraintError):
            initialized_db.execute(
                f"INSERT INTO {TEST_TABLE_NAME} (id, name, age) VALUES (?, ?, ?)", (5, "Eve", -1)
            )

    def test_primary_key_violation_is_integrity_error(
        self, initialized_db: DatabaseManager
    ) -> None:
        with pytest.raises((IntegrityError, ConstraintError)):
            initialized_db.execute(
                f"INSERT INTO {TEST_TABLE_NAME} (id, name, age) VALUES (?, ?, ?)", (1, "Zed", 1)
            )

    def test_unsupported_parameter_type(self, initialized_db: DatabaseManager) -> None:
        with pytest.raises(DatabaseTypeError):
            initialized_db.execute(
                f"INSERT INTO {TEST_TABLE_NAME} (id, name, age) VALUES (?, ?, ?)",
                (6, object(), 1),
            )

    def test_syntax_error_is_database_error(self, temp_db: DatabaseManager) -> None:
        with pytest.raises(DatabaseError):
            temp_db.execute("SELEC 1")

    def test_all_exceptions_share_base(self) -> None:
        for exc in (
            ConstraintError,
            DatabaseTypeError,
            DBConnectionError,
            IntegrityError,
            SchemaError,
            TableNotFoundError,
        ):
            assert issubclass(exc, DatabaseError)
        assert issubclass(DatabaseTypeError, TypeError)
