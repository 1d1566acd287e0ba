"""DuckDB session management and table initialization."""

from __future__ import annotations

import duckdb

from journal.config import settings
from journal.utils.logger import logger

_connection: duckdb.DuckDBPyConnection | None = None


def get_db() -> duckdb.DuckDBPyConnection:
    """Return the singleton DuckDB connection, creating tables on first call."""
    global _connection  # noqa: PLW0603
    if _connection is None:
        db_path = str(settings.DB_PATH)
        logger.info("Opening DuckDB at %s", db_path)
        settings.DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        _connection = duckdb.connect(db_path)
        _init_tables(_connection)
    return _connection


def close_db() -> None:
    """Close the singleton connection (next get_db() reopens at settings.DB_PATH)."""
    global _connection  # noqa: PLW0603
    if _connection is not None:
        _connection.close()
        _connection = None


def _init_tables(conn: duckdb.DuckDBPyConnection) -> None:
    """Create tables if they don't exist."""
    # One JSON document per fixed key, mirroring browser-origin storage
    conn.execute("""
        CREATE TABLE IF NOT EXISTS kv_store (
            key         VARCHAR PRIMARY KEY,
            value       VARCHAR NOT NULL,
            updated_at  TIMESTAMP NOT NULL
        );
    """)
