"""
SQLite database integration and simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``), running a unit of work inside a write
transaction (``write_transaction``) and applying migrations on
application start (``init_db``).  SQLite is used as a durable
embedded database; its database-wide write lock is what serializes
concurrent writers on the exchange table.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .config import settings

logger = logging.getLogger(__name__)


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: exchange table
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS exchange (
            id TEXT PRIMARY KEY NOT NULL,
            keyA TEXT NOT NULL,
            keyB TEXT,
            created_at REAL NOT NULL
        );
        """,
    ),
    # Migration 2: speeds up the expiry reaper
    (
        2,
        """
        CREATE INDEX IF NOT EXISTS idx_exchange_created_at ON exchange(created_at);
        """,
    ),
]


def get_database_path(db_url: Optional[str] = None) -> str:
    """Compute the path to the SQLite database file.

    If ``db_url`` (defaulting to ``settings.database_url``) is an
    absolute path, use it directly.  Otherwise resolve it relative to
    the project root.
    """
    db_url = db_url or settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent.parent  # project root
    return str((base_dir / db_url).resolve())


def get_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    The connection runs in autocommit mode (``isolation_level=None``) so
    that transactions are opened explicitly by ``write_transaction``
    instead of implicitly by the ``sqlite3`` module.  Rows are returned
    as ``sqlite3.Row`` objects keyed by column name.
    """
    conn = sqlite3.connect(
        db_path or get_database_path(),
        timeout=settings.db_timeout_seconds,
        isolation_level=None,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def write_transaction(db_path: Optional[str] = None) -> Iterator[sqlite3.Cursor]:
    """Yield a cursor inside a ``BEGIN IMMEDIATE`` transaction.

    The reserved lock is taken before the first statement runs, so every
    read in the block already sees the state no other writer can change
    until commit.  The transaction is committed when the block exits
    normally and rolled back on any exception, which is then re-raised.
    """
    conn = get_connection(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute("BEGIN IMMEDIATE")
        try:
            yield cursor
        except BaseException:
            if conn.in_transaction:
                cursor.execute("ROLLBACK")
            raise
        cursor.execute("COMMIT")
    finally:
        conn.close()


def init_db(db_path: Optional[str] = None) -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, checks the
    current schema version, and applies any new migrations defined in
    ``MIGRATIONS``.  To change the schema, append a migration with an
    incremented version number.
    """
    path = db_path or get_database_path()
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with write_transaction(path) as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        row = cursor.execute("SELECT MAX(version) AS version FROM migrations").fetchone()
        current_version = row["version"] or 0
        for version, sql in MIGRATIONS:
            if version <= current_version:
                continue
            # executescript() would commit the open transaction, so run the
            # statements one by one.
            for statement in sql.split(";"):
                if statement.strip():
                    cursor.execute(statement)
            cursor.execute("INSERT INTO migrations (version) VALUES (?)", (version,))
            logger.info("Applied migration %s to %s", version, path)
