"""
Persistence for exchanges.

``ExchangeStore`` is the only component that mutates the ``exchange``
table.  Each public method is a single ``BEGIN IMMEDIATE`` transaction,
so the check-and-set of the second key and the read-and-delete of a
finished exchange cannot interleave with another caller working on the
same row, whether that caller is another thread or another process.

Domain failures are raised as the typed errors from
``core.errors``; ``sqlite3.Error`` is left to propagate so the service
layer can report it as an internal error.
"""

import logging
import time
import uuid
from typing import Optional

from ..core.db import get_connection, get_database_path, write_transaction
from ..core.errors import ExchangeNotFound, ExchangeNotReady, KeyAlreadySet
from ..core.logging_config import short_id


logger = logging.getLogger(__name__)


class ExchangeStore:
    """SQLite-backed custody of exchange rows."""

    def __init__(self, db_path: Optional[str] = None) -> None:
        self.db_path = db_path or get_database_path()

    def create(self, key_a: str, now: Optional[float] = None) -> str:
        """Insert a new exchange holding ``key_a`` and return its id.

        The id is a version 4 UUID, i.e. 122 bits from the operating
        system's CSPRNG, since holding it is enough to act on the exchange.
        """
        exchange_id = str(uuid.uuid4())
        created_at = time.time() if now is None else now
        with write_transaction(self.db_path) as cursor:
            cursor.execute(
                "INSERT INTO exchange (id, keyA, keyB, created_at) VALUES (?, ?, NULL, ?)",
                (exchange_id, key_a, created_at),
            )
        logger.debug("Stored exchange %s", short_id(exchange_id))
        return exchange_id

    def set_key_b(self, exchange_id: str, key_b: str) -> str:
        """Store ``key_b`` on an exchange that has none and return its ``keyA``.

        Raises ``ExchangeNotFound`` if the row does not exist and
        ``KeyAlreadySet`` if another caller already supplied the key.
        """
        with write_transaction(self.db_path) as cursor:
            cursor.execute(
                "UPDATE exchange SET keyB = ? WHERE id = ? AND keyB IS NULL",
                (key_b, exchange_id),
            )
            updated = cursor.rowcount
            row = cursor.execute(
                "SELECT keyA FROM exchange WHERE id = ?",
                (exchange_id,),
            ).fetchone()
            if row is None:
                raise ExchangeNotFound()
            if updated != 1:
                raise KeyAlreadySet()
            return row["keyA"]

    def take_key_b(self, exchange_id: str) -> str:
        """Return the exchange's ``keyB`` and delete the row.

        Raises ``ExchangeNotFound`` if the row does not exist (never
        created, already finished or reaped) and ``ExchangeNotReady`` if
        the second key has not been supplied yet.
        """
        with write_transaction(self.db_path) as cursor:
            row = cursor.execute(
                "SELECT keyB FROM exchange WHERE id = ?",
                (exchange_id,),
            ).fetchone()
            if row is None:
                raise ExchangeNotFound()
            if row["keyB"] is None:
                raise ExchangeNotReady()
            cursor.execute(
                "DELETE FROM exchange WHERE id = ? AND keyB IS NOT NULL",
                (exchange_id,),
            )
            return row["keyB"]

    def reap_expired(self, max_age_seconds: float, now: Optional[float] = None) -> int:
        """Delete exchanges created more than ``max_age_seconds`` ago.

        Returns the number of deleted rows.
        """
        cutoff = (time.time() if now is None else now) - max_age_seconds
        with write_transaction(self.db_path) as cursor:
            cursor.execute("DELETE FROM exchange WHERE created_at < ?", (cutoff,))
            return cursor.rowcount

    def count(self) -> int:
        """Number of live exchanges."""
        conn = get_connection(self.db_path)
        try:
            row = conn.execute("SELECT COUNT(*) AS n FROM exchange").fetchone()
            return row["n"]
        finally:
            conn.close()
