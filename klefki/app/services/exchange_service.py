"""
Business logic for the two-party key exchange.

An exchange lets Alice and Bob swap public keys through this service
without ever being connected to each other::

    Alice                          service                          Bob
      | initiate(keyA) -----------> id                                |
      |   (Alice hands the id to Bob out of band)                     |
      |                            keyA <--------------- join(id, keyB)|
      | finish(id) ---------------> keyB, exchange deleted            |

Each party then derives the shared secret locally; the service never
sees it.  The states of an exchange are ``AwaitingB`` (created),
``Ready`` (``keyB`` stored) and ``Closed`` (row deleted).  Closed
exchanges are indistinguishable from ones that never existed.

The service keeps no state of its own.  All mutual exclusion happens
inside the store's transactions, so any number of requests may run
concurrently, including requests against the same exchange.
"""

import logging
import sqlite3
import threading
from typing import Optional

from ..core.db import get_database_path, init_db
from ..core.errors import ExchangeStorageError
from ..core.logging_config import short_id
from .exchange_store import ExchangeStore


logger = logging.getLogger(__name__)


class ExchangeService:
    """Service implementing initiate, join and finish on top of a store."""

    def __init__(self, store: ExchangeStore) -> None:
        self.store = store

    def initiate(self, key_a: str) -> str:
        """Start an exchange with the first party's key and return its id."""
        try:
            exchange_id = self.store.create(key_a)
        except sqlite3.Error as e:
            logger.exception("Failed to create exchange: %s", e)
            raise ExchangeStorageError() from e
        logger.info("Initiated exchange %s", short_id(exchange_id))
        return exchange_id

    def join(self, exchange_id: str, key_b: str) -> str:
        """Attach the second party's key and return the first party's key.

        Valid only while the exchange awaits ``keyB``.  Raises
        ``ExchangeNotFound`` or ``KeyAlreadySet`` otherwise.
        """
        try:
            key_a = self.store.set_key_b(exchange_id, key_b)
        except sqlite3.Error as e:
            logger.exception("Failed to join exchange %s: %s", short_id(exchange_id), e)
            raise ExchangeStorageError() from e
        logger.info("Exchange %s joined", short_id(exchange_id))
        return key_a

    def finish(self, exchange_id: str) -> str:
        """Hand the second party's key to the first party and close the exchange.

        Raises ``ExchangeNotReady`` while the exchange still awaits
        ``keyB`` and ``ExchangeNotFound`` for unknown or closed ids.
        """
        try:
            key_b = self.store.take_key_b(exchange_id)
        except sqlite3.Error as e:
            logger.exception("Failed to finish exchange %s: %s", short_id(exchange_id), e)
            raise ExchangeStorageError() from e
        logger.info("Exchange %s finished and deleted", short_id(exchange_id))
        return key_b

    def reap_expired(self, max_age_seconds: float) -> int:
        """Delete abandoned exchanges older than ``max_age_seconds``."""
        try:
            reaped = self.store.reap_expired(max_age_seconds)
        except sqlite3.Error as e:
            logger.exception("Failed to reap expired exchanges: %s", e)
            raise ExchangeStorageError() from e
        if reaped:
            logger.info("Reaped %s expired exchanges", reaped)
        return reaped


# Process-wide service over the configured database, created on first use.
_service: Optional[ExchangeService] = None
_service_lock = threading.Lock()


def get_exchange_service() -> ExchangeService:
    """FastAPI dependency returning the process-wide ``ExchangeService``.

    The database is migrated the first time the service is created.
    Tests replace this dependency through ``app.dependency_overrides``.
    """
    global _service
    with _service_lock:
        if _service is None:
            db_path = get_database_path()
            try:
                init_db(db_path)
            except sqlite3.Error as e:
                logger.exception("Failed to initialise exchange database: %s", e)
                raise ExchangeStorageError() from e
            _service = ExchangeService(ExchangeStore(db_path))
        return _service
