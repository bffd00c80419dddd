"""
Background deletion of abandoned exchanges.

An exchange that is never joined or never finished would otherwise
stay in the database forever.  ``reap_forever`` runs for the lifetime
of the application and periodically deletes exchanges older than the
configured time-to-live.  Reaped exchanges answer ``not_found`` like
finished ones.
"""

import asyncio
import logging
from typing import Callable

from starlette.concurrency import run_in_threadpool

from ..core.errors import ExchangeStorageError
from .exchange_service import ExchangeService


logger = logging.getLogger(__name__)


async def reap_once(service: ExchangeService, ttl_seconds: float) -> int:
    """Run one reaping pass off the event loop; return the reaped count.

    Storage failures are logged and reported as zero so the caller's
    loop keeps going.
    """
    try:
        return await run_in_threadpool(service.reap_expired, ttl_seconds)
    except ExchangeStorageError:
        logger.warning("Reaping pass failed; will retry in the next interval")
        return 0


async def reap_forever(
    get_service: Callable[[], ExchangeService],
    ttl_seconds: float,
    interval_seconds: float,
) -> None:
    """Reap expired exchanges every ``interval_seconds`` until cancelled."""
    logger.info(
        "Exchange reaper started (ttl=%ss, interval=%ss)", ttl_seconds, interval_seconds
    )
    while True:
        try:
            await reap_once(get_service(), ttl_seconds)
        except Exception:
            logger.exception("Reaping pass crashed; will retry in the next interval")
        await asyncio.sleep(interval_seconds)
