"""
Logging for the exchange service.

Configured once from ``LOG_LEVEL`` and ``LOG_FILE`` when the app is
created.  Exchange ids are bearer capabilities, so log lines name an
exchange through ``short_id`` and key material is never logged.
"""

import logging
from pathlib import Path
from typing import Optional


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Attach console and optional file handlers to the root logger.

    Does nothing if the root logger already has handlers, as when
    uvicorn configured it first.  Unknown level names fall back to INFO.
    """
    logger = logging.getLogger()
    if logger.handlers:
        return

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if logfile:
        log_path = Path(logfile).resolve()
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def short_id(exchange_id: str) -> str:
    """Return a log-safe prefix of an exchange id.

    The full id is a bearer capability and must not end up in logs.
    """
    return exchange_id[:8]
