"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
service can be started locally without any setup.  In a production
deployment you should at least override ``SECRET_KEY`` and
``DATABASE_URL``.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Klefki Key Exchange")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    # Optional path of a log file.  Empty means console only.
    log_file: str = os.getenv("LOG_FILE", "")

    # Tokens are HS256 JWTs signed with ``secret_key``.  The ``aud`` claim
    # must match ``jwt_audience``; the same name is used for the cookie
    # that browsers may send instead of an Authorization header.
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
    algorithm: str = os.getenv("ALGORITHM", "HS256")
    jwt_audience: str = os.getenv("JWT_AUDIENCE", "klefki")
    auth_enabled: bool = os.getenv("AUTH_ENABLED", "true").lower() in {"1", "true", "yes"}

    # Path to the SQLite database.  Relative paths are resolved against
    # the project root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "klefki.db")
    # Seconds a writer waits for SQLite's write lock before giving up.
    db_timeout_seconds: float = float(os.getenv("DB_TIMEOUT_SECONDS", "5"))

    # Upper bound on the length of a submitted key (base64 characters).
    max_key_length: int = int(os.getenv("MAX_KEY_LENGTH", "8192"))

    # Abandoned exchanges are deleted once older than this many seconds.
    # ``0`` disables the background reaper.
    exchange_ttl_seconds: int = int(os.getenv("EXCHANGE_TTL_SECONDS", "3600"))
    reap_interval_seconds: int = int(os.getenv("REAP_INTERVAL_SECONDS", "60"))

    host: str = os.getenv("KLEFKI_HOST", "0.0.0.0")
    port: int = int(os.getenv("KLEFKI_PORT", "8000"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables must
# be set before this module is imported.
settings = Settings()
