"""Entry point for serving the exchange API.

Starts the FastAPI application with Uvicorn.  Host and port are read
from ``KLEFKI_HOST`` and ``KLEFKI_PORT`` (defaults ``0.0.0.0`` and
``8000``); all other configuration comes from the environment as
described in ``klefki.app.core.config``.

Usage:
    python run.py
"""
import asyncio

from uvicorn import Config, Server

from klefki.app.core.config import settings
from klefki.app.main import app


async def main() -> None:
    """Serve the API until interrupted."""
    config = Config(
        app=app,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
