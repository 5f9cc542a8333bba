"""Entry point for running the Mixer Rental API.

Intended to be executed from the project root, for example under
Docker or a process manager where only a single Python file is given.
Configuration is read from environment variables (see
``mixer_rental_api/app/core/config.py``).

Usage:
    python run.py
"""
import asyncio
import os

from uvicorn import Config, Server

from mixer_rental_api.app.core.config import settings
from mixer_rental_api.app.main import app


async def main() -> None:
    """Serve the API with Uvicorn.

    Host and port are read from ``API_HOST`` and ``API_PORT``.  Defaults
    are ``0.0.0.0`` and ``5000``.
    """
    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "5000"))
    config = Config(app=app, host=host, port=port, reload=False, log_level=settings.log_level.lower())
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
