"""
Main entrypoint for the Mixer Rental API.

This module assembles the FastAPI application: logging, exception
handlers and the two route groups (``/api/admin`` for the back office,
``/api/customer`` for the public website).  The ``create_app`` function
builds and configures the app, which is then instantiated at module
import time as ``app``, e.g.::

    uvicorn mixer_rental_api.app.main:app --reload
"""

import logging

from fastapi import FastAPI

from .core.config import settings
from .core.db import init_db
from .core.errors import register_exception_handlers
from .core.logging_config import setup_logging
from .api.router import admin_router, customer_router


logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    setup_logging(settings.log_level, settings.log_file or None)

    app = FastAPI(title=settings.project_name, version=settings.api_version)
    register_exception_handlers(app)

    app.include_router(admin_router, prefix="/api/admin")
    app.include_router(customer_router, prefix="/api/customer")

    @app.on_event("startup")
    async def startup_event() -> None:
        # Create the database file if needed and apply pending migrations.
        init_db()
        logger.info("%s started (%s)", settings.project_name, settings.environment)

    return app


app = create_app()
