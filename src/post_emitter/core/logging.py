"""Logging configuration for the Post Emitter service."""

from __future__ import annotations

import logging

from post_emitter.core.settings import Settings
from post_emitter.db.session import SessionFactory
from post_emitter.services.logs import DatabaseLogHandler

ROOT_LOGGER = "post_emitter"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings, session_factory: SessionFactory) -> DatabaseLogHandler:
    """Attach the console and database handlers to the package logger.

    Calling this again replaces the database handler installed by a previous
    call, so each application context writes to its own database.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel("DEBUG" if settings.debug else settings.log_level)

    for handler in list(logger.handlers):
        if isinstance(handler, DatabaseLogHandler):
            logger.removeHandler(handler)
            handler.close()

    if not any(isinstance(handler, logging.StreamHandler) for handler in logger.handlers):
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console)

    db_handler = DatabaseLogHandler(session_factory)
    logger.addHandler(db_handler)
    return db_handler
