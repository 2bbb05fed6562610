"""Persisted log sink and log queries."""

from __future__ import annotations

import json
import logging
from contextvars import ContextVar
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from post_emitter.db.session import SessionFactory
from post_emitter.db.time import days_ago
from post_emitter.models import LogEntry
from post_emitter.schemas.logs import LogEntryResponse

LOG_LEVELS = ("debug", "info", "warning", "error")

current_actor: ContextVar[int | None] = ContextVar("current_actor", default=None)
_handler_active: ContextVar[bool] = ContextVar("_handler_active", default=False)


def level_name(levelno: int) -> str:
    """Map a ``logging`` level number to a stored level name."""
    if levelno >= logging.ERROR:
        return "error"
    if levelno >= logging.WARNING:
        return "warning"
    if levelno >= logging.INFO:
        return "info"
    return "debug"


class DatabaseLogHandler(logging.Handler):
    """Logging handler that appends each record to the ``logs`` table.

    Structured data is read from ``extra={"context": {...}}`` and the actor
    from :data:`current_actor`.
    """

    def __init__(self, session_factory: SessionFactory, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._session_factory = session_factory

    def emit(self, record: logging.LogRecord) -> None:
        if _handler_active.get():
            return

        token = _handler_active.set(True)
        try:
            context: dict[str, Any] = dict(getattr(record, "context", None) or {})
            if record.exc_info:
                context.setdefault("exception", logging.Formatter().formatException(record.exc_info))
            context.setdefault("logger", record.name)

            entry = LogEntry(
                level=level_name(record.levelno),
                message=record.getMessage(),
                context=json.dumps(context, default=str),
                actor_id=current_actor.get(),
            )
            with self._session_factory() as db:
                db.add(entry)
                db.commit()
        except (SQLAlchemyError, TypeError, ValueError):
            self.handleError(record)
        finally:
            _handler_active.reset(token)


class LogStore:
    """Read and prune persisted log entries."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get_logs(self, level: str | None = None, limit: int = 50) -> list[LogEntryResponse]:
        """Return up to ``limit`` entries, newest first, optionally filtered by level."""
        stmt = select(LogEntry).order_by(LogEntry.timestamp.desc(), LogEntry.id.desc())
        if level:
            stmt = stmt.where(LogEntry.level == level.lower())
        stmt = stmt.limit(limit)

        with self._session_factory() as db:
            entries = list(db.scalars(stmt))

        return [
            LogEntryResponse(
                id=entry.id,
                level=entry.level,
                message=entry.message,
                context=_decode_context(entry.context),
                timestamp=entry.timestamp,
                actor_id=entry.actor_id,
            )
            for entry in entries
        ]

    def cleanup(self, days: int = 30) -> int:
        """Delete entries older than ``days`` days."""
        with self._session_factory() as db:
            result = db.execute(delete(LogEntry).where(LogEntry.timestamp < days_ago(days)))
            db.commit()
        return result.rowcount


def _decode_context(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        return {"raw": raw}
    return value if isinstance(value, dict) else {"value": value}
