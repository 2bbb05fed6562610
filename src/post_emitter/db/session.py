"""Database engine and session configuration."""

from __future__ import annotations

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from post_emitter.core.settings import Settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


SessionFactory = sessionmaker[Session]


def build_engine(settings: Settings) -> Engine:
    """Create the engine for the configured database URL.

    In-memory SQLite databases share a single connection so every session
    sees the same tables.
    """
    url = settings.database_url
    if url.startswith("sqlite"):
        kwargs: dict[str, object] = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=settings.sql_debug, **kwargs)
    return create_engine(url, pool_pre_ping=True, echo=settings.sql_debug)


def build_session_factory(engine: Engine) -> SessionFactory:
    """Return a session factory bound to ``engine``."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def create_tables(engine: Engine) -> None:
    """Create all database tables."""
    # Ensure model modules are imported so that metadata is populated.
    import post_emitter.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_tables(engine: Engine) -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=engine)
