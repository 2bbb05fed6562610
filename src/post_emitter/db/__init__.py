"""Database configuration and utilities."""

from .session import Base, SessionFactory, build_engine, build_session_factory, create_tables

__all__ = ["Base", "SessionFactory", "build_engine", "build_session_factory", "create_tables"]
