"""Time helpers shared by models and services."""

from datetime import UTC, datetime, timedelta


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def days_ago(days: int) -> datetime:
    """Return the UTC instant ``days`` days before now."""
    return utcnow() - timedelta(days=days)


def seconds_from_now(seconds: float) -> datetime:
    """Return the UTC instant ``seconds`` seconds after now (negative for past)."""
    return utcnow() + timedelta(seconds=seconds)
