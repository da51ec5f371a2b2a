from datetime import datetime, timezone


def utcnow() -> datetime:
    """Server-side 'now' in UTC."""
    return datetime.now(timezone.utc)


def short_date(dt: datetime | None = None) -> str:
    """Date stamp used in appended note blocks, e.g. ``2026-01-31``."""
    return (dt or utcnow()).strftime("%Y-%m-%d")
