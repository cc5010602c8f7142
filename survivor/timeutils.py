"""UTC helpers.

Timestamps are stored as naive UTC so SQLite and Postgres compare them the
same way.
"""
from datetime import datetime, UTC
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def parse_utc(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp ("Z" suffix allowed) into naive UTC."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_naive_utc(datetime.fromisoformat(text))

