"""UTC clock used for every persisted timestamp.

Timestamps are timezone-aware UTC; SQLModel rejects naive datetimes on write.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
