from datetime import date, datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Union[datetime, date, None]) -> Optional[datetime]:
    """
    Normalize a date/datetime read from the database to an aware UTC datetime.

    SQLite drops tzinfo on DateTime(timezone=True) columns and plain dates
    come back without a time part; both are treated as UTC.
    """
    if value is None:
        return None

    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, datetime.min.time(), tzinfo=timezone.utc)

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)

    return value.astimezone(timezone.utc)
