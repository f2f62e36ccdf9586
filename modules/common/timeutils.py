# modules/common/timeutils.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC now, matching how instants are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(dt: datetime) -> datetime:
    """Aware datetimes are converted to UTC; naive ones are taken as UTC already."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)
