"""UTC datetime utilities."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def to_epoch_seconds(moment: datetime) -> int:
    return int(moment.timestamp())
