# =============================================================================
# File: viewsync/utils/datetime_utils.py
# Description: Datetime utilities
# =============================================================================

from datetime import datetime, timezone
from typing import Annotated, Optional

from pydantic import AfterValidator, PlainSerializer


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure datetime has UTC timezone; naive values are taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_epoch_seconds(dt: datetime) -> int:
    """Whole seconds since the epoch, as sent in push payloads."""
    return int(ensure_utc(dt).timestamp())


def to_storage_string(dt: datetime) -> str:
    """Fixed-width ISO 8601 so stored timestamps sort as strings."""
    return ensure_utc(dt).isoformat(timespec="microseconds")


# Pydantic field type: timezone-aware UTC datetime, fixed-width ISO string in JSON
UtcDatetime = Annotated[
    datetime,
    AfterValidator(ensure_utc),
    PlainSerializer(to_storage_string, return_type=str, when_used="json"),
]
