"""
Timezone utilities.

All instants are stored as naive UTC datetimes. Calendar dates ("today",
a game's date, analytics ranges) are always taken in the configured
reporting time zone (settings.REPORTING_TIMEZONE, Eastern Time by default),
never in the server's or the caller's local zone. A 10:05 PM ET first pitch
is therefore a game of that ET date even though it starts after midnight UTC.
"""
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings
from app.core.exceptions import ValidationError


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError as e:
        raise ValueError(f"Unknown reporting time zone: {name}") from e


def get_reporting_zone(name: Optional[str] = None) -> ZoneInfo:
    """The fixed zone used for calendar-date boundaries."""
    return _zone(name or settings.REPORTING_TIMEZONE)


def utc_now() -> datetime:
    """Current instant, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def to_utc_naive(value: datetime) -> datetime:
    """
    Normalize a datetime for storage.

    Aware values are converted to UTC; naive values are taken to be UTC
    already.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a stored naive datetime (aware values are converted)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def reporting_date(instant: datetime, zone: Optional[ZoneInfo] = None) -> date:
    """
    Calendar date of an instant in the reporting zone.

    Example:
        >>> reporting_date(datetime(2025, 6, 2, 2, 5))  # 10:05 PM EDT on June 1
        datetime.date(2025, 6, 1)
    """
    zone = zone or get_reporting_zone()
    return as_utc(instant).astimezone(zone).date()


def reporting_today(now: Optional[datetime] = None, zone: Optional[ZoneInfo] = None) -> date:
    """Today's date in the reporting zone, independent of the local clock's zone."""
    return reporting_date(now if now is not None else utc_now(), zone)


def parse_iso_date(value: Optional[str], field: str = "date") -> date:
    """
    Parse a YYYY-MM-DD calendar date.

    Raises:
        ValidationError: value missing or not an ISO calendar date
    """
    if value is None or not str(value).strip():
        raise ValidationError(f"'{field}' is required (YYYY-MM-DD)", {"field": field})
    text = str(value).strip()
    try:
        if len(text) != 10:
            raise ValueError(text)
        return date.fromisoformat(text)
    except ValueError:
        raise ValidationError(
            f"'{field}' must be an ISO calendar date (YYYY-MM-DD), got '{text}'",
            {"field": field, "value": text},
        )
