"""
Calendar helpers. Date keys are zone-less YYYY-MM-DD labels; only
date_key_in_time_zone knows about time zones.
"""

import logging
import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger("ascendia")

_OFFSET_RE = re.compile(r"^(?:UTC|GMT)?\s*([+-])(\d{1,2})(?::?(\d{2}))?$", re.IGNORECASE)


def _parse_offset(tz: str) -> Optional[tzinfo]:
    """Accept fixed offsets such as "+05:30", "UTC-3" or "GMT+0100"."""
    match = _OFFSET_RE.match(tz.strip())
    if not match:
        return None
    sign, hours, minutes = match.groups()
    delta = timedelta(hours=int(hours), minutes=int(minutes or 0))
    if delta >= timedelta(hours=24):
        return None
    return timezone(-delta if sign == "-" else delta)


def _resolve_zone(tz: Optional[str]) -> Optional[tzinfo]:
    if not tz:
        return None
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        # OSError: region directories such as "America" are not zones.
        return _parse_offset(tz)


def is_valid_time_zone(tz: str) -> bool:
    return _resolve_zone(tz) is not None


def date_key_in_time_zone(instant: datetime, tz: Optional[str]) -> str:
    """
    Calendar date of `instant` as seen in `tz`.

    Falls back from an IANA zone to a fixed UTC offset and finally to the UTC
    date when the zone cannot be resolved. Naive instants are taken as UTC.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)

    zone = _resolve_zone(tz)
    if zone is None:
        logger.warning("timezone_unresolved", extra={"timezone": tz})
        zone = timezone.utc
    return instant.astimezone(zone).date().isoformat()


def parse_date_key(date_key: str) -> date:
    return date.fromisoformat(date_key)


def diff_days(a: str, b: str) -> int:
    """Whole days from `b` to `a` (positive when `a` is later)."""
    return (parse_date_key(a) - parse_date_key(b)).days


def add_days(date_key: str, days: int) -> str:
    return (parse_date_key(date_key) + timedelta(days=days)).isoformat()


def recent_date_keys(today_key: str, count: int = 7) -> List[str]:
    """`today_key` followed by the previous `count - 1` days, newest first."""
    return [add_days(today_key, -offset) for offset in range(count)]
