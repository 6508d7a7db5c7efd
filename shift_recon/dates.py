from __future__ import annotations

import datetime
import logging
from typing import Any, Optional, Tuple

logger = logging.getLogger(__name__)

UTC = datetime.timezone.utc
# Sentinel for missing or unparseable timestamps. Facts carrying it are
# bucketed under 1970-01-01; plans whose start carries it never match.
EPOCH_FALLBACK = datetime.datetime(1970, 1, 1, tzinfo=UTC)


def ensure_aware(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def parse_timestamp(value: Any) -> datetime.datetime:
    """Return an aware datetime for a feed value, or EPOCH_FALLBACK."""
    if isinstance(value, datetime.datetime):
        return ensure_aware(value)
    if isinstance(value, datetime.date):
        return datetime.datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, bool):
        return EPOCH_FALLBACK
    if isinstance(value, (int, float)):
        try:
            return EPOCH_FALLBACK + datetime.timedelta(milliseconds=value)
        except (OverflowError, ValueError):
            return EPOCH_FALLBACK
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return EPOCH_FALLBACK
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return ensure_aware(datetime.datetime.fromisoformat(text))
        except ValueError:
            logger.debug("Unparseable timestamp %r; using epoch fallback", value)
            return EPOCH_FALLBACK
    return EPOCH_FALLBACK


def is_fallback(value: Optional[datetime.datetime]) -> bool:
    return value is not None and value == EPOCH_FALLBACK


def calendar_date(value: datetime.datetime) -> datetime.date:
    """Wall-clock date of a timestamp in its own offset.

    Every stage that compares days (fact buckets, window filter, display)
    goes through this function.
    """
    return value.date()


def coerce_date(value: Any) -> datetime.date:
    """Turn a filter bound into a date; raises ValueError on bad input."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return datetime.date.fromisoformat(text)
            # Anything past the date must be a full time after a T or space.
            if len(text) > 11 and text[10] in "Tt ":
                return datetime.datetime.fromisoformat(text).date()
        except ValueError:
            pass
    raise ValueError(f"Invalid date value {value!r}; expected YYYY-MM-DD")


def default_date_range(
    today: Optional[datetime.date] = None, days: int = 7
) -> Tuple[datetime.date, datetime.date]:
    base = today or datetime.date.today()
    return base - datetime.timedelta(days=max(0, int(days))), base
