"""
daywindow.py - Local calendar-day bucketing

Every "today" decision in the ledger and the quiz routes through these
functions. An instant is converted to the configured local zone first and
only then truncated to a date; UTC truncation is never used.

`tz=None` means the system local zone.
"""

from __future__ import annotations
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Tuple


def _require_aware(instant: datetime) -> None:
    if instant.tzinfo is None or instant.tzinfo.utcoffset(instant) is None:
        raise ValueError(f"Expected a timezone-aware datetime, got {instant!r}")


def to_local(instant: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convert an aware instant to the local zone (system zone if tz is None)."""
    _require_aware(instant)
    return instant.astimezone(tz)


def local_day_key(instant: datetime, tz: Optional[tzinfo] = None) -> date:
    """
    Return the local calendar day an instant falls in.

    Args:
        instant: Timezone-aware datetime
        tz: Local zone (system local zone if None)

    Returns:
        The date of local midnight at or before the instant

    Raises:
        ValueError: If the instant is naive
    """
    return to_local(instant, tz).date()


def same_day(a: datetime, b: datetime, tz: Optional[tzinfo] = None) -> bool:
    """True if both instants fall in the same local calendar day."""
    return local_day_key(a, tz) == local_day_key(b, tz)


def day_bounds(day: date, tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
    """
    Return the local midnight-to-midnight window of a day.

    The window is half-open: start <= instant < end. Both ends are aware.
    With tz=None the system zone is resolved through a naive-to-local
    conversion so daylight-saving offsets apply per boundary.
    """
    start_naive = datetime.combine(day, time.min)
    end_naive = datetime.combine(day + timedelta(days=1), time.min)
    if tz is None:
        return start_naive.astimezone(), end_naive.astimezone()
    return start_naive.replace(tzinfo=tz), end_naive.replace(tzinfo=tz)


def in_day(instant: datetime, day: date, tz: Optional[tzinfo] = None) -> bool:
    """True if the instant falls within the local window of `day`."""
    return local_day_key(instant, tz) == day


def day_string(day: date) -> str:
    """ISO representation of a day, as stored in Document.last_sign_in_date."""
    return day.isoformat()
