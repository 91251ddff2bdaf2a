"""
Wall-clock slot arithmetic.

Game prices change on fixed UTC half-hour boundaries (:00 and :30). A
"slot" is one such 30-minute period, identified by its start time and
the game's day number. Checks are scheduled one minute after each
boundary (:01 and :31) so the upstream has time to roll prices over.
"""

from datetime import datetime, timedelta, timezone

from .config import BOUNDARY_OFFSET_MINUTES, CHECK_INTERVAL_MINUTES


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _as_utc(moment: datetime) -> datetime:
    # Naive datetimes are taken to already be UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def current_slot_time(now: datetime) -> str:
    """Round the UTC time down to its half-hour slot, e.g. 14:47 -> "14:30"."""
    now = _as_utc(now)
    minute = 0 if now.minute < CHECK_INTERVAL_MINUTES else CHECK_INTERVAL_MINUTES
    return f"{now.hour:02d}:{minute:02d}"


def slot_key(time: str, day: int) -> str:
    """Stable identity of a price slot across fetches."""
    return f"{time}-d{day}"


def next_boundary(now: datetime) -> datetime:
    """
    Next UTC instant at minute :01 or :31, strictly after ``now``.

    Minute 0 targets this hour's :01, minutes 1-30 target :31, and
    minutes 31-59 target :01 of the following hour.
    """
    now = _as_utc(now)
    hour_start = now.replace(minute=0, second=0, microsecond=0)
    first = BOUNDARY_OFFSET_MINUTES
    second = CHECK_INTERVAL_MINUTES + BOUNDARY_OFFSET_MINUTES

    if now.minute < first:
        return hour_start + timedelta(minutes=first)
    if now.minute < second:
        return hour_start + timedelta(minutes=second)
    return hour_start + timedelta(hours=1, minutes=first)


def seconds_until(target: datetime, now: datetime) -> float:
    """Non-negative number of seconds from ``now`` until ``target``."""
    return max(0.0, (_as_utc(target) - _as_utc(now)).total_seconds())
