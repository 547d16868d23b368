'''
Weekday / time-of-day arithmetic used by the materializer.
Pure functions, no I/O.
'''
from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..models.enums import Weekday
from ..common.logger import log

UTC = timezone.utc


def next_on_or_after(weekday: Weekday, time_of_day: time, reference: datetime) -> datetime:
    """
    Returns the earliest instant >= reference that falls on `weekday` at
    `time_of_day`, on the wall clock of `reference` (its tzinfo is kept).

    An exact match counts as not yet passed: Wednesday 15:00 asked for
    Wednesday 15:00 returns the reference itself, Wednesday 15:01 returns the
    following Wednesday.
    In a repeated (fall-back) hour the candidate takes the first of the two
    instants; if that one already passed, the next week is returned.
    """
    days_ahead = (int(weekday) - reference.isoweekday()) % 7
    target_date = reference.date() + timedelta(days=days_ahead)
    candidate = datetime.combine(target_date, time_of_day, tzinfo=reference.tzinfo)

    # Compare instants, not wall clocks: same-zone comparison ignores fold
    if to_utc(candidate) < to_utc(reference):
        candidate = datetime.combine(target_date + timedelta(days=7), time_of_day, tzinfo=reference.tzinfo)

    return candidate


def resolve_timezone(name: str | None) -> ZoneInfo:
    """IANA name to ZoneInfo, falling back to UTC for unknown or empty names."""
    if not name:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        log.warning(f"Invalid timezone '{name}', defaulting to UTC.")
        return ZoneInfo("UTC")


def is_valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def to_utc(value: datetime) -> datetime:
    """Normalizes to an aware UTC datetime. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_now() -> datetime:
    return datetime.now(UTC)
