"""Planned-date rules for work orders. All comparisons happen in UTC."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from hull_mes.core.errors import ValidationFailedError


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(value: datetime) -> datetime:
    """Midnight UTC of the value's calendar day."""
    value = ensure_utc(value)
    return datetime.combine(value.date(), time.min, tzinfo=timezone.utc)


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string written by a version snapshot."""
    if not value:
        return None
    if len(value) == 10:
        return datetime.combine(date.fromisoformat(value), time.min, tzinfo=timezone.utc)
    return ensure_utc(datetime.fromisoformat(value))


# PUBLIC_INTERFACE
def check_start_before_finish(start: Optional[datetime], finish: Optional[datetime]) -> None:
    """Start must be strictly before finish when both are present."""
    if start is not None and finish is not None and ensure_utc(start) >= ensure_utc(finish):
        raise ValidationFailedError("Planned start date must be before planned finish date")


# PUBLIC_INTERFACE
def check_start_not_before_today(start: Optional[datetime], now: datetime) -> None:
    """Creation rule: a planned start may not lie on a past calendar day."""
    if start is not None and start_of_day(start) < start_of_day(now):
        raise ValidationFailedError("Planned start date cannot be in the past")


# PUBLIC_INTERFACE
def check_release_dates(
    start: Optional[datetime], finish: Optional[datetime], now: datetime, grace_days: int = 1
) -> None:
    """
    Release rule: both dates present, start before finish, and start no older
    than now minus the grace window. Exactly now - grace_days is accepted.
    """
    if start is None or finish is None:
        raise ValidationFailedError("Planned start and finish dates are required to release")
    check_start_before_finish(start, finish)
    earliest = ensure_utc(now) - timedelta(days=grace_days)
    if ensure_utc(start) < earliest:
        raise ValidationFailedError(
            f"Planned start date cannot be more than {grace_days} day(s) in the past",
            details={"planned_start_date": ensure_utc(start).isoformat(), "earliest_allowed": earliest.isoformat()},
        )
