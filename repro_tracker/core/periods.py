from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from repro_tracker.core.errors import ValidationError

PERIODS = ("today", "week", "month")
DEFAULT_PERIOD = "month"


def utc_now() -> datetime:
    """Naive UTC, the form timestamps are stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def resolve_period(name: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """
    Named shorthand -> half-open [from, to) window in naive UTC.

    today: current day
    week:  Monday 00:00 to the following Monday
    month: first of the month to the first of the next month
    """
    now = to_naive_utc(now) or utc_now()
    today = _start_of_day(now)

    if name == "today":
        return today, today + timedelta(days=1)

    if name == "week":
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=7)

    if name == "month":
        start = today.replace(day=1)
        if start.month == 12:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
        return start, end

    raise ValidationError(f"Unknown period: {name}")


def resolve_window(
    period: Optional[str] = None,
    from_: Optional[datetime] = None,
    to: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    if from_ is not None or to is not None:
        if from_ is None or to is None:
            raise ValidationError("Both 'from' and 'to' are required for a custom range")
        window_from = to_naive_utc(from_)
        window_to = to_naive_utc(to)
        if window_from >= window_to:
            raise ValidationError("'from' must be before 'to'")
        return window_from, window_to

    return resolve_period(period or DEFAULT_PERIOD, now=now)
