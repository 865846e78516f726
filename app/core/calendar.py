from datetime import date, datetime, timedelta, timezone
import math

DAY = timedelta(days=1)


def utcnow() -> datetime:
    # naive UTC, matching how timestamps are stored
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def iso_week_number(day: date) -> int:
    return day.isocalendar()[1]


def days_remaining(due: datetime, now: datetime) -> int:
    """Whole days until `due`, partial days rounded up.

    Past deadlines round away from zero, so anything past due is at least one
    day overdue.
    """
    delta = (due - now) / DAY
    if delta >= 0:
        return math.ceil(delta)
    return math.floor(delta)
