from datetime import date, datetime, timedelta, timezone


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utctoday() -> date:
    return utcnow().date()


def days_ago(days: int) -> datetime:
    return utcnow() - timedelta(days=days)


def start_of_day(value: date) -> datetime:
    return datetime(value.year, value.month, value.day)


def end_of_day(value: date) -> datetime:
    return start_of_day(value) + timedelta(days=1) - timedelta(microseconds=1)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
