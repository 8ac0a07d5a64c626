from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from salesdesk import config

# Shared date/time helpers. "Today" is always the company's local date.


def ensure_timezone_aware(dt: datetime) -> datetime:
    """Ensures a datetime object is timezone-aware, assuming UTC if naive."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_now(now: datetime | None = None) -> datetime:
    """Converts `now` (default: the current instant) to the company timezone."""
    now = ensure_timezone_aware(now or utcnow())
    return now.astimezone(ZoneInfo(config.APP_TIMEZONE))


def local_today(now: datetime | None = None) -> date:
    return local_now(now).date()


def first_of_month(day: date) -> date:
    return day.replace(day=1)


def add_months(day: date, months: int) -> date:
    """Returns the first day of the month `months` away from `day`'s month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def time_ago(dt: datetime) -> str:
    """Converts a datetime object to a human-readable string like '2h ago'."""
    if not dt: return "N/A"
    diff = utcnow() - ensure_timezone_aware(dt)
    seconds = diff.total_seconds()
    if seconds < 60: return "Just now"
    if seconds < 3600: return f"{int(seconds / 60)}m ago"
    if seconds < 86400: return f"{int(seconds / 3600)}h ago"
    return f"{diff.days}d ago"
