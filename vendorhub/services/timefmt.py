"""
Relative-time formatting for the activity feed.
"""

from datetime import datetime, timezone

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR


def as_utc(dt: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'' if n == 1 else 's'} ago"


def format_time_ago(then: datetime, now: datetime) -> str:
    """Render ``then`` relative to ``now``: "just now", "3 hours ago", "Yesterday"…

    Months are 30 days and years 365 days. Timestamps in the future
    (synthesized expiry warnings) read as "just now".
    """
    seconds = int((as_utc(now) - as_utc(then)).total_seconds())
    if seconds < MINUTE:
        return "just now"

    minutes = seconds // MINUTE
    if minutes < 60:
        return _plural(minutes, "minute")

    hours = seconds // HOUR
    if hours < 24:
        return _plural(hours, "hour")

    days = seconds // DAY
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"

    weeks = days // 7
    if weeks < 4:
        return _plural(weeks, "week")

    # 28-29 days: four weeks but not yet a 30-day month
    months = max(days // 30, 1)
    if months < 12:
        return _plural(months, "month")

    years = max(days // 365, 1)
    return _plural(years, "year")
