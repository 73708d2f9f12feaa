import re
from datetime import date, datetime, time, timedelta, timezone

_DURATION_RE = re.compile(r"^(\d{2}):([0-5]\d):([0-5]\d)$")


def to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def utc_naive_to_aware(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc)


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Naive UTC [start, end) of a calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def parse_duration(value: str) -> tuple[int, int]:
    """Parse "HH:MM:SS" into (minutes, leftover seconds)."""
    match = _DURATION_RE.match(value)
    if match is None:
        raise ValueError("Duration must be in HH:MM:SS format (e.g., '01:30:00')")
    hours, minutes, seconds = (int(part) for part in match.groups())
    return hours * 60 + minutes, seconds


def format_duration(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}:00"
