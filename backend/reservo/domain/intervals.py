"""Half-open interval helpers shared by validation, conflicts and the schedule."""

from datetime import datetime, timedelta


def end_of(start: datetime, duration_minutes: int) -> datetime:
    return start + timedelta(minutes=duration_minutes)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Return True when [a_start, a_end) and [b_start, b_end) share any instant.

    Touching boundaries (10:00-11:00 and 11:00-12:00) do not overlap.
    """
    return a_start < b_end and b_start < a_end
