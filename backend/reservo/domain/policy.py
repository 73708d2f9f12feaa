from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta


@dataclass(frozen=True)
class BookingWindow:
    """Booking policy constants. All times of day are UTC."""

    opening_hour: int = 14
    closing_hour: int = 22
    slot_minutes: int = 15
    min_duration_minutes: int = 30
    max_duration_minutes: int = 180
    horizon_days: int = 7
    cutoff_hours: int = 12

    def __post_init__(self) -> None:
        if not 0 <= self.opening_hour < self.closing_hour <= 24:
            raise ValueError("opening_hour must be earlier than closing_hour")
        if self.slot_minutes <= 0:
            raise ValueError("slot_minutes must be positive")
        if not 0 < self.min_duration_minutes <= self.max_duration_minutes:
            raise ValueError("min_duration_minutes must be positive and <= max_duration_minutes")

    @property
    def cutoff(self) -> timedelta:
        return timedelta(hours=self.cutoff_hours)

    @property
    def horizon(self) -> timedelta:
        return timedelta(days=self.horizon_days)

    def opening_on(self, day: date) -> datetime:
        return datetime.combine(day, time.min) + timedelta(hours=self.opening_hour)

    def closing_on(self, day: date) -> datetime:
        # closing_hour may be 24, which lands on the next midnight
        return datetime.combine(day, time.min) + timedelta(hours=self.closing_hour)

    def slot_count(self) -> int:
        return (self.closing_hour - self.opening_hour) * 60 // self.slot_minutes


