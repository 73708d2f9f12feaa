"""Booking rules for candidate reservations.

Each rule returns a ValidationError, or None when the rule passes. Rules are
independent; the order below is the order in which failures are reported.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .errors import ValidationError, ValidationErrorKind
from .intervals import end_of
from .policy import BookingWindow


@dataclass(frozen=True)
class ReservationCandidate:
    facility_id: int
    start: datetime
    duration_minutes: int


def _fmt_clock(hour: int) -> str:
    return f"{hour:02d}:00"


def _fmt_minutes(minutes: int) -> str:
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour{'s' if hours != 1 else ''}"
    return f"{minutes} minutes"


def check_start_in_future(start: datetime, now: datetime) -> Optional[ValidationError]:
    if start <= now:
        return ValidationError(
            ValidationErrorKind.START_IN_PAST,
            "Reservation start time must be in the future",
        )
    return None


def check_within_horizon(start: datetime, now: datetime, window: BookingWindow) -> Optional[ValidationError]:
    if start > now + window.horizon:
        return ValidationError(
            ValidationErrorKind.BEYOND_HORIZON,
            f"Reservation must be made within {window.horizon_days} days from now",
        )
    return None


def check_operating_hours(start: datetime, window: BookingWindow) -> Optional[ValidationError]:
    day = start.date()
    if not window.opening_on(day) <= start <= window.closing_on(day):
        return ValidationError(
            ValidationErrorKind.OUTSIDE_OPERATING_HOURS,
            "Reservation start time must be between "
            f"{_fmt_clock(window.opening_hour)} and {_fmt_clock(window.closing_hour)}",
        )
    return None


def check_start_alignment(start: datetime, window: BookingWindow) -> Optional[ValidationError]:
    minute_of_day = start.hour * 60 + start.minute
    if minute_of_day % window.slot_minutes != 0 or start.second != 0 or start.microsecond != 0:
        return ValidationError(
            ValidationErrorKind.START_NOT_ALIGNED,
            f"Reservation start time must be on {window.slot_minutes}-minute intervals (e.g., 14:00, 14:15, 14:30)",
        )
    return None


def check_duration_range(duration_minutes: int, window: BookingWindow) -> Optional[ValidationError]:
    if not window.min_duration_minutes <= duration_minutes <= window.max_duration_minutes:
        return ValidationError(
            ValidationErrorKind.DURATION_OUT_OF_RANGE,
            "Reservation duration must be between "
            f"{_fmt_minutes(window.min_duration_minutes)} and {_fmt_minutes(window.max_duration_minutes)}",
        )
    return None


def check_duration_alignment(duration_minutes: int, window: BookingWindow) -> Optional[ValidationError]:
    if duration_minutes % window.slot_minutes != 0:
        return ValidationError(
            ValidationErrorKind.DURATION_NOT_ALIGNED,
            f"Reservation duration must be in {window.slot_minutes}-minute increments "
            "(e.g., 00:30:00, 00:45:00, 01:00:00)",
        )
    return None


def check_end_before_closing(
    start: datetime, duration_minutes: int, window: BookingWindow
) -> Optional[ValidationError]:
    if end_of(start, duration_minutes) > window.closing_on(start.date()):
        return ValidationError(
            ValidationErrorKind.END_AFTER_CLOSING,
            f"Reservation end time must not exceed {_fmt_clock(window.closing_hour)}",
        )
    return None


def _first_failure(checks: list[Callable[[], Optional[ValidationError]]]) -> Optional[ValidationError]:
    for check in checks:
        error = check()
        if error is not None:
            return error
    return None


def validate_candidate(
    candidate: ReservationCandidate,
    *,
    now: datetime,
    window: BookingWindow,
) -> Optional[ValidationError]:
    """Validate a new reservation; returns the first failing rule or None."""
    start = candidate.start
    duration = candidate.duration_minutes
    return _first_failure(
        [
            lambda: check_start_in_future(start, now),
            lambda: check_within_horizon(start, now, window),
            lambda: check_operating_hours(start, window),
            lambda: check_start_alignment(start, window),
            lambda: check_duration_range(duration, window),
            lambda: check_duration_alignment(duration, window),
            lambda: check_end_before_closing(start, duration, window),
        ]
    )


def validate_duration_change(
    start: datetime,
    duration_minutes: int,
    *,
    window: BookingWindow,
) -> Optional[ValidationError]:
    """Validate a new duration against an existing start; start rules are not re-applied."""
    return _first_failure(
        [
            lambda: check_duration_range(duration_minutes, window),
            lambda: check_duration_alignment(duration_minutes, window),
            lambda: check_end_before_closing(start, duration_minutes, window),
        ]
    )


def is_before_cutoff(start: datetime, *, now: datetime, window: BookingWindow) -> bool:
    """True when `now` is strictly more than the cutoff before `start`."""
    return start - now > window.cutoff
