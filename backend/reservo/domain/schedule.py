"""Read-side schedule views: the day's slot grid and the legal duration choices."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import Iterable, Optional, Sequence

from ..models import Reservation, ReservationStatus
from .conflicts import find_conflicts
from .intervals import end_of
from .policy import BookingWindow


class TimeSlotStatus(StrEnum):
    AVAILABLE = "available"
    BOOKED = "booked"


@dataclass(frozen=True)
class TimeSlot:
    start: datetime
    end: datetime
    status: TimeSlotStatus
    reservation: Optional[Reservation] = None


def _covering(slot_start: datetime, reservations: Sequence[Reservation]) -> Optional[Reservation]:
    for reservation in reservations:
        if reservation.start_time <= slot_start < reservation.end_time:
            return reservation
    return None


def project(
    facility_id: int,
    day: date,
    reservations: Iterable[Reservation],
    *,
    window: BookingWindow,
) -> list[TimeSlot]:
    """Build the fixed slot grid for `day`, marking slots whose start a confirmed reservation covers.

    Overlapping reservations are not a valid input; if present, the first match wins.
    """
    confirmed = [
        r for r in reservations if r.facility_id == facility_id and r.status == ReservationStatus.CONFIRMED
    ]
    width = timedelta(minutes=window.slot_minutes)
    slot_start = window.opening_on(day)
    slots: list[TimeSlot] = []
    for _ in range(window.slot_count()):
        covering = _covering(slot_start, confirmed)
        slots.append(
            TimeSlot(
                start=slot_start,
                end=slot_start + width,
                status=TimeSlotStatus.BOOKED if covering is not None else TimeSlotStatus.AVAILABLE,
                reservation=covering,
            )
        )
        slot_start += width
    return slots


def legal_durations(
    candidate_start: datetime,
    facility_id: int,
    reservations: Iterable[Reservation],
    *,
    window: BookingWindow,
    closing_time: Optional[datetime] = None,
    exclude_reservation_id: Optional[int] = None,
) -> list[int]:
    """Enumerate the durations (minutes) a booking starting at `candidate_start` may take.

    Durations only grow, so enumeration stops at the first one that passes
    closing time or runs into another confirmed reservation. The result is
    advisory; admission re-validates at commit time.
    """
    closing = closing_time if closing_time is not None else window.closing_on(candidate_start.date())
    existing = list(reservations)
    durations: list[int] = []
    for duration in range(window.min_duration_minutes, window.max_duration_minutes + 1, window.slot_minutes):
        end = end_of(candidate_start, duration)
        if end > closing:
            break
        if find_conflicts(
            candidate_start,
            end,
            facility_id,
            existing,
            exclude_reservation_id=exclude_reservation_id,
        ):
            break
        durations.append(duration)
    return durations
