"""Detect scheduling conflicts between a candidate interval and existing reservations."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from ..models import Reservation, ReservationStatus
from .intervals import overlaps


def find_conflicts(
    candidate_start: datetime,
    candidate_end: datetime,
    facility_id: int,
    reservations: Iterable[Reservation],
    *,
    exclude_reservation_id: Optional[int] = None,
) -> list[Reservation]:
    """Return confirmed reservations on `facility_id` overlapping [candidate_start, candidate_end).

    The reservation being edited can be left out with `exclude_reservation_id`.
    """
    return [
        reservation
        for reservation in reservations
        if reservation.facility_id == facility_id
        and reservation.status == ReservationStatus.CONFIRMED
        and reservation.id != exclude_reservation_id
        and overlaps(candidate_start, candidate_end, reservation.start_time, reservation.end_time)
    ]
