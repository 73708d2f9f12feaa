from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..domain.errors import Admitted, ErrorKind, Outcome, Rejected
from ..domain.policy import BookingWindow
from ..domain.repositories import FacilityRepository, ReservationRepository
from ..domain.schedule import TimeSlot, legal_durations, project
from ..models import Facility, Reservation
from ..utils.time import day_bounds

FACILITY_NOT_FOUND = "Facility not found"


@dataclass(frozen=True)
class FacilitySchedule:
    facility: Facility
    day: date
    reservations: list[Reservation]
    time_slots: list[TimeSlot]


async def list_facilities(facility_repo: FacilityRepository) -> list[Facility]:
    return await facility_repo.list_all()


async def get_facility(facility_repo: FacilityRepository, *, facility_id: int) -> Outcome[Facility]:
    facility = await facility_repo.get(facility_id)
    if facility is None:
        return Rejected.of(ErrorKind.NOT_FOUND, FACILITY_NOT_FOUND)
    return Admitted(facility)


async def get_facility_schedule(
    facility_repo: FacilityRepository,
    res_repo: ReservationRepository,
    *,
    facility_id: int,
    day: date,
    window: BookingWindow,
) -> Outcome[FacilitySchedule]:
    """Confirmed reservations starting on `day` and the slot grid projected from them.

    Recomputed on every call; nothing is cached between requests.
    """
    facility = await facility_repo.get(facility_id)
    if facility is None:
        return Rejected.of(ErrorKind.NOT_FOUND, FACILITY_NOT_FOUND)

    start, end = day_bounds(day)
    reservations = await res_repo.list_confirmed(facility_id, start, end)
    return Admitted(
        FacilitySchedule(
            facility=facility,
            day=day,
            reservations=reservations,
            time_slots=project(facility_id, day, reservations, window=window),
        )
    )


async def get_duration_options(
    facility_repo: FacilityRepository,
    res_repo: ReservationRepository,
    *,
    facility_id: int,
    start: datetime,
    window: BookingWindow,
    exclude_reservation_id: Optional[int] = None,
) -> Outcome[list[int]]:
    if await facility_repo.get(facility_id) is None:
        return Rejected.of(ErrorKind.NOT_FOUND, FACILITY_NOT_FOUND)

    day_start, day_end = day_bounds(start.date())
    reservations = await res_repo.list_confirmed(facility_id, day_start, day_end)
    return Admitted(
        legal_durations(
            start,
            facility_id,
            reservations,
            window=window,
            exclude_reservation_id=exclude_reservation_id,
        )
    )
