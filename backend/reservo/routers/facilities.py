from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_booking_window, get_current_actor, get_session, require_feature
from ..domain.actors import Actor
from ..domain.errors import Rejected
from ..domain.policy import BookingWindow
from ..features import Feature
from ..infrastructure.repositories import SqlAlchemyFacilityRepository, SqlAlchemyReservationRepository
from ..schemas import (
    DurationOptionsRead,
    FacilityInfo,
    FacilityList,
    FacilityRead,
    FacilityScheduleRead,
    ScheduleReservation,
    TimeSlotRead,
)
from ..usecases import facilities as facility_usecase
from ..utils.time import format_duration, to_utc_naive, utc_naive_to_aware
from .errors import http_error

router = APIRouter(
    prefix="/facilities",
    tags=["facilities"],
    dependencies=[Depends(require_feature(Feature.FACILITIES))],
)


@router.get("", response_model=FacilityList)
async def list_facilities(
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> FacilityList:
    facility_repo = SqlAlchemyFacilityRepository(session)
    facilities = await facility_usecase.list_facilities(facility_repo)
    return FacilityList(facilities=[FacilityRead.from_db(facility=f) for f in facilities])


@router.get("/{facility_id}", response_model=FacilityRead)
async def get_facility(
    facility_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> FacilityRead:
    facility_repo = SqlAlchemyFacilityRepository(session)
    result = await facility_usecase.get_facility(facility_repo, facility_id=facility_id)
    if isinstance(result, Rejected):
        raise http_error(result)
    return FacilityRead.from_db(facility=result.value)


@router.get("/{facility_id}/schedule", response_model=FacilityScheduleRead)
async def get_facility_schedule(
    facility_id: int = Path(..., ge=1),
    day: date = Query(..., alias="date", description="Calendar day (YYYY-MM-DD, UTC)"),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    window: BookingWindow = Depends(get_booking_window),
) -> FacilityScheduleRead:
    facility_repo = SqlAlchemyFacilityRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    result = await facility_usecase.get_facility_schedule(
        facility_repo,
        res_repo,
        facility_id=facility_id,
        day=day,
        window=window,
    )
    if isinstance(result, Rejected):
        raise http_error(result)
    schedule = result.value
    return FacilityScheduleRead(
        facility=FacilityInfo(id=schedule.facility.id, name=schedule.facility.name),
        date=schedule.day,
        reservations=[ScheduleReservation.from_db(reservation=r, actor_id=actor.id) for r in schedule.reservations],
        time_slots=[TimeSlotRead.from_slot(slot) for slot in schedule.time_slots],
    )


@router.get("/{facility_id}/schedule/durations", response_model=DurationOptionsRead)
async def get_duration_options(
    facility_id: int = Path(..., ge=1),
    start_time: datetime = Query(..., description="Booking start (ISO 8601 with offset)"),
    reservation_id: Optional[int] = Query(default=None, ge=1, description="Reservation being edited"),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    window: BookingWindow = Depends(get_booking_window),
) -> DurationOptionsRead:
    if start_time.tzinfo is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start_time must have timezone")
    start = to_utc_naive(start_time)
    facility_repo = SqlAlchemyFacilityRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    result = await facility_usecase.get_duration_options(
        facility_repo,
        res_repo,
        facility_id=facility_id,
        start=start,
        window=window,
        exclude_reservation_id=reservation_id,
    )
    if isinstance(result, Rejected):
        raise http_error(result)
    return DurationOptionsRead(
        facility_id=facility_id,
        start_time=utc_naive_to_aware(start),
        durations=[format_duration(m) for m in result.value],
        duration_minutes=result.value,
    )
