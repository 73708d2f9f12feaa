from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from ..domain.conflicts import find_conflicts
from ..domain.errors import OverlapViolation
from ..domain.intervals import end_of
from ..domain.repositories import FacilityRepository, ReservationFilter, ReservationRepository
from ..models import Facility, Reservation, ReservationStatus
from ..utils.time import utc_now_naive

# A reservation ends no later than closing time on its start day.
_OVERLAP_LOOKBACK = timedelta(days=1)


def confirmed_stmt(
    facility_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
) -> Select[tuple[Reservation]]:
    """Confirmed reservations of a facility starting in [start, end), ordered by start."""
    stmt = select(Reservation).where(
        Reservation.facility_id == facility_id,
        Reservation.status == ReservationStatus.CONFIRMED,
    )
    if start is not None:
        stmt = stmt.where(Reservation.start_time >= start)
    if end is not None:
        stmt = stmt.where(Reservation.start_time < end)
    return stmt.order_by(Reservation.start_time)


class SqlAlchemyFacilityRepository(FacilityRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, facility_id: int) -> Facility | None:
        return await self.session.get(Facility, facility_id)

    async def list_all(self) -> List[Facility]:
        rows = await self.session.scalars(select(Facility).order_by(Facility.id))
        return list(rows.all())


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _lock_facility(self, facility_id: int) -> None:
        # Serializes writers per facility until the surrounding transaction ends.
        await self.session.scalar(select(Facility.id).where(Facility.id == facility_id).with_for_update())

    async def _ensure_free(
        self,
        facility_id: int,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[int] = None,
    ) -> None:
        # Locking read: sees rows committed after this transaction's snapshot
        # and refreshes instances already held by the session.
        stmt = (
            confirmed_stmt(facility_id, start - _OVERLAP_LOOKBACK, end)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        nearby = list((await self.session.scalars(stmt)).all())
        if find_conflicts(start, end, facility_id, nearby, exclude_reservation_id=exclude_reservation_id):
            raise OverlapViolation(f"facility {facility_id} already booked between {start} and {end}")

    async def insert_reservation(
        self,
        *,
        facility_id: int,
        owner_id: str,
        start: datetime,
        duration_minutes: int,
    ) -> Reservation:
        await self._lock_facility(facility_id)
        await self._ensure_free(facility_id, start, end_of(start, duration_minutes))

        now = utc_now_naive()
        reservation = Reservation(
            facility_id=facility_id,
            user_id=owner_id,
            start_time=start,
            duration_minutes=duration_minutes,
            status=ReservationStatus.CONFIRMED,
            cancellation_message=None,
            created_at=now,
            updated_at=now,
        )
        self.session.add(reservation)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise OverlapViolation(f"facility {facility_id} rejected reservation at {start}") from exc
        return reservation

    async def get_reservation(self, reservation_id: int) -> Optional[Reservation]:
        stmt = (
            select(Reservation)
            .options(joinedload(Reservation.facility))
            .where(Reservation.id == reservation_id)
        )
        return await self.session.scalar(stmt)

    async def list_confirmed(
        self,
        facility_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> List[Reservation]:
        rows = await self.session.scalars(confirmed_stmt(facility_id, start, end))
        return list(rows.all())

    async def list_reservations(self, query: ReservationFilter) -> tuple[List[Reservation], int]:
        stmt: Select[tuple[Reservation]] = select(Reservation)
        if query.user_id is not None:
            stmt = stmt.where(Reservation.user_id == query.user_id)
        if query.status is not None:
            stmt = stmt.where(Reservation.status == query.status)
        if query.facility_id is not None:
            stmt = stmt.where(Reservation.facility_id == query.facility_id)
        if query.starts_from is not None:
            stmt = stmt.where(Reservation.start_time >= query.starts_from)

        total = await self.session.scalar(select(func.count()).select_from(stmt.subquery()))
        page = (
            stmt.options(joinedload(Reservation.facility))
            .order_by(Reservation.start_time, Reservation.id)
            .offset(query.offset)
            .limit(query.limit)
        )
        rows = await self.session.scalars(page)
        return list(rows.all()), int(total or 0)

    async def update_duration(self, reservation: Reservation, duration_minutes: int) -> Reservation:
        await self._lock_facility(reservation.facility_id)
        await self._ensure_free(
            reservation.facility_id,
            reservation.start_time,
            end_of(reservation.start_time, duration_minutes),
            exclude_reservation_id=reservation.id,
        )
        reservation.duration_minutes = duration_minutes
        reservation.updated_at = utc_now_naive()
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def set_canceled(self, reservation: Reservation, message: str | None = None) -> Reservation:
        reservation.status = ReservationStatus.CANCELED
        reservation.cancellation_message = message
        reservation.updated_at = utc_now_naive()
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def delete(self, reservation: Reservation) -> None:
        await self.session.delete(reservation)
        await self.session.flush()
