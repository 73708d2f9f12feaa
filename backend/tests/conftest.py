import asyncio
from datetime import datetime, timedelta
from typing import Callable, Optional

import pytest
from reservo.domain.conflicts import find_conflicts
from reservo.domain.errors import OverlapViolation
from reservo.domain.intervals import end_of
from reservo.domain.policy import BookingWindow
from reservo.domain.repositories import ReservationFilter
from reservo.models import Facility, Reservation, ReservationStatus

# Monday 09:00 UTC; tomorrow's operating hours are 27-37 hours away.
NOW = datetime(2026, 3, 2, 9, 0)
TOMORROW = NOW.date() + timedelta(days=1)


class FakeFacilityRepo:
    def __init__(self, facilities: Optional[list[Facility]] = None) -> None:
        self.facilities = {f.id: f for f in facilities or []}

    async def get(self, facility_id: int) -> Facility | None:
        return self.facilities.get(facility_id)

    async def list_all(self) -> list[Facility]:
        return [self.facilities[k] for k in sorted(self.facilities)]


class FakeReservationRepo:
    """In-memory repository enforcing the per-facility non-overlap constraint like the database does."""

    def __init__(self, facilities: Optional[FakeFacilityRepo] = None) -> None:
        self.rows: dict[int, Reservation] = {}
        self.facilities = facilities or FakeFacilityRepo()
        self._next_id = 1
        self.deleted: list[int] = []
        self.last_query: Optional[ReservationFilter] = None

    def seed(
        self,
        *,
        start: datetime,
        duration_minutes: int = 60,
        facility_id: int = 1,
        user_id: str = "user-1",
        status: ReservationStatus = ReservationStatus.CONFIRMED,
        message: Optional[str] = None,
    ) -> Reservation:
        reservation = Reservation(
            id=self._next_id,
            facility_id=facility_id,
            user_id=user_id,
            start_time=start,
            duration_minutes=duration_minutes,
            status=status,
            cancellation_message=message,
            created_at=NOW,
            updated_at=NOW,
        )
        facility = self.facilities.facilities.get(facility_id)
        if facility is not None:
            reservation.facility = facility
        self.rows[reservation.id] = reservation
        self._next_id += 1
        return reservation

    async def insert_reservation(
        self,
        *,
        facility_id: int,
        owner_id: str,
        start: datetime,
        duration_minutes: int,
    ) -> Reservation:
        # let concurrent callers interleave before the atomic check-and-insert
        await asyncio.sleep(0)
        if find_conflicts(start, end_of(start, duration_minutes), facility_id, list(self.rows.values())):
            raise OverlapViolation("overlap")
        return self.seed(start=start, duration_minutes=duration_minutes, facility_id=facility_id, user_id=owner_id)

    async def get_reservation(self, reservation_id: int) -> Reservation | None:
        return self.rows.get(reservation_id)

    async def list_confirmed(
        self,
        facility_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Reservation]:
        rows = [
            r
            for r in self.rows.values()
            if r.facility_id == facility_id
            and r.status == ReservationStatus.CONFIRMED
            and (start is None or r.start_time >= start)
            and (end is None or r.start_time < end)
        ]
        return sorted(rows, key=lambda r: r.start_time)

    async def list_reservations(self, query: ReservationFilter) -> tuple[list[Reservation], int]:
        self.last_query = query
        rows = [
            r
            for r in self.rows.values()
            if (query.user_id is None or r.user_id == query.user_id)
            and (query.status is None or r.status == query.status)
            and (query.facility_id is None or r.facility_id == query.facility_id)
            and (query.starts_from is None or r.start_time >= query.starts_from)
        ]
        rows.sort(key=lambda r: (r.start_time, r.id))
        return rows[query.offset : query.offset + query.limit], len(rows)

    async def update_duration(self, reservation: Reservation, duration_minutes: int) -> Reservation:
        if find_conflicts(
            reservation.start_time,
            end_of(reservation.start_time, duration_minutes),
            reservation.facility_id,
            list(self.rows.values()),
            exclude_reservation_id=reservation.id,
        ):
            raise OverlapViolation("overlap")
        reservation.duration_minutes = duration_minutes
        return reservation

    async def set_canceled(self, reservation: Reservation, message: str | None = None) -> Reservation:
        reservation.status = ReservationStatus.CANCELED
        reservation.cancellation_message = message
        return reservation

    async def delete(self, reservation: Reservation) -> None:
        self.deleted.append(reservation.id)
        del self.rows[reservation.id]


class DummySession:
    """Minimal async session stub that supports `async with session.begin()`."""

    def __init__(self) -> None:
        self.rolled_back = False

    async def __aenter__(self) -> "DummySession":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> bool:
        if exc_type is not None:
            self.rolled_back = True
        return False

    def begin(self) -> "DummySession":
        return self


def at(hour: int, minute: int = 0, *, day=TOMORROW) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def window() -> BookingWindow:
    return BookingWindow()


@pytest.fixture
def facility() -> Facility:
    return Facility(id=1, name="Court A", created_at=NOW, updated_at=NOW)


@pytest.fixture
def facility_repo(facility: Facility) -> FakeFacilityRepo:
    return FakeFacilityRepo([facility, Facility(id=2, name="Court B", created_at=NOW, updated_at=NOW)])


@pytest.fixture
def res_repo(facility_repo: FakeFacilityRepo) -> FakeReservationRepo:
    return FakeReservationRepo(facility_repo)


@pytest.fixture
def tomorrow_at() -> Callable[..., datetime]:
    return at


@pytest.fixture
def dummy_session() -> DummySession:
    return DummySession()
