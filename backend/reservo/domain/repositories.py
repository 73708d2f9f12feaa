from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from ..models import Facility, Reservation, ReservationStatus


@dataclass(frozen=True)
class ReservationFilter:
    user_id: Optional[str] = None
    status: Optional[ReservationStatus] = None
    facility_id: Optional[int] = None
    starts_from: Optional[datetime] = None
    limit: int = 50
    offset: int = 0


class FacilityRepository(Protocol):
    async def get(self, facility_id: int) -> Facility | None: ...

    async def list_all(self) -> list[Facility]: ...


class ReservationRepository(Protocol):
    async def insert_reservation(
        self,
        *,
        facility_id: int,
        owner_id: str,
        start: datetime,
        duration_minutes: int,
    ) -> Reservation:
        """Insert a confirmed reservation. Raises OverlapViolation if it would overlap another."""
        ...

    async def get_reservation(self, reservation_id: int) -> Reservation | None: ...

    async def list_confirmed(
        self,
        facility_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Reservation]: ...

    async def list_reservations(self, query: ReservationFilter) -> tuple[list[Reservation], int]: ...

    async def update_duration(self, reservation: Reservation, duration_minutes: int) -> Reservation:
        """Persist a new duration. Raises OverlapViolation if it would overlap another."""
        ...

    async def set_canceled(self, reservation: Reservation, message: str | None = None) -> Reservation: ...

    async def delete(self, reservation: Reservation) -> None: ...
