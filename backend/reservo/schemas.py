from datetime import date, datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from .domain.schedule import TimeSlot, TimeSlotStatus
from .models import Facility, Reservation, ReservationStatus
from .utils.time import format_duration, parse_duration, utc_naive_to_aware


def _validate_duration(value: str) -> str:
    _, seconds = parse_duration(value)
    if seconds != 0:
        raise ValueError(
            "Reservation duration must be in 15-minute increments (e.g., 00:30:00, 00:45:00, 01:00:00)"
        )
    return value


def _iso_utc(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat()


class ErrorResponse(BaseModel):
    error: str
    message: str


class FacilityInfo(BaseModel):
    id: int
    name: str


class FacilityRead(BaseModel):
    id: int
    name: str
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _ser_datetime(self, dt: datetime) -> str:
        return _iso_utc(dt)

    @classmethod
    def from_db(cls, *, facility: Facility) -> "FacilityRead":
        return cls(
            id=facility.id,
            name=facility.name,
            created_at=utc_naive_to_aware(facility.created_at),
            updated_at=utc_naive_to_aware(facility.updated_at),
        )


class FacilityList(BaseModel):
    facilities: list[FacilityRead]


class ScheduleReservation(BaseModel):
    id: int
    start_time: datetime
    duration: str
    end_time: datetime
    status: ReservationStatus
    is_own: bool = False

    @field_serializer("start_time", "end_time")
    def _ser_datetime(self, dt: datetime) -> str:
        return _iso_utc(dt)

    @classmethod
    def from_db(cls, *, reservation: Reservation, actor_id: str) -> "ScheduleReservation":
        return cls(
            id=reservation.id,
            start_time=utc_naive_to_aware(reservation.start_time),
            duration=format_duration(reservation.duration_minutes),
            end_time=utc_naive_to_aware(reservation.end_time),
            status=reservation.status,
            is_own=reservation.user_id == actor_id,
        )


class TimeSlotRead(BaseModel):
    start_time: datetime
    end_time: datetime
    status: TimeSlotStatus
    reservation_id: Optional[int] = None

    @field_serializer("start_time", "end_time")
    def _ser_datetime(self, dt: datetime) -> str:
        return _iso_utc(dt)

    @classmethod
    def from_slot(cls, slot: TimeSlot) -> "TimeSlotRead":
        return cls(
            start_time=utc_naive_to_aware(slot.start),
            end_time=utc_naive_to_aware(slot.end),
            status=slot.status,
            reservation_id=slot.reservation.id if slot.reservation is not None else None,
        )


class FacilityScheduleRead(BaseModel):
    facility: FacilityInfo
    date: date
    reservations: list[ScheduleReservation]
    time_slots: list[TimeSlotRead]


class DurationOptionsRead(BaseModel):
    facility_id: int
    start_time: datetime
    durations: list[str]
    duration_minutes: list[int]

    @field_serializer("start_time")
    def _ser_datetime(self, dt: datetime) -> str:
        return _iso_utc(dt)


class ReservationCreate(BaseModel):
    facility_id: int = Field(gt=0)
    start_time: datetime
    duration: str

    @field_validator("start_time")
    @classmethod
    def _require_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("Start time must be a valid ISO 8601 datetime with a timezone offset")
        return value

    @field_validator("duration")
    @classmethod
    def _check_duration(cls, value: str) -> str:
        return _validate_duration(value)

    @property
    def duration_minutes(self) -> int:
        return parse_duration(self.duration)[0]


class ReservationUpdate(BaseModel):
    duration: Optional[str] = None
    status: Optional[Literal["canceled"]] = None
    cancellation_message: Optional[str] = Field(
        default=None,
        max_length=500,
    )

    @field_validator("duration")
    @classmethod
    def _check_duration(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _validate_duration(value)

    @model_validator(mode="after")
    def _one_operation(self) -> "ReservationUpdate":
        if self.duration is None and self.status is None:
            if self.cancellation_message is not None:
                raise ValueError("cancellation_message can only be sent with status 'canceled'")
            raise ValueError("At least one field must be provided")
        if self.duration is not None and (self.status is not None or self.cancellation_message is not None):
            raise ValueError("Provide either a new duration or a cancellation, not both")
        return self

    @property
    def duration_minutes(self) -> Optional[int]:
        return None if self.duration is None else parse_duration(self.duration)[0]


class ReservationRead(BaseModel):
    id: int
    facility_id: int
    start_time: datetime
    duration: str
    end_time: datetime
    status: ReservationStatus
    cancellation_message: Optional[str]
    created_at: datetime
    updated_at: datetime

    @field_serializer("start_time", "end_time", "created_at", "updated_at")
    def _ser_datetime(self, dt: datetime) -> str:
        return _iso_utc(dt)

    @classmethod
    def from_db(cls, *, reservation: Reservation) -> "ReservationRead":
        return cls(
            id=reservation.id,
            facility_id=reservation.facility_id,
            start_time=utc_naive_to_aware(reservation.start_time),
            duration=format_duration(reservation.duration_minutes),
            end_time=utc_naive_to_aware(reservation.end_time),
            status=reservation.status,
            cancellation_message=reservation.cancellation_message,
            created_at=utc_naive_to_aware(reservation.created_at),
            updated_at=utc_naive_to_aware(reservation.updated_at),
        )


class ReservationDetail(BaseModel):
    id: int
    facility: FacilityInfo
    start_time: datetime
    duration: str
    end_time: datetime
    status: ReservationStatus
    cancellation_message: Optional[str]
    created_at: datetime
    updated_at: datetime

    @field_serializer("start_time", "end_time", "created_at", "updated_at")
    def _ser_datetime(self, dt: datetime) -> str:
        return _iso_utc(dt)

    @classmethod
    def from_db(cls, *, reservation: Reservation) -> "ReservationDetail":
        return cls(
            id=reservation.id,
            facility=FacilityInfo(id=reservation.facility.id, name=reservation.facility.name),
            start_time=utc_naive_to_aware(reservation.start_time),
            duration=format_duration(reservation.duration_minutes),
            end_time=utc_naive_to_aware(reservation.end_time),
            status=reservation.status,
            cancellation_message=reservation.cancellation_message,
            created_at=utc_naive_to_aware(reservation.created_at),
            updated_at=utc_naive_to_aware(reservation.updated_at),
        )


class Pagination(BaseModel):
    limit: int
    offset: int
    total: int


class ReservationList(BaseModel):
    reservations: list[ReservationDetail]
    pagination: Pagination
