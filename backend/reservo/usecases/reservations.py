"""Reservation admission: create, change duration and cancel, plus the read-side queries.

Every operation returns an `Outcome`: `Admitted(value)` on success or
`Rejected(DomainError)` carrying the error kind and a user-facing message.
Unexpected storage errors are not caught here.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

from ..domain.actors import Actor, Capability, has_capability
from ..domain.conflicts import find_conflicts
from ..domain.errors import Admitted, ErrorKind, Outcome, OverlapViolation, Rejected
from ..domain.intervals import end_of
from ..domain.policy import BookingWindow
from ..domain.repositories import FacilityRepository, ReservationFilter, ReservationRepository
from ..domain.rules import ReservationCandidate, is_before_cutoff, validate_candidate, validate_duration_change
from ..models import Reservation, ReservationStatus
from ..utils.ics import build_ics
from ..utils.time import day_bounds, utc_now_naive

MAX_CANCELLATION_MESSAGE = 500
MAX_PAGE_SIZE = 100

SLOT_TAKEN = "Sorry, this time slot is no longer available. Please select another time."
DURATION_CONFLICT = "The updated duration would conflict with another reservation. Please choose a shorter duration."


@dataclass(frozen=True)
class Cancellation:
    reservation: Reservation
    initiator: Literal["user", "admin"]
    status_from: ReservationStatus
    deleted: bool = False


async def create_reservation(
    facility_repo: FacilityRepository,
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    facility_id: int,
    start: datetime,
    duration_minutes: int,
    window: BookingWindow,
    now: Optional[datetime] = None,
) -> Outcome[Reservation]:
    now = now or utc_now_naive()
    candidate = ReservationCandidate(facility_id=facility_id, start=start, duration_minutes=duration_minutes)
    error = validate_candidate(candidate, now=now, window=window)
    if error is not None:
        return Rejected.invalid(error)

    if await facility_repo.get(facility_id) is None:
        return Rejected.of(ErrorKind.NOT_FOUND, f"Facility with ID {facility_id} not found")

    # The repository is the final arbiter of overlap: a concurrent request may
    # have taken the slot since the caller last looked at the schedule.
    try:
        reservation = await res_repo.insert_reservation(
            facility_id=facility_id,
            owner_id=actor.id,
            start=start,
            duration_minutes=duration_minutes,
        )
    except OverlapViolation:
        return Rejected.of(ErrorKind.CONFLICT, SLOT_TAKEN)
    return Admitted(reservation)


async def update_reservation_duration(
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    reservation_id: int,
    duration_minutes: int,
    window: BookingWindow,
    now: Optional[datetime] = None,
) -> Outcome[Reservation]:
    now = now or utc_now_naive()
    reservation = await res_repo.get_reservation(reservation_id)
    if reservation is None:
        return Rejected.of(ErrorKind.NOT_FOUND, "Reservation not found")
    if reservation.user_id != actor.id:
        return Rejected.of(ErrorKind.FORBIDDEN, "You do not have permission to update this reservation")
    if reservation.status != ReservationStatus.CONFIRMED:
        return Rejected.of(ErrorKind.CONFLICT, "Cannot update a canceled reservation")
    if not is_before_cutoff(reservation.start_time, now=now, window=window):
        return Rejected.of(
            ErrorKind.FORBIDDEN,
            f"Reservations can only be modified more than {window.cutoff_hours} hours before the start time",
        )

    error = validate_duration_change(reservation.start_time, duration_minutes, window=window)
    if error is not None:
        return Rejected.invalid(error)

    new_end = end_of(reservation.start_time, duration_minutes)
    day_start, day_end = day_bounds(reservation.start_time.date())
    others = await res_repo.list_confirmed(reservation.facility_id, day_start, day_end)
    if find_conflicts(
        reservation.start_time,
        new_end,
        reservation.facility_id,
        others,
        exclude_reservation_id=reservation.id,
    ):
        return Rejected.of(ErrorKind.CONFLICT, DURATION_CONFLICT)

    try:
        updated = await res_repo.update_duration(reservation, duration_minutes)
    except OverlapViolation:
        return Rejected.of(ErrorKind.CONFLICT, DURATION_CONFLICT)
    return Admitted(updated)


async def cancel_reservation(
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    reservation_id: int,
    window: BookingWindow,
    message: Optional[str] = None,
    hard_delete: bool = False,
    now: Optional[datetime] = None,
) -> Outcome[Cancellation]:
    """Cancel a reservation through the admin path (cancel_any capability) or the owner path.

    Admins may cancel at any time and attach a message. Owners must cancel a
    confirmed reservation more than the cutoff before it starts. `hard_delete`
    makes the owner path remove the row instead of marking it canceled.
    """
    now = now or utc_now_naive()
    if message is not None and len(message) > MAX_CANCELLATION_MESSAGE:
        return Rejected.of(
            ErrorKind.INVALID_REQUEST,
            f"Cancellation message must not exceed {MAX_CANCELLATION_MESSAGE} characters",
        )

    reservation = await res_repo.get_reservation(reservation_id)
    if reservation is None:
        return Rejected.of(ErrorKind.NOT_FOUND, "Reservation not found")
    status_from = reservation.status

    if has_capability(actor, Capability.CANCEL_ANY):
        if reservation.status == ReservationStatus.CANCELED:
            return Rejected.of(ErrorKind.CONFLICT, "Reservation is already canceled")
        canceled = await res_repo.set_canceled(reservation, message or None)
        return Admitted(Cancellation(reservation=canceled, initiator="admin", status_from=status_from))

    if reservation.user_id != actor.id:
        return Rejected.of(ErrorKind.FORBIDDEN, "You are not authorized to perform this action")
    if message is not None:
        return Rejected.of(ErrorKind.FORBIDDEN, "Only administrators can attach a cancellation message")
    if reservation.status != ReservationStatus.CONFIRMED:
        return Rejected.of(ErrorKind.FORBIDDEN, "This reservation cannot be canceled")
    if not is_before_cutoff(reservation.start_time, now=now, window=window):
        return Rejected.of(
            ErrorKind.FORBIDDEN,
            f"Reservations can only be canceled more than {window.cutoff_hours} hours before start time",
        )

    if hard_delete:
        await res_repo.delete(reservation)
        return Admitted(Cancellation(reservation=reservation, initiator="user", status_from=status_from, deleted=True))
    canceled = await res_repo.set_canceled(reservation)
    return Admitted(Cancellation(reservation=canceled, initiator="user", status_from=status_from))


async def list_reservations(
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    all_users: bool = False,
    status: Optional[ReservationStatus] = None,
    upcoming: bool = False,
    facility_id: Optional[int] = None,
    limit: int = 50,
    offset: int = 0,
    now: Optional[datetime] = None,
) -> Outcome[tuple[list[Reservation], int]]:
    if all_users and not has_capability(actor, Capability.VIEW_ALL):
        return Rejected.of(ErrorKind.FORBIDDEN, "Insufficient permissions")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        return Rejected.of(ErrorKind.INVALID_REQUEST, f"Limit must be between 1 and {MAX_PAGE_SIZE}")
    if offset < 0:
        return Rejected.of(ErrorKind.INVALID_REQUEST, "Offset must not be negative")

    query = ReservationFilter(
        user_id=None if all_users else actor.id,
        status=status,
        facility_id=facility_id,
        starts_from=(now or utc_now_naive()) if upcoming else None,
        limit=limit,
        offset=offset,
    )
    return Admitted(await res_repo.list_reservations(query))


async def get_reservation_detail(
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    reservation_id: int,
) -> Outcome[Reservation]:
    reservation = await res_repo.get_reservation(reservation_id)
    if reservation is None:
        return Rejected.of(ErrorKind.NOT_FOUND, "Reservation not found")
    if reservation.user_id != actor.id and not has_capability(actor, Capability.VIEW_ALL):
        return Rejected.of(ErrorKind.FORBIDDEN, "You do not have permission to view this reservation")
    return Admitted(reservation)


async def export_reservation(
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    reservation_id: int,
    now: Optional[datetime] = None,
) -> Outcome[str]:
    detail = await get_reservation_detail(res_repo, actor=actor, reservation_id=reservation_id)
    if isinstance(detail, Rejected):
        return detail
    reservation = detail.value
    return Admitted(
        build_ics(reservation, facility_name=reservation.facility.name, stamp=now or utc_now_naive())
    )
