import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, get_settings
from ..deps import get_booking_window, get_current_actor, get_session, require_feature
from ..domain.actors import Actor
from ..domain.errors import Rejected
from ..domain.policy import BookingWindow
from ..features import Feature
from ..infrastructure.repositories import SqlAlchemyFacilityRepository, SqlAlchemyReservationRepository
from ..models import Reservation, ReservationStatus
from ..schemas import (
    Pagination,
    ReservationCreate,
    ReservationDetail,
    ReservationList,
    ReservationRead,
    ReservationUpdate,
)
from ..usecases import reservations as reservation_usecase
from ..utils.audit_log import AuditAction, AuditInitiator, emit_audit_log
from ..utils.time import to_utc_naive
from .errors import http_error

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reservations",
    tags=["reservations"],
    dependencies=[Depends(require_feature(Feature.RESERVATIONS))],
)


def _audit(
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    actor: Actor,
    reservation: Reservation,
    status_from: Optional[ReservationStatus],
    status_to: Optional[ReservationStatus],
    message: Optional[str] = None,
) -> None:
    """Emit the audit record; failure aborts the surrounding transaction with a 500."""
    try:
        emit_audit_log(
            action=action,
            initiator=initiator,
            actor_id=actor.id,
            reservation_id=reservation.id,
            facility_id=reservation.facility_id,
            user_id=reservation.user_id,
            start_time=reservation.start_time,
            duration_minutes=reservation.duration_minutes,
            status_from=status_from,
            status_to=status_to,
            message=message,
        )
    except RuntimeError as exc:
        logger.exception("audit log failed for reservation %s", reservation.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record reservation change",
        ) from exc


@router.get("", response_model=ReservationList)
async def list_reservations(
    all_users: bool = Query(default=False, alias="all"),
    status_filter: Optional[ReservationStatus] = Query(default=None, alias="status"),
    upcoming: bool = Query(default=False),
    facility_id: Optional[int] = Query(default=None, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> ReservationList:
    res_repo = SqlAlchemyReservationRepository(session)
    result = await reservation_usecase.list_reservations(
        res_repo,
        actor=actor,
        all_users=all_users,
        status=status_filter,
        upcoming=upcoming,
        facility_id=facility_id,
        limit=limit,
        offset=offset,
    )
    if isinstance(result, Rejected):
        raise http_error(result)
    rows, total = result.value
    return ReservationList(
        reservations=[ReservationDetail.from_db(reservation=r) for r in rows],
        pagination=Pagination(limit=limit, offset=offset, total=total),
    )


@router.post("", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    window: BookingWindow = Depends(get_booking_window),
) -> ReservationRead:
    facility_repo = SqlAlchemyFacilityRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        result = await reservation_usecase.create_reservation(
            facility_repo,
            res_repo,
            actor=actor,
            facility_id=payload.facility_id,
            start=to_utc_naive(payload.start_time),
            duration_minutes=payload.duration_minutes,
            window=window,
        )
        if isinstance(result, Rejected):
            raise http_error(result)
        reservation = result.value
        _audit(
            action="reservation.created",
            initiator="user",
            actor=actor,
            reservation=reservation,
            status_from=None,
            status_to=reservation.status,
        )

    return ReservationRead.from_db(reservation=reservation)


@router.get("/{reservation_id}", response_model=ReservationDetail)
async def get_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> ReservationDetail:
    res_repo = SqlAlchemyReservationRepository(session)
    result = await reservation_usecase.get_reservation_detail(res_repo, actor=actor, reservation_id=reservation_id)
    if isinstance(result, Rejected):
        raise http_error(result)
    return ReservationDetail.from_db(reservation=result.value)


@router.patch("/{reservation_id}", response_model=ReservationRead)
async def update_reservation(
    payload: ReservationUpdate,
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    window: BookingWindow = Depends(get_booking_window),
) -> ReservationRead:
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        if payload.duration_minutes is not None:
            result = await reservation_usecase.update_reservation_duration(
                res_repo,
                actor=actor,
                reservation_id=reservation_id,
                duration_minutes=payload.duration_minutes,
                window=window,
            )
            if isinstance(result, Rejected):
                raise http_error(result)
            reservation = result.value
            _audit(
                action="reservation.updated",
                initiator="user",
                actor=actor,
                reservation=reservation,
                status_from=reservation.status,
                status_to=reservation.status,
            )
        else:
            cancel_result = await reservation_usecase.cancel_reservation(
                res_repo,
                actor=actor,
                reservation_id=reservation_id,
                window=window,
                message=payload.cancellation_message,
            )
            if isinstance(cancel_result, Rejected):
                raise http_error(cancel_result)
            cancellation = cancel_result.value
            reservation = cancellation.reservation
            _audit(
                action="reservation.cancelled",
                initiator=cancellation.initiator,
                actor=actor,
                reservation=reservation,
                status_from=cancellation.status_from,
                status_to=reservation.status,
                message=reservation.cancellation_message,
            )

    return ReservationRead.from_db(reservation=reservation)


@router.delete("/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    window: BookingWindow = Depends(get_booking_window),
    settings: Settings = Depends(get_settings),
) -> Response:
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        result = await reservation_usecase.cancel_reservation(
            res_repo,
            actor=actor,
            reservation_id=reservation_id,
            window=window,
            hard_delete=settings.hard_delete_on_owner_cancel,
        )
        if isinstance(result, Rejected):
            raise http_error(result)
        cancellation = result.value
        _audit(
            action="reservation.deleted" if cancellation.deleted else "reservation.cancelled",
            initiator=cancellation.initiator,
            actor=actor,
            reservation=cancellation.reservation,
            status_from=cancellation.status_from,
            status_to=None if cancellation.deleted else cancellation.reservation.status,
        )

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{reservation_id}/export.ics")
async def export_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> Response:
    res_repo = SqlAlchemyReservationRepository(session)
    result = await reservation_usecase.export_reservation(res_repo, actor=actor, reservation_id=reservation_id)
    if isinstance(result, Rejected):
        raise http_error(result)
    return Response(
        content=result.value,
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="reservation-{reservation_id}.ics"'},
    )
