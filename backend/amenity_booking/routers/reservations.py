from datetime import date
from typing import Any, Awaitable, Callable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..deps import get_current_actor, get_session, get_today
from ..domain.actors import Actor
from ..domain.errors import ReservationError
from ..infrastructure.repositories import (
    SqlAlchemyAmenityRepository,
    SqlAlchemyReservationRepository,
    SqlAlchemyScheduleRepository,
)
from ..models import ReservationStatus
from ..schemas import Envelope, ErrorEnvelope, ReservationCreate, ReservationRead, ReservationReject, ReservationStats
from ..usecases import reservations as reservation_usecase
from ..utils.audit_log import AuditAction, audit_reservation
from .responses import rejection_response

router = APIRouter(prefix="", tags=["reservations"])

_ERRORS: dict[int | str, dict[str, Any]] = {
    code: {"model": ErrorEnvelope}
    for code in (status.HTTP_403_FORBIDDEN, status.HTTP_404_NOT_FOUND, status.HTTP_409_CONFLICT, 422)
}


def _audit(action: AuditAction, *, reservation: Any, amenity: Any, actor: Actor, status_from: Any = None) -> None:
    initiator = "resident" if reservation.user_id == actor.user_id else "admin"
    try:
        audit_reservation(
            action,
            reservation=reservation,
            amenity=amenity,
            actor_id=actor.user_id,
            initiator=initiator,
            status_from=status_from,
        )
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="failed to record audit log") from exc


@router.post(
    "/reservations",
    response_model=Envelope[ReservationRead],
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def create_reservation(
    payload: ReservationCreate,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    today: date = Depends(get_today),
) -> Envelope[ReservationRead] | JSONResponse:
    settings = get_settings()
    amenity_repo = SqlAlchemyAmenityRepository(session, lock_timeout_seconds=settings.booking_lock_timeout_seconds)
    schedule_repo = SqlAlchemyScheduleRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        async with session.begin():
            reservation, amenity = await reservation_usecase.create_reservation(
                amenity_repo,
                schedule_repo,
                res_repo,
                actor=actor,
                amenity_id=payload.area_id,
                reservation_date=payload.date,
                start_minute=payload.start_minute,
                end_minute=payload.end_minute,
                attendees=payload.attendees,
                purpose=payload.purpose,
                notes=payload.notes,
                today=today,
                lock_timeout=settings.booking_lock_timeout_seconds,
            )
    except ReservationError as exc:
        return rejection_response(exc)

    _audit("reservation.created", reservation=reservation, amenity=amenity, actor=actor)
    return Envelope(data=ReservationRead.from_db(reservation=reservation, amenity=amenity))


@router.get("/me/reservations", response_model=Envelope[List[ReservationRead]])
async def list_my_reservations(
    status_filter: Optional[ReservationStatus] = Query(default=None, alias="status"),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> Envelope[List[ReservationRead]]:
    res_repo = SqlAlchemyReservationRepository(session)
    rows = await reservation_usecase.list_my_reservations(res_repo, actor=actor, status=status_filter)
    return Envelope(data=[ReservationRead.from_db(reservation=res, amenity=amenity) for res, amenity in rows])


@router.get("/reservations/{reservation_id}", response_model=Envelope[ReservationRead], responses=_ERRORS)
async def get_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> Envelope[ReservationRead] | JSONResponse:
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        reservation, amenity = await reservation_usecase.get_reservation(
            res_repo, actor=actor, reservation_id=reservation_id
        )
    except ReservationError as exc:
        return rejection_response(exc)
    return Envelope(data=ReservationRead.from_db(reservation=reservation, amenity=amenity))


async def _run_transition(
    transition: Callable[..., Awaitable[Any]],
    action: AuditAction,
    *,
    session: AsyncSession,
    actor: Actor,
    reservation_id: int,
    today: date,
    **kwargs: Any,
) -> Envelope[ReservationRead] | JSONResponse:
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        async with session.begin():
            reservation, amenity, previous = await transition(
                res_repo,
                actor=actor,
                reservation_id=reservation_id,
                today=today,
                **kwargs,
            )
    except ReservationError as exc:
        return rejection_response(exc)

    _audit(action, reservation=reservation, amenity=amenity, actor=actor, status_from=previous)
    return Envelope(data=ReservationRead.from_db(reservation=reservation, amenity=amenity))


@router.post("/reservations/{reservation_id}/approve", response_model=Envelope[ReservationRead], responses=_ERRORS)
async def approve_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    today: date = Depends(get_today),
) -> Envelope[ReservationRead] | JSONResponse:
    return await _run_transition(
        reservation_usecase.approve_reservation,
        "reservation.approved",
        session=session,
        actor=actor,
        reservation_id=reservation_id,
        today=today,
    )


@router.post("/reservations/{reservation_id}/reject", response_model=Envelope[ReservationRead], responses=_ERRORS)
async def reject_reservation(
    reservation_id: int = Path(..., ge=1),
    payload: Optional[ReservationReject] = None,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    today: date = Depends(get_today),
) -> Envelope[ReservationRead] | JSONResponse:
    return await _run_transition(
        reservation_usecase.reject_reservation,
        "reservation.rejected",
        session=session,
        actor=actor,
        reservation_id=reservation_id,
        today=today,
        reason=payload.reason if payload is not None else None,
    )


@router.post("/reservations/{reservation_id}/cancel", response_model=Envelope[ReservationRead], responses=_ERRORS)
async def cancel_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    today: date = Depends(get_today),
) -> Envelope[ReservationRead] | JSONResponse:
    return await _run_transition(
        reservation_usecase.cancel_reservation,
        "reservation.cancelled",
        session=session,
        actor=actor,
        reservation_id=reservation_id,
        today=today,
    )


@router.get("/admin/reservations", response_model=Envelope[List[ReservationRead]], responses=_ERRORS)
async def list_location_reservations(
    status_filter: Optional[ReservationStatus] = Query(default=None, alias="status"),
    reservation_date: Optional[date] = Query(default=None, alias="date"),
    location_id: Optional[int] = Query(default=None, ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> Envelope[List[ReservationRead]] | JSONResponse:
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        rows = await reservation_usecase.list_location_reservations(
            res_repo,
            actor=actor,
            location_id=location_id,
            status=status_filter,
            reservation_date=reservation_date,
        )
    except ReservationError as exc:
        return rejection_response(exc)
    return Envelope(data=[ReservationRead.from_db(reservation=res, amenity=amenity) for res, amenity in rows])


@router.get("/admin/reservations/stats", response_model=Envelope[ReservationStats], responses=_ERRORS)
async def reservation_stats(
    location_id: Optional[int] = Query(default=None, ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> Envelope[ReservationStats] | JSONResponse:
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        counts = await reservation_usecase.reservation_stats(res_repo, actor=actor, location_id=location_id)
    except ReservationError as exc:
        return rejection_response(exc)
    return Envelope(data=ReservationStats.from_counts(counts))
