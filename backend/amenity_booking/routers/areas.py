from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_actor, get_session
from ..domain.actors import Actor
from ..domain.errors import ReservationError
from ..infrastructure.repositories import SqlAlchemyAmenityRepository, SqlAlchemyScheduleRepository
from ..schemas import AreaCreate, AreaRead, AreaUpdate, Envelope, ScheduleRead, ScheduleUpsert
from ..usecases import areas as area_usecase
from ..utils.time import parse_clock
from .responses import rejection_response

router = APIRouter(prefix="/areas", tags=["areas"], dependencies=[Depends(get_current_actor)])


@router.get("", response_model=Envelope[List[AreaRead]])
async def list_areas(
    location_id: Optional[int] = Query(default=None, ge=1),
    include_inactive: bool = Query(default=False),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> Envelope[List[AreaRead]] | JSONResponse:
    try:
        rows = await area_usecase.list_areas(
            SqlAlchemyAmenityRepository(session),
            actor=actor,
            location_id=location_id,
            include_inactive=include_inactive,
        )
    except ReservationError as exc:
        return rejection_response(exc)
    return Envelope(data=[AreaRead.from_db(amenity=amenity) for amenity in rows])


@router.post("", response_model=Envelope[AreaRead], status_code=status.HTTP_201_CREATED)
async def create_area(
    payload: AreaCreate,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> Envelope[AreaRead] | JSONResponse:
    amenity_repo = SqlAlchemyAmenityRepository(session)
    try:
        async with session.begin():
            amenity = await area_usecase.create_area(
                amenity_repo,
                actor=actor,
                fields=payload.to_fields(),
                location_id=payload.location_id,
            )
    except ReservationError as exc:
        return rejection_response(exc)
    return Envelope(data=AreaRead.from_db(amenity=amenity))


@router.patch("/{area_id}", response_model=Envelope[AreaRead])
async def update_area(
    payload: AreaUpdate,
    area_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> Envelope[AreaRead] | JSONResponse:
    amenity_repo = SqlAlchemyAmenityRepository(session)
    try:
        async with session.begin():
            amenity = await area_usecase.update_area(
                amenity_repo,
                actor=actor,
                amenity_id=area_id,
                changes=payload.to_changes(),
            )
    except ReservationError as exc:
        return rejection_response(exc)
    return Envelope(data=AreaRead.from_db(amenity=amenity))


@router.post("/{area_id}/deactivate", response_model=Envelope[AreaRead])
async def deactivate_area(
    area_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> Envelope[AreaRead] | JSONResponse:
    amenity_repo = SqlAlchemyAmenityRepository(session)
    try:
        async with session.begin():
            amenity = await area_usecase.deactivate_area(amenity_repo, actor=actor, amenity_id=area_id)
    except ReservationError as exc:
        return rejection_response(exc)
    return Envelope(data=AreaRead.from_db(amenity=amenity))


@router.get("/{area_id}/schedules", response_model=Envelope[List[ScheduleRead]])
async def list_schedules(
    area_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> Envelope[List[ScheduleRead]] | JSONResponse:
    try:
        rows = await area_usecase.list_schedules(
            SqlAlchemyAmenityRepository(session),
            SqlAlchemyScheduleRepository(session),
            actor=actor,
            amenity_id=area_id,
        )
    except ReservationError as exc:
        return rejection_response(exc)
    return Envelope(data=[ScheduleRead.from_db(schedule=schedule) for schedule in rows])


@router.put("/{area_id}/schedules/{day_of_week}", response_model=Envelope[ScheduleRead])
async def upsert_schedule(
    payload: ScheduleUpsert,
    area_id: int = Path(..., ge=1),
    day_of_week: int = Path(..., ge=0, le=6),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> Envelope[ScheduleRead] | JSONResponse:
    amenity_repo = SqlAlchemyAmenityRepository(session)
    schedule_repo = SqlAlchemyScheduleRepository(session)
    try:
        async with session.begin():
            schedule = await area_usecase.upsert_schedule(
                amenity_repo,
                schedule_repo,
                actor=actor,
                amenity_id=area_id,
                day_of_week=day_of_week,
                start_minute=parse_clock(payload.start_time) if payload.start_time else None,
                end_minute=parse_clock(payload.end_time) if payload.end_time else None,
                block_duration_minutes=payload.block_duration_minutes,
            )
    except ReservationError as exc:
        return rejection_response(exc)
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="schedule was modified concurrently")
    return Envelope(data=ScheduleRead.from_db(schedule=schedule))


@router.delete("/{area_id}/schedules/{day_of_week}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(
    area_id: int = Path(..., ge=1),
    day_of_week: int = Path(..., ge=0, le=6),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> Response:
    amenity_repo = SqlAlchemyAmenityRepository(session)
    schedule_repo = SqlAlchemyScheduleRepository(session)
    try:
        async with session.begin():
            await area_usecase.delete_schedule(
                amenity_repo,
                schedule_repo,
                actor=actor,
                amenity_id=area_id,
                day_of_week=day_of_week,
            )
    except ReservationError as exc:
        return rejection_response(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
