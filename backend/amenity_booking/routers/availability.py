from datetime import date

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_actor, get_session, get_today
from ..domain.actors import Actor
from ..domain.errors import ReservationError
from ..infrastructure.repositories import (
    SqlAlchemyAmenityRepository,
    SqlAlchemyReservationRepository,
    SqlAlchemyScheduleRepository,
)
from ..schemas import AvailabilityRead, ErrorEnvelope
from ..usecases import availability as availability_usecase
from .responses import rejection_response

router = APIRouter(prefix="/areas", tags=["availability"], dependencies=[Depends(get_current_actor)])


@router.get(
    "/{area_id}/availability",
    response_model=AvailabilityRead,
    responses={403: {"model": ErrorEnvelope}, 404: {"model": ErrorEnvelope}},
)
async def get_area_availability(
    area_id: int = Path(..., ge=1),
    day: date = Query(..., alias="date", description="Local calendar date (YYYY-MM-DD)"),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
    today: date = Depends(get_today),
) -> AvailabilityRead | JSONResponse:
    try:
        amenity, result = await availability_usecase.get_area_availability(
            SqlAlchemyAmenityRepository(session),
            SqlAlchemyScheduleRepository(session),
            SqlAlchemyReservationRepository(session),
            actor=actor,
            amenity_id=area_id,
            day=day,
            today=today,
        )
    except ReservationError as exc:
        return rejection_response(exc)
    return AvailabilityRead.from_result(amenity_id=amenity.id, day=day, result=result)
