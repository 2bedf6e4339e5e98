from typing import Any, Optional

from ..domain.actors import Actor
from ..domain.errors import ForbiddenError, InvalidRequestError, InvalidScheduleError, NotFoundError
from ..domain.repositories import AmenityRepository, ScheduleRepository
from ..domain.slots import DEFAULT_BLOCK_MINUTES, DayWindow
from ..models import Amenity, AreaSchedule
from .availability import get_visible_amenity


def _check_amenity_fields(fields: dict[str, Any]) -> None:
    low, high = fields.get("min_duration_hours"), fields.get("max_duration_hours")
    if low is not None and high is not None and low > high:
        raise InvalidRequestError("min_duration_hours cannot exceed max_duration_hours")
    opens, closes = fields.get("available_from"), fields.get("available_until")
    if opens is not None and closes is not None and opens >= closes:
        raise InvalidRequestError("available_from must be before available_until")


async def _administered_amenity(amenity_repo: AmenityRepository, *, actor: Actor, amenity_id: int) -> Amenity:
    amenity = await amenity_repo.get(amenity_id)
    if amenity is None:
        raise NotFoundError("amenity not found")
    if not actor.administers(amenity.location_id):
        raise ForbiddenError("administrator access required")
    return amenity


async def list_areas(
    amenity_repo: AmenityRepository,
    *,
    actor: Actor,
    location_id: Optional[int] = None,
    include_inactive: bool = False,
) -> list[Amenity]:
    target = location_id if location_id is not None else actor.location_id
    if target is None:
        raise InvalidRequestError("location_id is required")
    if not actor.belongs_to(target):
        raise ForbiddenError("location not accessible")
    # Residents only ever see bookable areas.
    include_inactive = include_inactive and actor.administers(target)
    return await amenity_repo.list_for_location(target, include_inactive=include_inactive)


async def create_area(
    amenity_repo: AmenityRepository,
    *,
    actor: Actor,
    fields: dict[str, Any],
    location_id: Optional[int] = None,
) -> Amenity:
    target = location_id if location_id is not None else actor.location_id
    if target is None:
        raise InvalidRequestError("location_id is required")
    if not actor.administers(target):
        raise ForbiddenError("administrator access required")
    _check_amenity_fields(fields)
    return await amenity_repo.create(location_id=target, **fields)


async def update_area(
    amenity_repo: AmenityRepository,
    *,
    actor: Actor,
    amenity_id: int,
    changes: dict[str, Any],
) -> Amenity:
    amenity = await _administered_amenity(amenity_repo, actor=actor, amenity_id=amenity_id)
    merged = {
        "min_duration_hours": amenity.min_duration_hours,
        "max_duration_hours": amenity.max_duration_hours,
        "available_from": amenity.available_from,
        "available_until": amenity.available_until,
        **changes,
    }
    _check_amenity_fields(merged)
    for name, value in changes.items():
        setattr(amenity, name, value)
    return await amenity_repo.save(amenity)


async def deactivate_area(amenity_repo: AmenityRepository, *, actor: Actor, amenity_id: int) -> Amenity:
    amenity = await _administered_amenity(amenity_repo, actor=actor, amenity_id=amenity_id)
    if not amenity.is_active:
        return amenity
    amenity.is_active = False
    return await amenity_repo.save(amenity)


async def list_schedules(
    amenity_repo: AmenityRepository,
    schedule_repo: ScheduleRepository,
    *,
    actor: Actor,
    amenity_id: int,
) -> list[AreaSchedule]:
    amenity = await get_visible_amenity(amenity_repo, actor=actor, amenity_id=amenity_id)
    return await schedule_repo.list_for_amenity(amenity.id)


async def upsert_schedule(
    amenity_repo: AmenityRepository,
    schedule_repo: ScheduleRepository,
    *,
    actor: Actor,
    amenity_id: int,
    day_of_week: int,
    start_minute: Optional[int] = None,
    end_minute: Optional[int] = None,
    block_duration_minutes: Optional[int] = None,
) -> AreaSchedule:
    amenity = await _administered_amenity(amenity_repo, actor=actor, amenity_id=amenity_id)
    if not 0 <= day_of_week <= 6:
        raise InvalidScheduleError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
    start = start_minute if start_minute is not None else amenity.available_from
    end = end_minute if end_minute is not None else amenity.available_until
    if start is None or end is None:
        raise InvalidScheduleError("start and end times are required when the area has no default hours")
    window = DayWindow(
        start_minute=start,
        end_minute=end,
        block_minutes=block_duration_minutes if block_duration_minutes is not None else DEFAULT_BLOCK_MINUTES,
    )
    window.validate()
    return await schedule_repo.upsert(
        amenity_id=amenity.id,
        day_of_week=day_of_week,
        start_minute=window.start_minute,
        end_minute=window.end_minute,
        block_duration_minutes=window.block_minutes,
    )


async def delete_schedule(
    amenity_repo: AmenityRepository,
    schedule_repo: ScheduleRepository,
    *,
    actor: Actor,
    amenity_id: int,
    day_of_week: int,
) -> None:
    amenity = await _administered_amenity(amenity_repo, actor=actor, amenity_id=amenity_id)
    schedule = await schedule_repo.get_for_day(amenity.id, day_of_week)
    if schedule is None:
        raise NotFoundError("no schedule for that day")
    await schedule_repo.delete(schedule)
