from datetime import date

from ..domain.actors import Actor
from ..domain.availability import AvailabilityResult, check_availability
from ..domain.errors import ForbiddenError, NotFoundError
from ..domain.repositories import AmenityRepository, ReservationRepository, ScheduleRepository
from ..domain.services import AmenityRules
from ..domain.slots import DayWindow, TimeSlot, generate_slots, resolve_window
from ..models import Amenity
from ..utils.time import js_weekday


async def load_day_slots(schedule_repo: ScheduleRepository, amenity: Amenity, day: date) -> list[TimeSlot]:
    weekly: dict[int, DayWindow] = {}
    if not amenity.is_24_hours:
        entry = await schedule_repo.get_for_day(amenity.id, js_weekday(day))
        if entry is not None:
            weekly[entry.day_of_week] = DayWindow(
                start_minute=entry.start_minute,
                end_minute=entry.end_minute,
                block_minutes=entry.block_duration_minutes,
            )
    return generate_slots(resolve_window(weekly, day, is_24_hours=amenity.is_24_hours))


async def get_visible_amenity(amenity_repo: AmenityRepository, *, actor: Actor, amenity_id: int) -> Amenity:
    amenity = await amenity_repo.get(amenity_id)
    if amenity is None:
        raise NotFoundError("amenity not found")
    if not actor.belongs_to(amenity.location_id):
        raise ForbiddenError("amenity belongs to another location")
    return amenity


async def get_area_availability(
    amenity_repo: AmenityRepository,
    schedule_repo: ScheduleRepository,
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    amenity_id: int,
    day: date,
    today: date,
) -> tuple[Amenity, AvailabilityResult]:
    amenity = await get_visible_amenity(amenity_repo, actor=actor, amenity_id=amenity_id)
    candidates = await load_day_slots(schedule_repo, amenity, day)
    booked = [(r.start_minute, r.end_minute) for r in await res_repo.list_active_for_day(amenity.id, day)]
    result = check_availability(
        AmenityRules.from_amenity(amenity),
        candidates,
        booked,
        day=day,
        today=today,
    )
    return amenity, result
