import logging
from datetime import date
from typing import Optional

from ..domain.actors import Actor
from ..domain.errors import ForbiddenError, InvalidRequestError, NotFoundError, SlotTakenError, WindowClosedError
from ..domain.repositories import AmenityRepository, ReservationRepository, ScheduleRepository
from ..domain.services import AmenityRules, day_unavailable_reason, describe, has_conflict, plan_booking
from ..domain.state_machine import ReservationAction, apply_transition
from ..infrastructure.locks import KeyedLockRegistry, LockTimeoutError, booking_locks
from ..models import Amenity, Reservation, ReservationStatus
from ..utils.time import utc_now_naive
from .availability import get_visible_amenity, load_day_slots

logger = logging.getLogger(__name__)


async def create_reservation(
    amenity_repo: AmenityRepository,
    schedule_repo: ScheduleRepository,
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    amenity_id: int,
    reservation_date: date,
    start_minute: int,
    end_minute: int,
    attendees: int,
    today: date,
    purpose: Optional[str] = None,
    notes: Optional[str] = None,
    locks: KeyedLockRegistry = booking_locks,
    lock_timeout: float = 5.0,
) -> tuple[Reservation, Amenity]:
    amenity = await get_visible_amenity(amenity_repo, actor=actor, amenity_id=amenity_id)
    rules = AmenityRules.from_amenity(amenity)
    if not rules.is_active:
        raise WindowClosedError("amenity is not active")

    candidates = await load_day_slots(schedule_repo, amenity, reservation_date)
    reason = day_unavailable_reason(rules, candidates, day=reservation_date, today=today)
    if reason is not None:
        raise WindowClosedError(describe(reason))

    plan = plan_booking(
        rules,
        candidates,
        start_minute=start_minute,
        end_minute=end_minute,
        attendees=attendees,
    )

    try:
        async with locks.hold((amenity.id, reservation_date), timeout=lock_timeout):
            locked = await amenity_repo.lock_for_booking(amenity.id)
            if locked is None:
                raise NotFoundError("amenity not found")
            if not locked.is_active:
                raise WindowClosedError("amenity is not active")
            active = await res_repo.list_active_for_day(amenity.id, reservation_date, for_update=True)
            booked = [(r.start_minute, r.end_minute) for r in active]
            if has_conflict(booked, start_minute=plan.start_minute, end_minute=plan.end_minute):
                logger.info(
                    "slot taken amenity=%s date=%s range=%s-%s user=%s",
                    amenity.id,
                    reservation_date,
                    plan.start_minute,
                    plan.end_minute,
                    actor.user_id,
                )
                raise SlotTakenError("the selected time was just booked by someone else")
            reservation = await res_repo.create(
                amenity_id=amenity.id,
                user_id=actor.user_id,
                reservation_date=reservation_date,
                start_minute=plan.start_minute,
                end_minute=plan.end_minute,
                attendees=attendees,
                status=plan.status,
                total_cost=plan.total_cost,
                purpose=purpose,
                notes=notes,
            )
    except LockTimeoutError as exc:
        logger.warning("booking lock timed out amenity=%s date=%s", amenity.id, reservation_date)
        raise SlotTakenError("the selected time is being booked by someone else") from exc
    return reservation, amenity


async def _transition(
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    reservation_id: int,
    action: ReservationAction,
    today: date,
    reason: Optional[str] = None,
) -> tuple[Reservation, Amenity, ReservationStatus]:
    row = await res_repo.get_for_update(reservation_id)
    if row is None:
        raise NotFoundError("reservation not found")
    reservation, amenity = row
    previous = apply_transition(
        reservation,
        action,
        actor,
        location_id=amenity.location_id,
        today=today,
        now=utc_now_naive(),
        reason=reason,
    )
    updated = await res_repo.save(reservation)
    return updated, amenity, previous


async def approve_reservation(
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    reservation_id: int,
    today: date,
) -> tuple[Reservation, Amenity, ReservationStatus]:
    return await _transition(
        res_repo, actor=actor, reservation_id=reservation_id, action=ReservationAction.APPROVE, today=today
    )


async def reject_reservation(
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    reservation_id: int,
    today: date,
    reason: Optional[str] = None,
) -> tuple[Reservation, Amenity, ReservationStatus]:
    return await _transition(
        res_repo,
        actor=actor,
        reservation_id=reservation_id,
        action=ReservationAction.REJECT,
        today=today,
        reason=reason,
    )


async def cancel_reservation(
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    reservation_id: int,
    today: date,
) -> tuple[Reservation, Amenity, ReservationStatus]:
    return await _transition(
        res_repo, actor=actor, reservation_id=reservation_id, action=ReservationAction.CANCEL, today=today
    )


async def list_my_reservations(
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    status: Optional[ReservationStatus] = None,
) -> list[tuple[Reservation, Amenity]]:
    return await res_repo.list_by_user(actor.user_id, status)


async def get_reservation(
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    reservation_id: int,
) -> tuple[Reservation, Amenity]:
    row = await res_repo.get(reservation_id)
    if row is None:
        raise NotFoundError("reservation not found")
    reservation, amenity = row
    if reservation.user_id != actor.user_id and not actor.administers(amenity.location_id):
        raise ForbiddenError("not allowed to view this reservation")
    return reservation, amenity


def _admin_location(actor: Actor, location_id: Optional[int]) -> int:
    target = location_id if location_id is not None else actor.location_id
    if target is None:
        raise InvalidRequestError("location_id is required")
    if not actor.administers(target):
        raise ForbiddenError("administrator access required")
    return target


async def list_location_reservations(
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    location_id: Optional[int] = None,
    status: Optional[ReservationStatus] = None,
    reservation_date: Optional[date] = None,
) -> list[tuple[Reservation, Amenity]]:
    target = _admin_location(actor, location_id)
    return await res_repo.list_for_location(target, status=status, reservation_date=reservation_date)


async def reservation_stats(
    res_repo: ReservationRepository,
    *,
    actor: Actor,
    location_id: Optional[int] = None,
) -> dict[ReservationStatus, int]:
    target = _admin_location(actor, location_id)
    return await res_repo.count_by_status(target)
