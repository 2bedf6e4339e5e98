from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from typing import Optional

from ..models import Reservation, ReservationStatus
from .actors import Actor
from .errors import ForbiddenError, InvalidTransitionError


class ReservationAction(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"


_TRANSITIONS: dict[tuple[ReservationStatus, ReservationAction], ReservationStatus] = {
    (ReservationStatus.PENDING, ReservationAction.APPROVE): ReservationStatus.APPROVED,
    (ReservationStatus.PENDING, ReservationAction.REJECT): ReservationStatus.REJECTED,
    (ReservationStatus.PENDING, ReservationAction.CANCEL): ReservationStatus.CANCELLED,
    (ReservationStatus.APPROVED, ReservationAction.CANCEL): ReservationStatus.CANCELLED,
}


def initial_status(requires_approval: bool) -> ReservationStatus:
    return ReservationStatus.PENDING if requires_approval else ReservationStatus.APPROVED


def authorize(action: ReservationAction, actor: Actor, *, owner_id: int, location_id: int) -> None:
    if actor.administers(location_id):
        return
    if action == ReservationAction.CANCEL and actor.user_id == owner_id:
        return
    raise ForbiddenError(f"not allowed to {action.value} this reservation")


def next_status(
    current: ReservationStatus,
    action: ReservationAction,
    *,
    reservation_date: date,
    today: date,
) -> ReservationStatus:
    if reservation_date < today:
        raise InvalidTransitionError("past reservations cannot be modified")
    target = _TRANSITIONS.get((current, action))
    if target is None:
        raise InvalidTransitionError(f"cannot {action.value} a reservation that is {current.value}")
    return target


def apply_transition(
    reservation: Reservation,
    action: ReservationAction,
    actor: Actor,
    *,
    location_id: int,
    today: date,
    now: datetime,
    reason: Optional[str] = None,
) -> ReservationStatus:
    """Move the reservation to its next state in place; returns the previous status."""
    authorize(action, actor, owner_id=reservation.user_id, location_id=location_id)
    previous = reservation.status
    target = next_status(previous, action, reservation_date=reservation.reservation_date, today=today)

    reservation.status = target
    reservation.updated_at = now
    if target == ReservationStatus.APPROVED:
        reservation.approved_by = actor.user_id
        reservation.approved_at = now
    elif target == ReservationStatus.REJECTED:
        reservation.rejected_by = actor.user_id
        reservation.rejected_at = now
        reservation.rejection_reason = reason
    else:
        reservation.cancelled_by = actor.user_id
        reservation.cancelled_at = now
    return previous
