from datetime import date, datetime

import pytest
from amenity_booking.domain.actors import Actor
from amenity_booking.domain.errors import ForbiddenError, InvalidTransitionError
from amenity_booking.domain.state_machine import (
    ReservationAction,
    apply_transition,
    authorize,
    initial_status,
    next_status,
)
from amenity_booking.models import Reservation, ReservationStatus, UserRole

TODAY = date(2024, 5, 20)
NOW = datetime(2024, 5, 20, 15, 0)
ADMIN = Actor(user_id=1, role=UserRole.ADMIN, location_id=1)
OWNER = Actor(user_id=10, role=UserRole.RESIDENT, location_id=1)


def _reservation(status: ReservationStatus, *, day: date = date(2024, 6, 1)) -> Reservation:
    return Reservation(
        id=5,
        amenity_id=3,
        user_id=OWNER.user_id,
        reservation_date=day,
        start_minute=840,
        end_minute=900,
        attendees=2,
        status=status,
    )


def test_initial_status() -> None:
    assert initial_status(True) == ReservationStatus.PENDING
    assert initial_status(False) == ReservationStatus.APPROVED


@pytest.mark.parametrize(
    ("current", "action", "expected"),
    [
        (ReservationStatus.PENDING, ReservationAction.APPROVE, ReservationStatus.APPROVED),
        (ReservationStatus.PENDING, ReservationAction.REJECT, ReservationStatus.REJECTED),
        (ReservationStatus.PENDING, ReservationAction.CANCEL, ReservationStatus.CANCELLED),
        (ReservationStatus.APPROVED, ReservationAction.CANCEL, ReservationStatus.CANCELLED),
    ],
)
def test_allowed_transitions(current: ReservationStatus, action: ReservationAction, expected: ReservationStatus) -> None:
    assert next_status(current, action, reservation_date=TODAY, today=TODAY) == expected


@pytest.mark.parametrize(
    ("current", "action"),
    [
        (ReservationStatus.APPROVED, ReservationAction.APPROVE),
        (ReservationStatus.APPROVED, ReservationAction.REJECT),
        (ReservationStatus.REJECTED, ReservationAction.APPROVE),
        (ReservationStatus.REJECTED, ReservationAction.CANCEL),
        (ReservationStatus.CANCELLED, ReservationAction.CANCEL),
        (ReservationStatus.CANCELLED, ReservationAction.APPROVE),
    ],
)
def test_terminal_and_repeated_transitions_are_refused(current: ReservationStatus, action: ReservationAction) -> None:
    with pytest.raises(InvalidTransitionError):
        next_status(current, action, reservation_date=TODAY, today=TODAY)


def test_past_reservations_are_frozen() -> None:
    with pytest.raises(InvalidTransitionError):
        next_status(
            ReservationStatus.PENDING,
            ReservationAction.CANCEL,
            reservation_date=date(2024, 5, 19),
            today=TODAY,
        )


def test_owner_may_cancel_but_not_approve() -> None:
    authorize(ReservationAction.CANCEL, OWNER, owner_id=OWNER.user_id, location_id=1)
    with pytest.raises(ForbiddenError):
        authorize(ReservationAction.APPROVE, OWNER, owner_id=OWNER.user_id, location_id=1)


def test_admin_of_other_location_is_forbidden() -> None:
    other_admin = Actor(user_id=2, role=UserRole.ADMIN, location_id=2)
    with pytest.raises(ForbiddenError):
        authorize(ReservationAction.APPROVE, other_admin, owner_id=OWNER.user_id, location_id=1)


def test_superadmin_administers_every_location() -> None:
    root = Actor(user_id=3, role=UserRole.SUPERADMIN, location_id=None)
    authorize(ReservationAction.REJECT, root, owner_id=OWNER.user_id, location_id=7)


def test_apply_transition_records_actor_and_time() -> None:
    reservation = _reservation(ReservationStatus.PENDING)

    previous = apply_transition(
        reservation, ReservationAction.REJECT, ADMIN, location_id=1, today=TODAY, now=NOW, reason="maintenance"
    )

    assert previous == ReservationStatus.PENDING
    assert reservation.status == ReservationStatus.REJECTED
    assert reservation.rejected_by == ADMIN.user_id
    assert reservation.rejected_at == NOW
    assert reservation.rejection_reason == "maintenance"
    assert reservation.approved_by is None


def test_apply_transition_authorizes_before_state_check() -> None:
    reservation = _reservation(ReservationStatus.CANCELLED)
    stranger = Actor(user_id=99, role=UserRole.RESIDENT, location_id=1)

    with pytest.raises(ForbiddenError):
        apply_transition(reservation, ReservationAction.CANCEL, stranger, location_id=1, today=TODAY, now=NOW)
    assert reservation.status == ReservationStatus.CANCELLED


def test_failed_transition_leaves_reservation_untouched() -> None:
    reservation = _reservation(ReservationStatus.APPROVED)

    with pytest.raises(InvalidTransitionError):
        apply_transition(reservation, ReservationAction.APPROVE, ADMIN, location_id=1, today=TODAY, now=NOW)
    assert reservation.status == ReservationStatus.APPROVED
    assert reservation.approved_at is None
