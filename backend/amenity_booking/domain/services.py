from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from typing import Iterable, Optional, Sequence

from ..models import Amenity, ReservationStatus
from .errors import InvalidRangeError, InvalidRequestError
from .slots import TimeSlot
from .state_machine import initial_status

MAX_CONSECUTIVE_SLOTS = 2
_CENTS = Decimal("0.01")


class UnavailableReason(StrEnum):
    DATE_IN_PAST = "date_in_past"
    BOOKING_WINDOW_EXCEEDED = "booking_window_exceeded"
    AMENITY_INACTIVE = "amenity_inactive"
    CLOSED = "closed"
    FULLY_BOOKED = "fully_booked"


_REASON_MESSAGES = {
    UnavailableReason.DATE_IN_PAST: "date is in the past",
    UnavailableReason.BOOKING_WINDOW_EXCEEDED: "date is beyond the booking window",
    UnavailableReason.AMENITY_INACTIVE: "amenity is not active",
    UnavailableReason.CLOSED: "amenity is closed on this date",
    UnavailableReason.FULLY_BOOKED: "every slot is taken",
}


def describe(reason: UnavailableReason) -> str:
    return _REASON_MESSAGES[reason]


@dataclass(frozen=True)
class AmenityRules:
    capacity: int
    advance_booking_days: int
    is_active: bool
    requires_approval: bool
    is_24_hours: bool
    is_paid: bool = False
    hourly_rate: Decimal = Decimal("0")
    min_duration_hours: Optional[int] = None
    max_duration_hours: Optional[int] = None

    @classmethod
    def from_amenity(cls, amenity: Amenity) -> "AmenityRules":
        return cls(
            capacity=amenity.capacity,
            advance_booking_days=amenity.advance_booking_days,
            is_active=amenity.is_active,
            requires_approval=amenity.requires_approval,
            is_24_hours=amenity.is_24_hours,
            is_paid=amenity.is_paid,
            hourly_rate=Decimal(amenity.hourly_rate or 0),
            min_duration_hours=amenity.min_duration_hours,
            max_duration_hours=amenity.max_duration_hours,
        )


@dataclass(frozen=True)
class BookingPlan:
    slots: tuple[TimeSlot, ...]
    status: ReservationStatus
    total_cost: Decimal

    @property
    def start_minute(self) -> int:
        return self.slots[0].start_minute

    @property
    def end_minute(self) -> int:
        return self.slots[-1].end_minute


def day_unavailable_reason(
    rules: AmenityRules,
    candidates: Sequence[TimeSlot],
    *,
    day: date,
    today: date,
) -> UnavailableReason | None:
    """Whole-day checks shared by availability reads and reservation writes."""
    if day < today:
        return UnavailableReason.DATE_IN_PAST
    if day > today + timedelta(days=rules.advance_booking_days):
        return UnavailableReason.BOOKING_WINDOW_EXCEEDED
    if not rules.is_active:
        return UnavailableReason.AMENITY_INACTIVE
    if not candidates:
        return UnavailableReason.CLOSED
    return None


def select_slots(candidates: Sequence[TimeSlot], *, start_minute: int, end_minute: int) -> tuple[TimeSlot, ...]:
    """Map [start, end) onto one or two consecutive candidate slots."""
    if start_minute >= end_minute:
        raise InvalidRangeError("start time must be before end time")
    by_start = {slot.start_minute: slot for slot in candidates}
    chosen: list[TimeSlot] = []
    cursor = start_minute
    while cursor < end_minute:
        slot = by_start.get(cursor)
        if slot is None:
            raise InvalidRangeError("requested range does not align with consecutive slots")
        chosen.append(slot)
        if len(chosen) > MAX_CONSECUTIVE_SLOTS:
            raise InvalidRangeError(f"at most {MAX_CONSECUTIVE_SLOTS} consecutive slots can be booked")
        cursor = slot.end_minute
    if cursor != end_minute:
        raise InvalidRangeError("requested range does not end on a slot boundary")
    return tuple(chosen)


def check_duration(rules: AmenityRules, *, start_minute: int, end_minute: int) -> None:
    minutes = end_minute - start_minute
    if rules.min_duration_hours is not None and minutes < rules.min_duration_hours * 60:
        raise InvalidRangeError(f"minimum duration is {rules.min_duration_hours} hour(s)")
    if rules.max_duration_hours is not None and minutes > rules.max_duration_hours * 60:
        raise InvalidRangeError(f"maximum duration is {rules.max_duration_hours} hour(s)")


def check_attendees(rules: AmenityRules, attendees: object) -> None:
    if isinstance(attendees, bool) or not isinstance(attendees, int) or attendees < 1:
        raise InvalidRequestError("attendees must be a positive integer")
    if attendees > rules.capacity:
        raise InvalidRequestError(f"attendees exceed capacity of {rules.capacity}")


def total_cost(rules: AmenityRules, *, start_minute: int, end_minute: int) -> Decimal:
    if not rules.is_paid:
        return Decimal("0.00")
    hours = Decimal(end_minute - start_minute) / Decimal(60)
    return (rules.hourly_rate * hours).quantize(_CENTS, rounding=ROUND_HALF_UP)


def plan_booking(
    rules: AmenityRules,
    candidates: Sequence[TimeSlot],
    *,
    start_minute: int,
    end_minute: int,
    attendees: object,
) -> BookingPlan:
    """
    Pure validation of a booking request against already-generated slots.
    Runs range, duration and attendee checks in that order; conflict detection
    happens later, under the booking lock.
    """
    slots = select_slots(candidates, start_minute=start_minute, end_minute=end_minute)
    check_duration(rules, start_minute=start_minute, end_minute=end_minute)
    check_attendees(rules, attendees)
    return BookingPlan(
        slots=slots,
        status=initial_status(rules.requires_approval),
        total_cost=total_cost(rules, start_minute=start_minute, end_minute=end_minute),
    )


def has_conflict(booked: Iterable[tuple[int, int]], *, start_minute: int, end_minute: int) -> bool:
    return any(start_minute < b_end and b_start < end_minute for b_start, b_end in booked)
