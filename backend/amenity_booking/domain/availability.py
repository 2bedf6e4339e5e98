from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Sequence

from .services import AmenityRules, UnavailableReason, day_unavailable_reason
from .slots import TimeSlot


@dataclass(frozen=True)
class SlotState:
    slot: TimeSlot
    available: bool


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    reason: UnavailableReason | None
    slots: tuple[SlotState, ...]


def check_availability(
    rules: AmenityRules,
    candidates: Sequence[TimeSlot],
    booked: Iterable[tuple[int, int]],
    *,
    day: date,
    today: date,
) -> AvailabilityResult:
    reason = day_unavailable_reason(rules, candidates, day=day, today=today)
    if reason is not None:
        return AvailabilityResult(available=False, reason=reason, slots=())

    ranges = list(booked)
    states = tuple(
        SlotState(slot=slot, available=not any(slot.overlaps(start, end) for start, end in ranges))
        for slot in candidates
    )
    if not any(state.available for state in states):
        return AvailabilityResult(available=False, reason=UnavailableReason.FULLY_BOOKED, slots=states)
    return AvailabilityResult(available=True, reason=None, slots=states)
