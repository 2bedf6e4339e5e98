from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Mapping

from ..utils.time import MINUTES_PER_DAY, js_weekday
from .errors import InvalidScheduleError

DEFAULT_BLOCK_MINUTES = 60


@dataclass(frozen=True)
class DayWindow:
    """Operating window of one day, in minutes since midnight."""

    start_minute: int
    end_minute: int
    block_minutes: int

    def validate(self) -> None:
        if self.block_minutes <= 0:
            raise InvalidScheduleError("block duration must be positive")
        if not 0 <= self.start_minute < self.end_minute <= MINUTES_PER_DAY:
            raise InvalidScheduleError("schedule start must be before end and within the day")


FULL_DAY = DayWindow(start_minute=0, end_minute=MINUTES_PER_DAY, block_minutes=DEFAULT_BLOCK_MINUTES)


@dataclass(frozen=True, order=True)
class TimeSlot:
    start_minute: int
    end_minute: int

    def overlaps(self, start_minute: int, end_minute: int) -> bool:
        return self.start_minute < end_minute and start_minute < self.end_minute


def resolve_window(
    weekly: Mapping[int, DayWindow],
    day: date,
    *,
    is_24_hours: bool,
) -> DayWindow | None:
    """Pick the window that applies on `day`; None means closed."""
    if is_24_hours:
        return FULL_DAY
    return weekly.get(js_weekday(day))


def generate_slots(window: DayWindow | None) -> list[TimeSlot]:
    """
    Partition the window into consecutive full-length blocks.
    A trailing remainder shorter than one block is dropped.
    """
    if window is None:
        return []
    window.validate()
    count = (window.end_minute - window.start_minute) // window.block_minutes
    return [
        TimeSlot(
            start_minute=window.start_minute + i * window.block_minutes,
            end_minute=window.start_minute + (i + 1) * window.block_minutes,
        )
        for i in range(count)
    ]
