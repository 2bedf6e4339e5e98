import random
from datetime import date

import pytest
from amenity_booking.domain.errors import InvalidScheduleError
from amenity_booking.domain.slots import FULL_DAY, DayWindow, TimeSlot, generate_slots, resolve_window


def test_generate_slots_partitions_window_into_blocks() -> None:
    slots = generate_slots(DayWindow(start_minute=8 * 60, end_minute=12 * 60, block_minutes=60))

    assert [(s.start_minute, s.end_minute) for s in slots] == [(480, 540), (540, 600), (600, 660), (660, 720)]


def test_generate_slots_drops_trailing_remainder() -> None:
    # 08:00-11:30 with 60 minute blocks: the final half hour is not offered.
    slots = generate_slots(DayWindow(start_minute=480, end_minute=690, block_minutes=60))

    assert len(slots) == 3
    assert slots[-1].end_minute == 660


def _sample_windows() -> list[DayWindow]:
    rng = random.Random(1440)
    windows = [
        DayWindow(start_minute=start, end_minute=end, block_minutes=block)
        for start, end in ((0, 1440), (480, 1200), (510, 1305), (1380, 1440))
        for block in (15, 30, 45, 60, 90, 120, 1440)
    ]
    for _ in range(40):
        start = rng.randrange(0, 1440)
        end = rng.randrange(start + 1, 1441)
        windows.append(DayWindow(start_minute=start, end_minute=end, block_minutes=rng.randrange(1, 241)))
    return windows


@pytest.mark.parametrize("window", _sample_windows())
def test_generate_slots_covers_window_in_whole_blocks(window: DayWindow) -> None:
    slots = generate_slots(window)

    assert len(slots) == (window.end_minute - window.start_minute) // window.block_minutes
    if not slots:
        return
    assert slots[0].start_minute == window.start_minute
    assert slots[-1].end_minute <= window.end_minute
    assert window.end_minute - slots[-1].end_minute < window.block_minutes
    for slot in slots:
        assert slot.end_minute - slot.start_minute == window.block_minutes
    for prev, nxt in zip(slots, slots[1:]):
        assert prev.end_minute == nxt.start_minute


def test_generate_slots_window_shorter_than_block_is_empty() -> None:
    assert generate_slots(DayWindow(start_minute=480, end_minute=500, block_minutes=60)) == []


def test_generate_slots_closed_day_is_empty() -> None:
    assert generate_slots(None) == []


def test_full_day_covers_midnight_to_midnight() -> None:
    slots = generate_slots(FULL_DAY)

    assert len(slots) == 24
    assert slots[0].start_minute == 0
    assert slots[-1].end_minute == 24 * 60


@pytest.mark.parametrize(
    "window",
    [
        DayWindow(start_minute=600, end_minute=600, block_minutes=60),
        DayWindow(start_minute=700, end_minute=600, block_minutes=60),
        DayWindow(start_minute=0, end_minute=24 * 60 + 1, block_minutes=60),
        DayWindow(start_minute=480, end_minute=600, block_minutes=0),
    ],
)
def test_invalid_window_is_rejected(window: DayWindow) -> None:
    with pytest.raises(InvalidScheduleError):
        generate_slots(window)


def test_resolve_window_uses_sunday_zero_weekday() -> None:
    sunday = DayWindow(start_minute=600, end_minute=720, block_minutes=30)
    weekly = {0: sunday}

    assert resolve_window(weekly, date(2024, 6, 2), is_24_hours=False) == sunday
    assert resolve_window(weekly, date(2024, 6, 3), is_24_hours=False) is None


def test_resolve_window_24_hours_ignores_weekly_schedule() -> None:
    assert resolve_window({}, date(2024, 6, 3), is_24_hours=True) == FULL_DAY


def test_slot_overlap_is_half_open() -> None:
    slot = TimeSlot(start_minute=600, end_minute=660)

    assert slot.overlaps(630, 690)
    assert not slot.overlaps(660, 720)
    assert not slot.overlaps(540, 600)
