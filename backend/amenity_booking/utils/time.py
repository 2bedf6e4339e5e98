from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

MINUTES_PER_DAY = 24 * 60


def parse_clock(value: str) -> int:
    """Parse a wall-clock ``HH:MM`` or ``HH:MM:SS`` string into minutes since midnight.

    ``24:00`` is accepted as the end of the day. Seconds must be zero since slots are
    minute-aligned.
    """
    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError(f"invalid time {value!r}, expected HH:MM[:SS]")
    hours, minutes = int(parts[0]), int(parts[1])
    seconds = int(parts[2]) if len(parts) == 3 else 0
    if minutes > 59 or seconds > 59:
        raise ValueError(f"invalid time {value!r}")
    if seconds:
        raise ValueError(f"time {value!r} must not carry seconds")
    total = hours * 60 + minutes
    if total > MINUTES_PER_DAY:
        raise ValueError(f"time {value!r} is past 24:00")
    return total


def format_clock(minutes: int) -> str:
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValueError(f"minute offset {minutes} outside a day")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def js_weekday(day: date) -> int:
    """Weekday with 0=Sunday..6=Saturday."""
    return (day.weekday() + 1) % 7


def local_today(tz_name: str) -> date:
    return datetime.now(ZoneInfo(tz_name)).date()


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
