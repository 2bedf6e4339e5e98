import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional

import pytest
from amenity_booking.domain.actors import Actor
from amenity_booking.models import (
    ACTIVE_STATUSES,
    Amenity,
    AmenityCategory,
    AreaSchedule,
    Reservation,
    ReservationStatus,
    UserRole,
)
from amenity_booking.utils.time import parse_clock


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class InMemoryStore:
    """Backing tables shared by the fake repositories below."""

    def __init__(self) -> None:
        self.amenities: dict[int, Amenity] = {}
        self.schedules: dict[tuple[int, int], AreaSchedule] = {}
        self.reservations: dict[int, Reservation] = {}
        self._ids = 0
        self.calls: list[str] = []
        self.amenity_repo = FakeAmenityRepo(self)
        self.schedule_repo = FakeScheduleRepo(self)
        self.res_repo = FakeReservationRepo(self)

    def next_id(self) -> int:
        self._ids += 1
        return self._ids

    def add_amenity(self, **overrides: Any) -> Amenity:
        now = _now()
        fields: dict[str, Any] = dict(
            location_id=1,
            name="Pool",
            description=None,
            category=AmenityCategory.POOL,
            capacity=10,
            is_paid=False,
            hourly_rate=Decimal("0"),
            min_duration_hours=None,
            max_duration_hours=None,
            advance_booking_days=30,
            requires_approval=False,
            is_24_hours=False,
            available_from=parse_clock("08:00"),
            available_until=parse_clock("20:00"),
            is_active=True,
        )
        fields.update(overrides)
        amenity = Amenity(id=self.next_id(), created_at=now, updated_at=now, **fields)
        self.amenities[amenity.id] = amenity
        return amenity

    def add_schedule(
        self,
        amenity: Amenity,
        days: Any = range(7),
        *,
        start: str = "08:00",
        end: str = "20:00",
        block: int = 60,
    ) -> None:
        now = _now()
        for day in days:
            self.schedules[(amenity.id, day)] = AreaSchedule(
                id=self.next_id(),
                amenity_id=amenity.id,
                day_of_week=day,
                start_minute=parse_clock(start),
                end_minute=parse_clock(end),
                block_duration_minutes=block,
                created_at=now,
                updated_at=now,
            )

    def add_reservation(
        self,
        amenity: Amenity,
        *,
        day: date,
        start: str,
        end: str,
        user_id: int = 99,
        status: ReservationStatus = ReservationStatus.APPROVED,
        attendees: int = 2,
    ) -> Reservation:
        now = _now()
        reservation = Reservation(
            id=self.next_id(),
            amenity_id=amenity.id,
            user_id=user_id,
            reservation_date=day,
            start_minute=parse_clock(start),
            end_minute=parse_clock(end),
            attendees=attendees,
            purpose=None,
            notes=None,
            total_cost=Decimal("0"),
            status=status,
            created_at=now,
            updated_at=now,
        )
        self.reservations[reservation.id] = reservation
        return reservation

    def active_reservations(self, amenity_id: int, day: date) -> list[Reservation]:
        return [
            r
            for r in self.reservations.values()
            if r.amenity_id == amenity_id and r.reservation_date == day and r.status in ACTIVE_STATUSES
        ]


class FakeAmenityRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.lock_calls = 0

    async def get(self, amenity_id: int) -> Optional[Amenity]:
        self.store.calls.append("amenity.get")
        return self.store.amenities.get(amenity_id)

    async def lock_for_booking(self, amenity_id: int) -> Optional[Amenity]:
        self.lock_calls += 1
        self.store.calls.append("amenity.lock_for_booking")
        await asyncio.sleep(0)
        return self.store.amenities.get(amenity_id)

    async def list_for_location(self, location_id: int, *, include_inactive: bool = False) -> list[Amenity]:
        return [
            a
            for a in self.store.amenities.values()
            if a.location_id == location_id and (include_inactive or a.is_active)
        ]

    async def create(self, *, location_id: int, **fields: Any) -> Amenity:
        return self.store.add_amenity(location_id=location_id, **fields)

    async def save(self, amenity: Amenity) -> Amenity:
        self.store.amenities[amenity.id] = amenity
        return amenity


class FakeScheduleRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def list_for_amenity(self, amenity_id: int) -> list[AreaSchedule]:
        rows = [s for (a_id, _), s in self.store.schedules.items() if a_id == amenity_id]
        return sorted(rows, key=lambda s: s.day_of_week)

    async def get_for_day(self, amenity_id: int, day_of_week: int) -> Optional[AreaSchedule]:
        self.store.calls.append("schedule.get_for_day")
        return self.store.schedules.get((amenity_id, day_of_week))

    async def upsert(
        self,
        *,
        amenity_id: int,
        day_of_week: int,
        start_minute: int,
        end_minute: int,
        block_duration_minutes: int,
    ) -> AreaSchedule:
        now = _now()
        schedule = self.store.schedules.get((amenity_id, day_of_week))
        if schedule is None:
            schedule = AreaSchedule(
                id=self.store.next_id(),
                amenity_id=amenity_id,
                day_of_week=day_of_week,
                created_at=now,
            )
        schedule.start_minute = start_minute
        schedule.end_minute = end_minute
        schedule.block_duration_minutes = block_duration_minutes
        schedule.updated_at = now
        self.store.schedules[(amenity_id, day_of_week)] = schedule
        return schedule

    async def delete(self, schedule: AreaSchedule) -> None:
        del self.store.schedules[(schedule.amenity_id, schedule.day_of_week)]


class FakeReservationRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def list_active_for_day(
        self,
        amenity_id: int,
        reservation_date: date,
        *,
        for_update: bool = False,
    ) -> list[Reservation]:
        self.store.calls.append("reservation.list_active_for_day" + (" for update" if for_update else ""))
        # Yield so concurrent bookings interleave between read and insert.
        await asyncio.sleep(0)
        return self.store.active_reservations(amenity_id, reservation_date)

    async def create(
        self,
        *,
        amenity_id: int,
        user_id: int,
        reservation_date: date,
        start_minute: int,
        end_minute: int,
        attendees: int,
        status: ReservationStatus,
        total_cost: Decimal,
        purpose: Optional[str],
        notes: Optional[str],
    ) -> Reservation:
        await asyncio.sleep(0)
        self.store.calls.append("reservation.create")
        now = _now()
        reservation = Reservation(
            id=self.store.next_id(),
            amenity_id=amenity_id,
            user_id=user_id,
            reservation_date=reservation_date,
            start_minute=start_minute,
            end_minute=end_minute,
            attendees=attendees,
            status=status,
            total_cost=total_cost,
            purpose=purpose,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        self.store.reservations[reservation.id] = reservation
        return reservation

    def _row(self, reservation_id: int) -> Optional[tuple[Reservation, Amenity]]:
        reservation = self.store.reservations.get(reservation_id)
        if reservation is None:
            return None
        return reservation, self.store.amenities[reservation.amenity_id]

    async def get(self, reservation_id: int) -> Optional[tuple[Reservation, Amenity]]:
        return self._row(reservation_id)

    async def get_for_update(self, reservation_id: int) -> Optional[tuple[Reservation, Amenity]]:
        return self._row(reservation_id)

    async def list_by_user(
        self,
        user_id: int,
        status: Optional[ReservationStatus] = None,
    ) -> list[tuple[Reservation, Amenity]]:
        rows = [
            (r, self.store.amenities[r.amenity_id])
            for r in self.store.reservations.values()
            if r.user_id == user_id and (status is None or r.status == status)
        ]
        return sorted(rows, key=lambda row: (row[0].reservation_date, row[0].start_minute), reverse=True)

    async def list_for_location(
        self,
        location_id: int,
        *,
        status: Optional[ReservationStatus] = None,
        reservation_date: Optional[date] = None,
    ) -> list[tuple[Reservation, Amenity]]:
        return [
            (r, self.store.amenities[r.amenity_id])
            for r in self.store.reservations.values()
            if self.store.amenities[r.amenity_id].location_id == location_id
            and (status is None or r.status == status)
            and (reservation_date is None or r.reservation_date == reservation_date)
        ]

    async def count_by_status(self, location_id: int) -> dict[ReservationStatus, int]:
        counts = {status: 0 for status in ReservationStatus}
        for reservation, _ in await self.list_for_location(location_id):
            counts[reservation.status] += 1
        return counts

    async def save(self, reservation: Reservation) -> Reservation:
        self.store.reservations[reservation.id] = reservation
        return reservation


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def resident() -> Actor:
    return Actor(user_id=10, role=UserRole.RESIDENT, location_id=1)


@pytest.fixture
def neighbour() -> Actor:
    return Actor(user_id=11, role=UserRole.RESIDENT, location_id=1)


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id=1, role=UserRole.ADMIN, location_id=1)


@pytest.fixture
def outsider() -> Actor:
    return Actor(user_id=20, role=UserRole.RESIDENT, location_id=2)
