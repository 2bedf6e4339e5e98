from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Protocol

from ..models import Amenity, AreaSchedule, Reservation, ReservationStatus


class AmenityRepository(Protocol):
    async def get(self, amenity_id: int) -> Amenity | None: ...

    async def lock_for_booking(self, amenity_id: int) -> Amenity | None: ...

    async def list_for_location(self, location_id: int, *, include_inactive: bool = False) -> list[Amenity]: ...

    async def create(self, *, location_id: int, **fields: Any) -> Amenity: ...

    async def save(self, amenity: Amenity) -> Amenity: ...


class ScheduleRepository(Protocol):
    async def list_for_amenity(self, amenity_id: int) -> list[AreaSchedule]: ...

    async def get_for_day(self, amenity_id: int, day_of_week: int) -> AreaSchedule | None: ...

    async def upsert(
        self,
        *,
        amenity_id: int,
        day_of_week: int,
        start_minute: int,
        end_minute: int,
        block_duration_minutes: int,
    ) -> AreaSchedule: ...

    async def delete(self, schedule: AreaSchedule) -> None: ...


class ReservationRepository(Protocol):
    async def list_active_for_day(
        self,
        amenity_id: int,
        reservation_date: date,
        *,
        for_update: bool = False,
    ) -> list[Reservation]: ...

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
        purpose: str | None,
        notes: str | None,
    ) -> Reservation: ...

    async def get(self, reservation_id: int) -> tuple[Reservation, Amenity] | None: ...

    async def get_for_update(self, reservation_id: int) -> tuple[Reservation, Amenity] | None: ...

    async def list_by_user(
        self,
        user_id: int,
        status: ReservationStatus | None = None,
    ) -> list[tuple[Reservation, Amenity]]: ...

    async def list_for_location(
        self,
        location_id: int,
        *,
        status: ReservationStatus | None = None,
        reservation_date: date | None = None,
    ) -> list[tuple[Reservation, Amenity]]: ...

    async def count_by_status(self, location_id: int) -> dict[ReservationStatus, int]: ...

    async def save(self, reservation: Reservation) -> Reservation: ...
