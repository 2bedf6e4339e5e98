from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, List, Optional, Tuple, cast

from sqlalchemy import Select, func, select, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.repositories import AmenityRepository, ReservationRepository, ScheduleRepository
from ..models import ACTIVE_STATUSES, Amenity, AreaSchedule, Reservation, ReservationStatus
from ..utils.time import utc_now_naive
from .locks import LockTimeoutError

MYSQL_LOCK_WAIT_TIMEOUT = 1205


def _is_lock_wait_timeout(exc: OperationalError) -> bool:
    args = getattr(exc.orig, "args", ())
    return bool(args) and args[0] == MYSQL_LOCK_WAIT_TIMEOUT


class SqlAlchemyAmenityRepository(AmenityRepository):
    def __init__(self, session: AsyncSession, *, lock_timeout_seconds: float | None = None) -> None:
        self.session = session
        self.lock_timeout_seconds = lock_timeout_seconds

    async def get(self, amenity_id: int) -> Amenity | None:
        return await self.session.get(Amenity, amenity_id)

    async def lock_for_booking(self, amenity_id: int) -> Amenity | None:
        # Serializes writers across processes until the surrounding transaction ends.
        bind = self.session.bind
        if self.lock_timeout_seconds is not None and bind is not None and bind.dialect.name == "mysql":
            await self.session.execute(
                text("SET SESSION innodb_lock_wait_timeout = :timeout"),
                {"timeout": max(1, int(self.lock_timeout_seconds))},
            )
        try:
            result = await self.session.scalar(
                select(Amenity)
                .where(Amenity.id == amenity_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
        except OperationalError as exc:
            if _is_lock_wait_timeout(exc):
                raise LockTimeoutError(f"timed out locking amenity {amenity_id}") from exc
            raise
        return result if isinstance(result, Amenity) else None

    async def list_for_location(self, location_id: int, *, include_inactive: bool = False) -> List[Amenity]:
        stmt = select(Amenity).where(Amenity.location_id == location_id).order_by(Amenity.name)
        if not include_inactive:
            stmt = stmt.where(Amenity.is_active.is_(True))
        return list((await self.session.scalars(stmt)).all())

    async def create(self, *, location_id: int, **fields: Any) -> Amenity:
        now = utc_now_naive()
        amenity = Amenity(location_id=location_id, created_at=now, updated_at=now, **fields)
        self.session.add(amenity)
        await self.session.flush()
        return amenity

    async def save(self, amenity: Amenity) -> Amenity:
        amenity.updated_at = utc_now_naive()
        self.session.add(amenity)
        await self.session.flush()
        return amenity


class SqlAlchemyScheduleRepository(ScheduleRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_for_amenity(self, amenity_id: int) -> List[AreaSchedule]:
        stmt = select(AreaSchedule).where(AreaSchedule.amenity_id == amenity_id).order_by(AreaSchedule.day_of_week)
        return list((await self.session.scalars(stmt)).all())

    async def get_for_day(self, amenity_id: int, day_of_week: int) -> AreaSchedule | None:
        stmt = select(AreaSchedule).where(
            AreaSchedule.amenity_id == amenity_id,
            AreaSchedule.day_of_week == day_of_week,
        )
        result = await self.session.scalar(stmt)
        return result if isinstance(result, AreaSchedule) else None

    async def upsert(
        self,
        *,
        amenity_id: int,
        day_of_week: int,
        start_minute: int,
        end_minute: int,
        block_duration_minutes: int,
    ) -> AreaSchedule:
        now = utc_now_naive()
        schedule = await self.get_for_day(amenity_id, day_of_week)
        if schedule is None:
            schedule = AreaSchedule(amenity_id=amenity_id, day_of_week=day_of_week, created_at=now)
        schedule.start_minute = start_minute
        schedule.end_minute = end_minute
        schedule.block_duration_minutes = block_duration_minutes
        schedule.updated_at = now
        self.session.add(schedule)
        await self.session.flush()
        return schedule

    async def delete(self, schedule: AreaSchedule) -> None:
        await self.session.delete(schedule)
        await self.session.flush()


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_active_for_day(
        self,
        amenity_id: int,
        reservation_date: date,
        *,
        for_update: bool = False,
    ) -> List[Reservation]:
        stmt = select(Reservation).where(
            Reservation.amenity_id == amenity_id,
            Reservation.reservation_date == reservation_date,
            Reservation.status.in_(ACTIVE_STATUSES),
        )
        if for_update:
            # Locking reads see the latest committed rows, not the transaction snapshot.
            stmt = stmt.with_for_update()
        return list((await self.session.scalars(stmt)).all())

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
    ) -> Reservation:
        now = utc_now_naive()
        reservation = Reservation(
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
        if status == ReservationStatus.APPROVED:
            reservation.approved_at = now
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    def _with_amenity(self) -> Select[Tuple[Reservation, Amenity]]:
        return select(Reservation, Amenity).join(Amenity, Reservation.amenity_id == Amenity.id)

    async def get(self, reservation_id: int) -> Optional[Tuple[Reservation, Amenity]]:
        stmt = self._with_amenity().where(Reservation.id == reservation_id)
        row = (await self.session.execute(stmt)).first()
        return cast(Optional[Tuple[Reservation, Amenity]], row)

    async def get_for_update(self, reservation_id: int) -> Optional[Tuple[Reservation, Amenity]]:
        stmt = self._with_amenity().where(Reservation.id == reservation_id).with_for_update(of=Reservation)
        row = (await self.session.execute(stmt)).first()
        return cast(Optional[Tuple[Reservation, Amenity]], row)

    async def list_by_user(
        self,
        user_id: int,
        status: ReservationStatus | None = None,
    ) -> List[Tuple[Reservation, Amenity]]:
        stmt = (
            self._with_amenity()
            .where(Reservation.user_id == user_id)
            .order_by(Reservation.reservation_date.desc(), Reservation.start_minute.desc())
        )
        if status is not None:
            stmt = stmt.where(Reservation.status == status)
        rows = await self.session.execute(stmt)
        return cast(List[Tuple[Reservation, Amenity]], list(rows.all()))

    async def list_for_location(
        self,
        location_id: int,
        *,
        status: ReservationStatus | None = None,
        reservation_date: date | None = None,
    ) -> List[Tuple[Reservation, Amenity]]:
        stmt = (
            self._with_amenity()
            .where(Amenity.location_id == location_id)
            .order_by(Reservation.reservation_date.desc(), Reservation.start_minute)
        )
        if status is not None:
            stmt = stmt.where(Reservation.status == status)
        if reservation_date is not None:
            stmt = stmt.where(Reservation.reservation_date == reservation_date)
        rows = await self.session.execute(stmt)
        return cast(List[Tuple[Reservation, Amenity]], list(rows.all()))

    async def count_by_status(self, location_id: int) -> dict[ReservationStatus, int]:
        stmt = (
            select(Reservation.status, func.count(Reservation.id))
            .join(Amenity, Reservation.amenity_id == Amenity.id)
            .where(Amenity.location_id == location_id)
            .group_by(Reservation.status)
        )
        rows = await self.session.execute(stmt)
        counts = {status: 0 for status in ReservationStatus}
        for status, count in rows.all():
            counts[ReservationStatus(status)] = int(count)
        return counts

    async def save(self, reservation: Reservation) -> Reservation:
        self.session.add(reservation)
        await self.session.flush()
        return reservation
