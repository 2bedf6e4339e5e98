from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Optional

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.sqltypes import BigInteger, Boolean, Date, DateTime, Integer, Numeric, SmallInteger, String, Text


class Base(DeclarativeBase):
    pass


class UserRole(StrEnum):
    RESIDENT = "resident"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class AmenityCategory(StrEnum):
    POOL = "pool"
    GYM = "gym"
    COURT = "court"
    BBQ = "bbq"
    SALON = "salon"
    PLAYGROUND = "playground"
    TERRACE = "terrace"
    GARDEN = "garden"
    PARKING = "parking"
    OTHER = "other"


class ReservationStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (ReservationStatus.PENDING, ReservationStatus.APPROVED)


def _enum_column(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda cls: [e.value for e in cls],
        native_enum=False,
    )


class Location(Base):
    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    amenities: Mapped[list["Amenity"]] = relationship(back_populates="location")


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(_enum_column(UserRole), nullable=False, default=UserRole.RESIDENT)
    location_id: Mapped[Optional[int]] = mapped_column(ForeignKey("locations.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)


class Amenity(Base):
    __tablename__ = "common_areas"
    __table_args__ = (
        CheckConstraint("capacity >= 1", name="chk_areas_capacity"),
        CheckConstraint("advance_booking_days >= 0", name="chk_areas_advance_days"),
        Index("idx_areas_location", "location_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    location_id: Mapped[int] = mapped_column(ForeignKey("locations.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[AmenityCategory] = mapped_column(
        _enum_column(AmenityCategory), nullable=False, default=AmenityCategory.OTHER
    )
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    min_duration_hours: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_duration_hours: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    advance_booking_days: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    requires_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_24_hours: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Minutes since midnight; defaults offered when a weekday schedule is created.
    available_from: Mapped[Optional[int]] = mapped_column(SmallInteger, nullable=True)
    available_until: Mapped[Optional[int]] = mapped_column(SmallInteger, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    location: Mapped["Location"] = relationship(back_populates="amenities")
    schedules: Mapped[list["AreaSchedule"]] = relationship(back_populates="amenity")
    reservations: Mapped[list["Reservation"]] = relationship(back_populates="amenity")


class AreaSchedule(Base):
    __tablename__ = "area_schedules"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="chk_schedules_dow"),
        CheckConstraint("start_minute < end_minute", name="chk_schedules_time"),
        CheckConstraint("block_duration_minutes > 0", name="chk_schedules_block"),
        UniqueConstraint("amenity_id", "day_of_week", name="uq_schedules_area_day"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    amenity_id: Mapped[int] = mapped_column(ForeignKey("common_areas.id"), nullable=False)
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    start_minute: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    end_minute: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    block_duration_minutes: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=60)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    amenity: Mapped["Amenity"] = relationship(back_populates="schedules")


class Reservation(Base):
    __tablename__ = "area_reservations"
    __table_args__ = (
        CheckConstraint("attendees >= 1", name="chk_res_attendees"),
        CheckConstraint("start_minute < end_minute", name="chk_res_time"),
        Index("idx_res_area_date", "amenity_id", "reservation_date"),
        Index("idx_res_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    amenity_id: Mapped[int] = mapped_column(ForeignKey("common_areas.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reservation_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_minute: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    end_minute: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    attendees: Mapped[int] = mapped_column(Integer, nullable=False)
    purpose: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    status: Mapped[ReservationStatus] = mapped_column(
        _enum_column(ReservationStatus),
        nullable=False,
        default=ReservationStatus.PENDING,
    )
    approved_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    rejected_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    cancelled_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    amenity: Mapped["Amenity"] = relationship(back_populates="reservations")
