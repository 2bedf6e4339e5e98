from datetime import date, datetime
from decimal import Decimal
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field, field_serializer, field_validator

from .domain.availability import AvailabilityResult
from .models import Amenity, AmenityCategory, AreaSchedule, Reservation, ReservationStatus
from .utils.time import format_clock, parse_clock

T = TypeVar("T")


def _clock(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    # Normalize to HH:MM; raises ValueError on malformed input.
    return format_clock(parse_clock(value))


def _minutes(value: Optional[str]) -> Optional[int]:
    return None if value is None else parse_clock(value)


class ErrorBody(BaseModel):
    code: str
    message: str


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: ErrorBody


class SlotRead(BaseModel):
    start_time: str
    end_time: str
    available: bool


class AvailabilityRead(BaseModel):
    area_id: int
    date: date
    available: bool
    reason: Optional[str] = None
    slots: list[SlotRead]

    @classmethod
    def from_result(cls, *, amenity_id: int, day: date, result: AvailabilityResult) -> "AvailabilityRead":
        return cls(
            area_id=amenity_id,
            date=day,
            available=result.available,
            reason=result.reason.value if result.reason else None,
            slots=[
                SlotRead(
                    start_time=format_clock(state.slot.start_minute),
                    end_time=format_clock(state.slot.end_minute),
                    available=state.available,
                )
                for state in result.slots
            ],
        )


class ReservationCreate(BaseModel):
    area_id: int
    date: date
    start_time: str
    end_time: str
    # Range and capacity checks are done by the engine so they keep their rejection order.
    attendees: int = 1
    purpose: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, value: Optional[str]) -> Optional[str]:
        return _clock(value)

    @property
    def start_minute(self) -> int:
        return parse_clock(self.start_time)

    @property
    def end_minute(self) -> int:
        return parse_clock(self.end_time)


class ReservationReject(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class ReservationRead(BaseModel):
    id: int
    area_id: int
    area_name: Optional[str] = None
    user_id: int
    date: date
    start_time: str
    end_time: str
    attendees: int
    purpose: Optional[str]
    notes: Optional[str]
    total_cost: Decimal
    status: ReservationStatus
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    cancelled_by: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    @field_serializer("total_cost")
    def serialize_cost(self, value: Decimal) -> str:
        return f"{value:.2f}"

    @classmethod
    def from_db(cls, *, reservation: Reservation, amenity: Optional[Amenity] = None) -> "ReservationRead":
        return cls(
            id=reservation.id,
            area_id=reservation.amenity_id,
            area_name=amenity.name if amenity is not None else None,
            user_id=reservation.user_id,
            date=reservation.reservation_date,
            start_time=format_clock(reservation.start_minute),
            end_time=format_clock(reservation.end_minute),
            attendees=reservation.attendees,
            purpose=reservation.purpose,
            notes=reservation.notes,
            total_cost=Decimal(reservation.total_cost or 0),
            status=reservation.status,
            approved_by=reservation.approved_by,
            approved_at=reservation.approved_at,
            rejected_by=reservation.rejected_by,
            rejected_at=reservation.rejected_at,
            rejection_reason=reservation.rejection_reason,
            cancelled_by=reservation.cancelled_by,
            cancelled_at=reservation.cancelled_at,
            created_at=reservation.created_at,
        )


class ReservationStats(BaseModel):
    pending: int
    approved: int
    rejected: int
    cancelled: int
    pending_approvals: int

    @classmethod
    def from_counts(cls, counts: dict[ReservationStatus, int]) -> "ReservationStats":
        pending = counts.get(ReservationStatus.PENDING, 0)
        return cls(
            pending=pending,
            approved=counts.get(ReservationStatus.APPROVED, 0),
            rejected=counts.get(ReservationStatus.REJECTED, 0),
            cancelled=counts.get(ReservationStatus.CANCELLED, 0),
            pending_approvals=pending,
        )


class AreaCreate(BaseModel):
    location_id: Optional[int] = None
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    category: AmenityCategory = AmenityCategory.OTHER
    capacity: int = Field(default=10, ge=1)
    is_paid: bool = False
    hourly_rate: Decimal = Field(default=Decimal("0"), ge=0)
    min_duration_hours: Optional[int] = Field(default=1, ge=1)
    max_duration_hours: Optional[int] = Field(default=4, ge=1)
    advance_booking_days: int = Field(default=30, ge=0)
    requires_approval: bool = False
    is_24_hours: bool = False
    available_from: Optional[str] = "08:00"
    available_until: Optional[str] = "20:00"

    @field_validator("available_from", "available_until")
    @classmethod
    def normalize_times(cls, value: Optional[str]) -> Optional[str]:
        return _clock(value)

    def to_fields(self) -> dict[str, object]:
        fields = self.model_dump(exclude={"location_id"})
        fields["available_from"] = _minutes(self.available_from)
        fields["available_until"] = _minutes(self.available_until)
        return fields


_NULLABLE_AREA_FIELDS = {"description", "min_duration_hours", "max_duration_hours", "available_from", "available_until"}


class AreaUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[AmenityCategory] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    is_paid: Optional[bool] = None
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    min_duration_hours: Optional[int] = Field(default=None, ge=1)
    max_duration_hours: Optional[int] = Field(default=None, ge=1)
    advance_booking_days: Optional[int] = Field(default=None, ge=0)
    requires_approval: Optional[bool] = None
    is_24_hours: Optional[bool] = None
    available_from: Optional[str] = None
    available_until: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("available_from", "available_until")
    @classmethod
    def normalize_times(cls, value: Optional[str]) -> Optional[str]:
        return _clock(value)

    def to_changes(self) -> dict[str, object]:
        changes = {
            name: value
            for name, value in self.model_dump(exclude_unset=True).items()
            if value is not None or name in _NULLABLE_AREA_FIELDS
        }
        for name in ("available_from", "available_until"):
            if name in changes:
                changes[name] = _minutes(changes[name])
        return changes


class AreaRead(BaseModel):
    id: int
    location_id: int
    name: str
    description: Optional[str]
    category: AmenityCategory
    capacity: int
    is_paid: bool
    hourly_rate: Decimal
    min_duration_hours: Optional[int]
    max_duration_hours: Optional[int]
    advance_booking_days: int
    requires_approval: bool
    is_24_hours: bool
    available_from: Optional[str]
    available_until: Optional[str]
    is_active: bool

    @field_serializer("hourly_rate")
    def serialize_rate(self, value: Decimal) -> str:
        return f"{value:.2f}"

    @classmethod
    def from_db(cls, *, amenity: Amenity) -> "AreaRead":
        return cls(
            id=amenity.id,
            location_id=amenity.location_id,
            name=amenity.name,
            description=amenity.description,
            category=amenity.category,
            capacity=amenity.capacity,
            is_paid=amenity.is_paid,
            hourly_rate=Decimal(amenity.hourly_rate or 0),
            min_duration_hours=amenity.min_duration_hours,
            max_duration_hours=amenity.max_duration_hours,
            advance_booking_days=amenity.advance_booking_days,
            requires_approval=amenity.requires_approval,
            is_24_hours=amenity.is_24_hours,
            available_from=format_clock(amenity.available_from) if amenity.available_from is not None else None,
            available_until=format_clock(amenity.available_until) if amenity.available_until is not None else None,
            is_active=amenity.is_active,
        )


class ScheduleUpsert(BaseModel):
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    block_duration_minutes: Optional[int] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, value: Optional[str]) -> Optional[str]:
        return _clock(value)


class ScheduleRead(BaseModel):
    id: int
    area_id: int
    day_of_week: int
    start_time: str
    end_time: str
    block_duration_minutes: int

    @classmethod
    def from_db(cls, *, schedule: AreaSchedule) -> "ScheduleRead":
        return cls(
            id=schedule.id,
            area_id=schedule.amenity_id,
            day_of_week=schedule.day_of_week,
            start_time=format_clock(schedule.start_minute),
            end_time=format_clock(schedule.end_minute),
            block_duration_minutes=schedule.block_duration_minutes,
        )
