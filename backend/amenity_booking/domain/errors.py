from enum import StrEnum
from typing import ClassVar


class RejectionReason(StrEnum):
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    WINDOW_CLOSED = "window_closed"
    INVALID_RANGE = "invalid_range"
    SLOT_TAKEN = "slot_taken"
    INVALID_TRANSITION = "invalid_transition"


class ReservationError(Exception):
    """Base for every typed rejection raised by the booking engine."""

    reason: ClassVar[RejectionReason]

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(ReservationError):
    reason = RejectionReason.VALIDATION_ERROR


class InvalidScheduleError(InvalidRequestError):
    pass


class NotFoundError(ReservationError):
    reason = RejectionReason.NOT_FOUND


class ForbiddenError(ReservationError):
    reason = RejectionReason.FORBIDDEN


class WindowClosedError(ReservationError):
    reason = RejectionReason.WINDOW_CLOSED


class InvalidRangeError(ReservationError):
    reason = RejectionReason.INVALID_RANGE


class SlotTakenError(ReservationError):
    reason = RejectionReason.SLOT_TAKEN


class InvalidTransitionError(ReservationError):
    reason = RejectionReason.INVALID_TRANSITION
