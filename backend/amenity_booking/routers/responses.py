from fastapi import status
from fastapi.responses import JSONResponse

from ..domain.errors import RejectionReason, ReservationError
from ..schemas import ErrorBody, ErrorEnvelope

STATUS_BY_REASON: dict[RejectionReason, int] = {
    RejectionReason.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RejectionReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RejectionReason.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    RejectionReason.WINDOW_CLOSED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RejectionReason.INVALID_RANGE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RejectionReason.SLOT_TAKEN: status.HTTP_409_CONFLICT,
    RejectionReason.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
}


def error_response(reason: RejectionReason, message: str) -> JSONResponse:
    body = ErrorEnvelope(error=ErrorBody(code=reason.value, message=message))
    return JSONResponse(status_code=STATUS_BY_REASON[reason], content=body.model_dump())


def rejection_response(exc: ReservationError) -> JSONResponse:
    return error_response(exc.reason, exc.message)

