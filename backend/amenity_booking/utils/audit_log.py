from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from typing import Any, Literal, Optional

from ..models import Amenity, Reservation
from .request_id import get_request_id
from .time import format_clock

AuditAction = Literal[
    "reservation.created",
    "reservation.approved",
    "reservation.rejected",
    "reservation.cancelled",
]
AuditInitiator = Literal["resident", "admin", "system"]

_audit_logger = logging.getLogger("audit")
_audit_logger.setLevel(logging.INFO)
if not _audit_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    _audit_logger.addHandler(handler)
_audit_logger.propagate = False


def _enum_to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def emit_audit_log(
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    reservation_id: int,
    amenity_id: Optional[int],
    location_id: Optional[int],
    user_id: Optional[int],
    actor_id: Optional[int],
    reservation_date: Optional[date],
    time_range: Optional[str],
    status_from: Optional[Any],
    status_to: Optional[Any],
    message: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Emit structured JSON audit log. Raises RuntimeError if logging fails."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "info",
        "action": action,
        "initiator": initiator,
        "request_id": get_request_id(),
        "reservation_id": reservation_id,
        "amenity_id": amenity_id,
        "location_id": location_id,
        "user_id": user_id,
        "actor_id": actor_id,
        "reservation_date": reservation_date.isoformat() if reservation_date else None,
        "time_range": time_range,
        "status_from": _enum_to_str(status_from),
        "status_to": _enum_to_str(status_to),
    }
    if message is not None:
        payload["message"] = message
    if extra:
        payload.update(extra)

    # Drop None values to keep the log compact.
    compact_payload = {k: v for k, v in payload.items() if v is not None}
    try:
        _audit_logger.info(json.dumps(compact_payload, ensure_ascii=True))
    except Exception as exc:
        raise RuntimeError("failed to emit audit log") from exc


def audit_reservation(
    action: AuditAction,
    *,
    reservation: Reservation,
    amenity: Amenity,
    actor_id: int,
    initiator: AuditInitiator,
    status_from: Optional[Any] = None,
    message: Optional[str] = None,
) -> None:
    emit_audit_log(
        action=action,
        initiator=initiator,
        reservation_id=reservation.id,
        amenity_id=amenity.id,
        location_id=amenity.location_id,
        user_id=reservation.user_id,
        actor_id=actor_id,
        reservation_date=reservation.reservation_date,
        time_range=f"{format_clock(reservation.start_minute)}-{format_clock(reservation.end_minute)}",
        status_from=status_from,
        status_to=reservation.status,
        message=message,
        extra={"attendees": reservation.attendees},
    )
