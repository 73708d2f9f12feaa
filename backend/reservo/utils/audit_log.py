"""Structured audit trail for reservation state changes.

Each record is one JSON object per line on the non-propagating ``audit``
logger, tagged with the current request id. Callers treat a failed write as
a failed operation.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from .request_id import get_request_id

AuditAction = Literal[
    "reservation.created",
    "reservation.updated",
    "reservation.cancelled",
    "reservation.deleted",
]
AuditInitiator = Literal["user", "admin"]


def _build_logger() -> logging.Logger:
    logger = logging.getLogger("audit")
    logger.setLevel(logging.INFO)
    if not logger.handlers:
        stream = logging.StreamHandler()
        stream.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(stream)
    logger.propagate = False
    return logger


_audit_logger = _build_logger()


def _json_default(value: Any) -> str:
    if isinstance(value, datetime):
        # stored datetimes are naive UTC
        aware = value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
        return aware.isoformat()
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def emit_audit_log(
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    actor_id: str,
    reservation_id: int,
    facility_id: Optional[int],
    user_id: Optional[str],
    start_time: Optional[datetime],
    duration_minutes: Optional[int],
    status_from: Optional[str],
    status_to: Optional[str],
    message: Optional[str] = None,
) -> None:
    """Write one audit record. Raises RuntimeError if the record could not be written.

    ``actor_id`` is who performed the change; ``user_id`` owns the reservation.
    They differ when an administrator cancels someone else's booking.
    """
    record = {
        "timestamp": datetime.now(timezone.utc),
        "level": "info",
        "action": action,
        "initiator": initiator,
        "actor_id": actor_id,
        "request_id": get_request_id(),
        "reservation_id": reservation_id,
        "facility_id": facility_id,
        "user_id": user_id,
        "start_time": start_time,
        "duration_minutes": duration_minutes,
        "status_from": status_from,
        "status_to": status_to,
        "message": message,
    }
    try:
        line = json.dumps(
            {key: value for key, value in record.items() if value is not None},
            default=_json_default,
            ensure_ascii=True,
        )
        _audit_logger.info(line)
    except Exception as exc:  # pragma: no cover - re-raised for the caller
        raise RuntimeError("failed to emit audit log") from exc
