"""iCalendar (RFC 5545) rendering of a single reservation."""

from datetime import datetime

from ..models import Reservation, ReservationStatus
from .time import format_duration

PRODID = "-//Reservo//Reservation System//EN"
UID_DOMAIN = "reservo.app"


def _ics_datetime(dt: datetime) -> str:
    # naive UTC in, UTC "Z" form out
    return dt.strftime("%Y%m%dT%H%M%SZ")


def _escape_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def build_ics(reservation: Reservation, *, facility_name: str, stamp: datetime) -> str:
    status = reservation.status.value if isinstance(reservation.status, ReservationStatus) else reservation.status
    summary = _escape_text(f"Reservation: {facility_name}")
    description = "\\n".join(
        [
            f"Facility: {_escape_text(facility_name)}",
            f"Status: {status}",
            f"Duration: {format_duration(reservation.duration_minutes)}",
        ]
    )
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:reservation-{reservation.id}@{UID_DOMAIN}",
        f"DTSTAMP:{_ics_datetime(stamp)}",
        f"DTSTART:{_ics_datetime(reservation.start_time)}",
        f"DTEND:{_ics_datetime(reservation.end_time)}",
        f"SUMMARY:{summary}",
        f"DESCRIPTION:{description}",
        f"STATUS:{'CONFIRMED' if status == ReservationStatus.CONFIRMED else 'CANCELLED'}",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines) + "\r\n"
