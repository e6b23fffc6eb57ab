from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from app.core.rules import (
    BUSINESS_HOURS,
    DATE_PATTERN,
    PHONE_PATTERN,
    SERVICES,
    TIME_PATTERN,
    is_business_hours,
)
from app.models.booking import Booking, ValidationResult, is_utf8_text, new_booking_id

# Order in which a submitter sees errors: scheduling problems first.
ERROR_PRIORITY = ("time", "date_time", "date", "service", "email", "phone", "name")

GENERIC_ERROR = "Please complete all required fields correctly."


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def normalize(raw: Optional[Mapping[str, Any]]) -> Booking:
    """Coerce raw input to a Booking, trimming the free-text contact fields."""
    raw = raw if isinstance(raw, Mapping) else {}
    return Booking(
        id=_text(raw.get("id")) or new_booking_id(),
        name=_text(raw.get("name")).strip(),
        email=_text(raw.get("email")).strip(),
        phone=_text(raw.get("phone")).strip(),
        service=_text(raw.get("service")),
        date=_text(raw.get("date")),
        time=_text(raw.get("time")),
        notes=_text(raw.get("notes")).strip(),
    )


def validate_booking(raw: Optional[Mapping[str, Any]], now: Optional[datetime] = None) -> ValidationResult:
    """
    Validate raw booking input.

    Every independent field check runs, so one call reports all failing fields.
    The business-hours check only runs on a well-formed HH:MM time, and the
    future-instant check only runs once both date and time passed. Temporal
    failures are reported under `date_time` so they never mask a format error
    on `date`.

    `now` is the reference instant (local, naive); defaults to the wall clock.
    """
    booking = normalize(raw)
    errors: Dict[str, str] = {}

    if len(booking.name) < 2:
        errors["name"] = "Name must be at least 2 characters."
    if not booking.email or "@" not in booking.email:
        errors["email"] = "Email must be valid."
    if not PHONE_PATTERN.fullmatch(booking.phone):
        errors["phone"] = f"Phone must match {PHONE_PATTERN.pattern}."
    if booking.service not in SERVICES:
        errors["service"] = f"Service must be one of: {', '.join(SERVICES)}."
    if not DATE_PATTERN.fullmatch(booking.date):
        errors["date"] = "Date must use YYYY-MM-DD."
    if not TIME_PATTERN.fullmatch(booking.time):
        errors["time"] = "Time must use HH:MM."
    elif not is_business_hours(booking.time):
        errors["time"] = f"Time must be between {BUSINESS_HOURS['start']} and {BUSINESS_HOURS['end']}."

    if "date" not in errors and "time" not in errors:
        try:
            scheduled = datetime.strptime(f"{booking.date} {booking.time}", "%Y-%m-%d %H:%M")
        except ValueError:
            errors["date"] = "Date/time is not valid."
        else:
            if scheduled <= (now or datetime.now()):
                errors["date_time"] = "Date/time must be in the future."

    for field, value in booking.model_dump().items():
        if not is_utf8_text(value):
            errors[field] = "Contains characters that cannot be stored."

    return ValidationResult(ok=not errors, booking=booking, errors=errors)


def first_error(errors: Mapping[str, str]) -> str:
    """The single most actionable message for a submitter."""
    for key in ERROR_PRIORITY:
        if errors.get(key):
            return errors[key]
    for message in errors.values():
        if message:
            return message
    return GENERIC_ERROR
