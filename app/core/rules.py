"""
Booking rules shared by every variant (HTTP service, in-process API, client).
Keep these in one place so the server and the clients never drift apart.
"""
import re
from typing import Any, Dict

API_NAME = "NorthlineBookingAPI"
API_VERSION = "2.0.0"

SERVICES = (
    "Consultation",
    "Follow-up Session",
    "Premium Planning",
    "Virtual Meeting",
)

PHONE_PATTERN = re.compile(r"[0-9+()\-\s]{7,}")
DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)
TIME_PATTERN = re.compile(r"\d{2}:\d{2}", re.ASCII)

BUSINESS_HOURS = {"start": "09:00", "end": "17:00"}

REQUIRED_FIELDS = ("name", "email", "phone", "service", "date", "time")
OPTIONAL_FIELDS = ("notes",)

# Browser-local variant keys
STORAGE_KEY = "northline_bookings"
ADMIN_SESSION_KEY = "northline_admin_unlocked"

PASSCODE_HEADER = "x-admin-passcode"


def minutes_of_day(time_str: str) -> int:
    hour, minute = time_str.split(":")
    return int(hour) * 60 + int(minute)


def is_business_hours(time_str: str) -> bool:
    """
    True when an HH:MM string falls inside the business-hour window.
    Both ends are inclusive, so 17:00 is still bookable but 17:01 is not.
    """
    if not TIME_PATTERN.fullmatch(time_str):
        return False
    total = minutes_of_day(time_str)
    return minutes_of_day(BUSINESS_HOURS["start"]) <= total <= minutes_of_day(BUSINESS_HOURS["end"])


def describe_rules(api_base: str = "/api") -> Dict[str, Any]:
    """Self-description of the booking API, served at GET /api/spec."""
    return {
        "api_name": API_NAME,
        "version": API_VERSION,
        "transport": "http_json",
        "api_base": api_base,
        "methods": {
            "create_booking": f"POST {api_base}/bookings",
            "list_bookings": f"GET {api_base}/bookings",
            "delete_booking": f"DELETE {api_base}/bookings/{{id}}",
            "clear_bookings": f"DELETE {api_base}/bookings",
            "unlock_admin": f"POST {api_base}/admin/unlock",
        },
        "booking_fields": {
            "required": list(REQUIRED_FIELDS),
            "optional": list(OPTIONAL_FIELDS),
        },
        "service_enum": list(SERVICES),
        "constraints": {
            "phone_pattern": PHONE_PATTERN.pattern,
            "date_format": "YYYY-MM-DD",
            "time_format": "HH:MM",
            "business_hours_local": f"{BUSINESS_HOURS['start']}-{BUSINESS_HOURS['end']}",
            "date_time_must_be_future": True,
        },
    }
