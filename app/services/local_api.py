"""
In-process booking API: the browser-local variant, with bookings kept under
one key of a string mapping (localStorage, or a plain dict) and the admin
session held by the API object for its lifetime.

Every method returns a plain envelope dict with an `ok` flag.
"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, MutableMapping, Optional

from app.core.config import settings
from app.core.errors import BookingError
from app.core.rules import describe_rules
from app.core.security import AccessGate
from app.models.booking import AdminSession
from app.services.booking_service import BookingService
from app.services.store import MappingStore
from app.services.validator import first_error

LOCKED_MESSAGE = "Admin session is locked."


def format_date_time(date_str: str, time_str: str) -> str:
    try:
        moment = datetime.strptime(f"{date_str} {time_str}", "%Y-%m-%d %H:%M")
    except ValueError:
        return f"{date_str} {time_str}".strip()
    return moment.strftime("%b %d, %Y %H:%M")


class LocalBookingAPI:
    def __init__(
        self,
        storage: Optional[MutableMapping[str, str]] = None,
        passcode: str = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        gate = AccessGate(settings.ADMIN_PASSCODE if passcode is None else passcode)
        self.service = BookingService(MappingStore(storage), gate, clock=clock)
        self.session = AdminSession()
        # Repair legacy records once, up front
        self.service.store.load()

    def get_sorted_bookings(self) -> List[Dict[str, Any]]:
        return [b.model_dump() for b in self.service.list_bookings()]

    def search_bookings(self, query: str) -> List[Dict[str, Any]]:
        return [b.model_dump() for b in self.service.list_bookings(query)]

    def validate_booking(self, payload: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        return self.service.validate(payload).model_dump()

    def create_booking(self, payload: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        try:
            result = self.service.create_booking(payload)
        except BookingError as e:
            return {"ok": False, "errors": {}, "message": e.message}

        if not result.ok:
            return {"ok": False, "errors": result.errors, "message": first_error(result.errors)}
        booking = result.booking
        return {
            "ok": True,
            "booking": booking.model_dump(),
            "message": f"Booked for {format_date_time(booking.date, booking.time)}.",
        }

    def delete_booking_by_id(self, booking_id: str) -> Dict[str, Any]:
        if not self.is_admin_unlocked():
            return {"ok": False, "message": LOCKED_MESSAGE}
        try:
            removed = self.service.delete_booking(booking_id, self.session)
        except BookingError as e:
            return {"ok": False, "message": e.message}
        return {
            "ok": removed,
            "removed": removed,
            "message": "Booking deleted." if removed else "No booking matched the id.",
        }

    def clear_bookings(self) -> Dict[str, Any]:
        if not self.is_admin_unlocked():
            return {"ok": False, "message": LOCKED_MESSAGE}
        try:
            self.service.clear_bookings(self.session)
        except BookingError as e:
            return {"ok": False, "message": e.message}
        return {"ok": True, "message": "All bookings removed."}

    def is_admin_unlocked(self) -> bool:
        return self.service.gate.is_unlocked(self.session)

    def unlock_admin(self, passcode: str) -> Dict[str, Any]:
        return self.service.unlock(self.session, passcode).model_dump(exclude_none=True)

    def lock_admin(self) -> Dict[str, Any]:
        self.service.lock(self.session)
        return {"ok": True, "unlocked": False}

    def get_spec(self) -> Dict[str, Any]:
        return describe_rules(settings.API_PREFIX)
