from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional

from app.core.errors import MissingBookingIdError
from app.core.logger import logger
from app.core.security import AccessGate
from app.models.booking import AdminSession, Booking, UnlockResult, ValidationResult
from app.services.store import BookingStore
from app.services.validator import validate_booking


class BookingService:
    """
    Sequences validator, access gate and store for every booking operation.
    Both the HTTP routes and the in-process API call through here.
    """

    def __init__(self, store: BookingStore, gate: AccessGate, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.gate = gate
        self.clock = clock

    def list_bookings(self, query: Optional[str] = None) -> List[Booking]:
        return self.store.search(query)

    def validate(self, raw: Optional[Mapping[str, Any]]) -> ValidationResult:
        return validate_booking(raw, now=self.clock())

    def create_booking(self, raw: Optional[Mapping[str, Any]]) -> ValidationResult:
        """
        Validate and persist. Invalid input never reaches the store.
        Raises StoreError if the write fails.
        """
        result = self.validate(raw)
        if not result.ok:
            logger.info(f"📝 Booking rejected: {sorted(result.errors)}")
            return result

        self.store.append(result.booking)
        logger.info(f"✅ Booking {result.booking.id} created for {result.booking.date} {result.booking.time}")
        return result

    def delete_booking(self, booking_id: str, session: Optional[AdminSession]) -> bool:
        self.gate.require(session)
        booking_id = (booking_id or "").strip()
        if not booking_id:
            raise MissingBookingIdError()

        removed = self.store.remove_by_id(booking_id)
        if removed:
            logger.info(f"🗑️ Booking {booking_id} deleted")
        else:
            logger.info(f"🔎 No booking matched id {booking_id}")
        return removed

    def clear_bookings(self, session: Optional[AdminSession]) -> None:
        self.gate.require(session)
        self.store.clear()
        logger.warning("🗑️ All bookings removed")

    def unlock(self, session: AdminSession, passcode: Optional[str]) -> UnlockResult:
        return self.gate.unlock(session, passcode)

    def lock(self, session: AdminSession) -> None:
        self.gate.lock(session)
