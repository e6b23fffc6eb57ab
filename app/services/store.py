import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, MutableMapping, Optional

from app.core.errors import DuplicateBookingError, StoreError
from app.core.logger import logger
from app.core.rules import STORAGE_KEY
from app.models.booking import Booking, is_utf8_text, new_booking_id


class BookingStore(ABC):
    """
    Ordered, durable collection of bookings keyed by id.

    Backends only provide raw read/write of the serialized JSON array; the
    collection logic lives here so every backend honours the same contract.
    Each load-modify-save cycle runs under the store lock. The store does no
    authorization of its own.
    """

    def __init__(self):
        self._lock = threading.RLock()

    @abstractmethod
    def _read_raw(self) -> Optional[str]:
        """Return the serialized collection, or None if nothing is stored."""

    @abstractmethod
    def _write_raw(self, payload: str) -> None:
        """Replace the serialized collection. Must be all-or-nothing."""

    def _serialize(self, bookings: List[Booking]) -> str:
        return json.dumps([b.model_dump() for b in bookings])

    def _parse(self, raw: Optional[str]):
        """Returns (bookings, repaired). Corrupt payloads read as empty."""
        if not raw:
            return [], False
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("⚠️ Stored bookings are not valid JSON, treating as empty")
            return [], False
        if not isinstance(parsed, list):
            logger.warning("⚠️ Stored bookings are not a JSON array, treating as empty")
            return [], False

        bookings = []
        repaired = False
        for record in parsed:
            if not isinstance(record, dict):
                logger.warning(f"⚠️ Dropping non-object booking record: {record!r}")
                continue
            if not is_utf8_text(json.dumps(record, ensure_ascii=False)):
                logger.warning("⚠️ Dropping booking record with unencodable text")
                continue
            if not record.get("id"):
                record = {**record, "id": new_booking_id()}
                repaired = True
            bookings.append(Booking.model_validate(record))
        return bookings, repaired

    def load(self) -> List[Booking]:
        bookings, repaired = self._parse(self._read_raw())
        if not repaired:
            return bookings
        # Legacy records without ids: assign once and persist the fix
        with self._lock:
            bookings, repaired = self._parse(self._read_raw())
            if repaired:
                self.save(bookings)
                logger.info(f"🛠️ Assigned ids to legacy bookings ({len(bookings)} records)")
        return bookings

    def save(self, bookings: List[Booking]) -> None:
        with self._lock:
            try:
                self._write_raw(self._serialize(bookings))
            except StoreError:
                raise
            except Exception as e:
                logger.error(f"❌ Failed to persist bookings: {e}")
                raise StoreError() from e

    def list(self) -> List[Booking]:
        # sorted() is stable, so same-slot bookings keep insertion order
        return sorted(self.load(), key=lambda b: b.sort_key)

    def search(self, query: Optional[str] = None) -> List[Booking]:
        needle = (query or "").strip().lower()
        bookings = self.list()
        if not needle:
            return bookings
        return [
            b for b in bookings
            if needle in " ".join([b.name, b.service, b.email, b.phone]).lower()
        ]

    def get(self, booking_id: str) -> Optional[Booking]:
        for booking in self.load():
            if booking.id == booking_id:
                return booking
        return None

    def append(self, booking: Booking) -> Booking:
        with self._lock:
            bookings = self.load()
            if any(b.id == booking.id for b in bookings):
                raise DuplicateBookingError()
            bookings.append(booking)
            self.save(bookings)
        return booking

    def remove_by_id(self, booking_id: str) -> bool:
        with self._lock:
            before = self.load()
            after = [b for b in before if b.id != booking_id]
            if len(after) == len(before):
                return False
            self.save(after)
        return True

    def clear(self) -> None:
        with self._lock:
            self.save([])


class JsonFileStore(BookingStore):
    """Bookings as a pretty-printed JSON array in a single file."""

    def __init__(self, path):
        super().__init__()
        self.path = Path(path)
        self._ensure()

    def _ensure(self):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if not self.path.exists():
                self.path.write_text("[]", encoding="utf-8")
                logger.info(f"📁 Created empty booking store at {self.path}")
        except OSError as e:
            logger.critical(f"❌ Cannot initialise booking store at '{self.path}': {e}")
            raise StoreError("Booking storage is unavailable.") from e

    def _serialize(self, bookings: List[Booking]) -> str:
        return json.dumps([b.model_dump() for b in bookings], indent=2)

    def _read_raw(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError:
            logger.warning(f"⚠️ Booking store '{self.path}' is not UTF-8, treating as empty")
            return None
        except OSError as e:
            logger.error(f"❌ Cannot read booking store '{self.path}': {e}")
            raise StoreError("Unable to load bookings.") from e

    def _write_raw(self, payload: str) -> None:
        # Write to a sibling temp file and swap it in, so readers never see
        # a half-written array and a failed write leaves the old file intact.
        fd, tmp_path = tempfile.mkstemp(prefix=".bookings-", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise


class MappingStore(BookingStore):
    """
    Bookings as compact JSON under one key of a string mapping.
    This is the browser-local variant (localStorage); a plain dict works too.
    """

    def __init__(self, storage: Optional[MutableMapping[str, str]] = None, key: str = STORAGE_KEY):
        super().__init__()
        self.storage = {} if storage is None else storage
        self.key = key

    def _read_raw(self) -> Optional[str]:
        return self.storage.get(self.key)

    def _write_raw(self, payload: str) -> None:
        self.storage[self.key] = payload
