from typing import Optional, Dict, Any
from datetime import datetime
from uuid import uuid4
from pydantic import BaseModel, ConfigDict, Field, field_validator


def new_booking_id() -> str:
    return str(uuid4())


def is_utf8_text(value: str) -> bool:
    """False for text holding lone surrogates, which JSON allows but UTF-8 cannot carry."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


class Booking(BaseModel):
    # Unknown keys on stored records are kept and written back untouched
    model_config = ConfigDict(extra="allow")

    id: str = Field(default_factory=new_booking_id)
    name: str = ""
    email: str = ""
    phone: str = ""
    service: str = ""
    date: str = ""   # YYYY-MM-DD
    time: str = ""   # HH:MM, 24h
    notes: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> str:
        # Persisted records may carry numbers or nulls from older clients
        return "" if value is None else str(value)

    @property
    def sort_key(self) -> str:
        return f"{self.date}{self.time}"


class ValidationResult(BaseModel):
    ok: bool
    booking: Booking
    errors: Dict[str, str] = Field(default_factory=dict)


class AdminSession(BaseModel):
    """Transient admin authorization state. Never persisted."""
    unlocked: bool = False
    unlocked_at: Optional[datetime] = None

    def open(self):
        self.unlocked = True
        self.unlocked_at = datetime.now()

    def close(self):
        self.unlocked = False
        self.unlocked_at = None


class UnlockResult(BaseModel):
    ok: bool
    unlocked: bool
    message: Optional[str] = None
