from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Optional, List, Dict, Literal

from app.models.booking import Booking

# Every response carries `ok`; failures add `message` and/or `errors`.

class BookingListResponse(BaseModel):
    ok: Literal[True] = True
    bookings: List[Booking]

class BookingCreatedResponse(BaseModel):
    ok: Literal[True] = True
    booking: Booking
    message: str

class ValidationFailedResponse(BaseModel):
    ok: Literal[False] = False
    errors: Dict[str, str]
    message: Optional[str] = None

class MessageResponse(BaseModel):
    ok: bool
    message: str
    removed: Optional[bool] = None

class UnlockResponse(BaseModel):
    ok: bool
    unlocked: bool
    message: Optional[str] = None


def envelope(model: BaseModel, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=model.model_dump(mode="json", exclude_none=True),
        headers={"Cache-Control": "no-store"},
    )
