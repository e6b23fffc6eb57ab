from fastapi import APIRouter, Depends, Request

from app.api.dependencies import get_booking_service, read_json_object
from app.models.booking import AdminSession
from app.models.responses import UnlockResponse, envelope
from app.services.booking_service import BookingService

router = APIRouter(prefix="/admin")


@router.post("/unlock")
async def unlock(request: Request, service: BookingService = Depends(get_booking_service)):
    """
    Checks a passcode. The server keeps no session: callers prove themselves
    again on every destructive request with the x-admin-passcode header.
    """
    payload = await read_json_object(request)
    result = service.unlock(AdminSession(), payload.get("passcode"))
    return envelope(
        UnlockResponse(ok=result.ok, unlocked=result.unlocked, message=result.message),
        status_code=200 if result.ok else 401,
    )
