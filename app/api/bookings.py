from typing import Optional

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from app.api.dependencies import admin_session, get_booking_service, read_json_object
from app.models.booking import AdminSession
from app.models.responses import (
    BookingCreatedResponse,
    BookingListResponse,
    MessageResponse,
    ValidationFailedResponse,
    envelope,
)
from app.services.booking_service import BookingService
from app.services.validator import first_error

router = APIRouter(prefix="/bookings")


@router.get("")
def list_bookings(q: Optional[str] = None, service: BookingService = Depends(get_booking_service)):
    return envelope(BookingListResponse(bookings=service.list_bookings(q)))


@router.post("")
async def create_booking(request: Request, service: BookingService = Depends(get_booking_service)):
    # Body parsed by hand: a bad body is a 400, a bad booking is a 422
    payload = await read_json_object(request)
    result = await run_in_threadpool(service.create_booking, payload)

    if not result.ok:
        return envelope(
            ValidationFailedResponse(errors=result.errors, message=first_error(result.errors)),
            status_code=422,
        )
    return envelope(BookingCreatedResponse(booking=result.booking, message="Booking created."), status_code=201)


@router.delete("")
def clear_bookings(
    session: AdminSession = Depends(admin_session),
    service: BookingService = Depends(get_booking_service),
):
    service.clear_bookings(session)
    return envelope(MessageResponse(ok=True, message="All bookings removed."))


# `path` also matches the bare trailing slash, which must be a 400 rather
# than a redirect onto the clear-all route.
@router.delete("/{booking_id:path}")
def delete_booking(
    booking_id: str,
    session: AdminSession = Depends(admin_session),
    service: BookingService = Depends(get_booking_service),
):
    removed = service.delete_booking(booking_id, session)
    message = "Booking deleted." if removed else "No booking matched the id."
    return envelope(MessageResponse(ok=removed, removed=removed, message=message))
