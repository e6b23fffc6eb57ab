import json
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Depends, Header, Request

from app.core.config import settings
from app.core.errors import MalformedRequestError
from app.core.security import AccessGate
from app.models.booking import AdminSession
from app.services.booking_service import BookingService
from app.services.store import JsonFileStore


@lru_cache(maxsize=1)
def get_booking_service() -> BookingService:
    """Process-wide service over the JSON file store (one store lock per process)."""
    return BookingService(
        store=JsonFileStore(settings.DATA_FILE),
        gate=AccessGate(settings.ADMIN_PASSCODE),
    )


def admin_session(
    x_admin_passcode: Optional[str] = Header(None),
    service: BookingService = Depends(get_booking_service),
) -> AdminSession:
    """
    Per-request admin session built from the x-admin-passcode header.
    Rejects with 401 before the route body runs, so nothing is mutated.
    """
    session = service.gate.session_for(x_admin_passcode)
    service.gate.require(session)
    return session


async def read_json_object(request: Request) -> Dict[str, Any]:
    limit = settings.MAX_BODY_BYTES
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise MalformedRequestError("Request body too large.")

    # Stop reading as soon as the limit is crossed (chunked bodies)
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise MalformedRequestError("Request body too large.")

    if not body.strip():
        return {}
    try:
        payload = json.loads(body)
    except ValueError as e:
        raise MalformedRequestError() from e
    if not isinstance(payload, dict):
        raise MalformedRequestError("Request body must be a JSON object.")
    return payload
