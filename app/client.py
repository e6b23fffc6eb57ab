"""
HTTP client for the booking service.

Mirrors the in-process API: every call returns an envelope dict with `ok`.
The admin session lives on the client; destructive calls are refused locally
while it is locked, and otherwise carry the passcode captured at unlock in the
x-admin-passcode header.
"""
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import requests

from app.core.logger import logger
from app.core.rules import PASSCODE_HEADER
from app.models.booking import AdminSession
from app.services.local_api import LOCKED_MESSAGE, format_date_time
from app.services.validator import first_error, validate_booking

UNREACHABLE_MESSAGE = "Unable to reach the booking service."


class BookingClient:
    def __init__(self, base_url: str = "http://127.0.0.1:8000", session=None, timeout: float = 10.0, api_prefix: str = "/api"):
        # `session` is anything with a requests.Session-style request()
        self.api_base = base_url.rstrip("/") + api_prefix
        self.http = session or requests.Session()
        self.timeout = timeout
        self.admin = AdminSession()
        self._passcode: Optional[str] = None

    def _request(self, method: str, path: str, payload=None, params=None, headers=None) -> Dict[str, Any]:
        try:
            response = self.http.request(
                method,
                f"{self.api_base}{path}",
                json=payload,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"❌ {method} {path} failed: {e}")
            return {"ok": False, "message": UNREACHABLE_MESSAGE}

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if response.status_code >= 400:
            return {**data, "ok": False}
        return data

    def _admin_headers(self) -> Dict[str, str]:
        return {PASSCODE_HEADER: self._passcode or ""}

    def get_sorted_bookings(self, query: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"q": query} if query else None
        response = self._request("GET", "/bookings", params=params)
        if not response.get("ok"):
            return []
        bookings = response.get("bookings")
        return bookings if isinstance(bookings, list) else []

    def validate_booking(self, payload: Optional[Mapping[str, Any]], now: Optional[datetime] = None) -> Dict[str, Any]:
        return validate_booking(payload, now=now).model_dump()

    def create_booking(self, payload: Optional[Mapping[str, Any]], now: Optional[datetime] = None) -> Dict[str, Any]:
        validation = validate_booking(payload, now=now)
        if not validation.ok:
            return {"ok": False, "errors": validation.errors, "message": first_error(validation.errors)}

        response = self._request("POST", "/bookings", payload=validation.booking.model_dump())
        if not response.get("ok"):
            return {
                "ok": False,
                "errors": response.get("errors") or {},
                "message": response.get("message") or "Unable to create booking.",
            }
        booking = response["booking"]
        return {
            "ok": True,
            "booking": booking,
            "message": f"Booked for {format_date_time(booking['date'], booking['time'])}.",
        }

    def delete_booking_by_id(self, booking_id: str) -> Dict[str, Any]:
        booking_id = str(booking_id or "").strip()
        if not booking_id:
            return {"ok": False, "message": "Booking id is required."}
        if not self.is_admin_unlocked():
            return {"ok": False, "message": LOCKED_MESSAGE}

        response = self._request("DELETE", f"/bookings/{quote(booking_id, safe='')}", headers=self._admin_headers())
        if "message" not in response:
            response["message"] = "Unable to delete booking."
        return response

    def clear_bookings(self) -> Dict[str, Any]:
        if not self.is_admin_unlocked():
            return {"ok": False, "message": LOCKED_MESSAGE}

        response = self._request("DELETE", "/bookings", headers=self._admin_headers())
        if not response.get("ok"):
            return {"ok": False, "message": response.get("message") or "Unable to clear bookings."}
        return response

    def is_admin_unlocked(self) -> bool:
        return self.admin.unlocked

    def unlock_admin(self, passcode: str) -> Dict[str, Any]:
        passcode = "" if passcode is None else str(passcode)
        response = self._request("POST", "/admin/unlock", payload={"passcode": passcode})
        if response.get("ok"):
            self.admin.open()
            self._passcode = passcode
            return {"ok": True, "unlocked": True}

        self.lock_admin()
        return {"ok": False, "unlocked": False, "message": response.get("message") or "Incorrect passcode."}

    def lock_admin(self) -> Dict[str, Any]:
        self.admin.close()
        self._passcode = None
        return {"ok": True, "unlocked": False}

    def get_spec(self) -> Dict[str, Any]:
        return self._request("GET", "/spec")
