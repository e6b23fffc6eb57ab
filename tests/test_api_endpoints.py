import asyncio
import json
from unittest.mock import patch

import httpx
import pytest
from starlette.requests import Request

from app.api.dependencies import read_json_object
from app.core.config import settings
from app.core.errors import MalformedRequestError, StoreError

PASSCODE = "admin123"

ADMIN = {"x-admin-passcode": PASSCODE}


def test_list_starts_empty(client):
    response = client.get("/api/bookings")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "bookings": []}
    assert response.headers["cache-control"] == "no-store"


def test_create_then_list_in_sorted_position(client, make_input):
    client.post("/api/bookings", json=make_input(date="2099-06-20", name="Later"))
    client.post("/api/bookings", json=make_input(date="2099-06-10", name="Sooner"))

    response = client.post("/api/bookings", json=make_input(date="2099-06-15"))
    assert response.status_code == 201
    data = response.json()
    assert data["ok"] is True
    assert data["message"] == "Booking created."
    assert data["booking"]["id"]

    names = [b["name"] for b in client.get("/api/bookings").json()["bookings"]]
    assert names == ["Sooner", "Ada Lovelace", "Later"]


def test_invalid_booking_is_422_with_field_errors(client, store):
    payload = {
        "name": "Al",
        "email": "no-at-sign",
        "phone": "123",
        "service": "Nope",
        "date": "2099-01-01",
        "time": "08:00",
    }
    response = client.post("/api/bookings", json=payload)

    assert response.status_code == 422
    data = response.json()
    assert data["ok"] is False
    assert set(data["errors"]) == {"email", "phone", "service", "time"}
    assert data["message"] == data["errors"]["time"]
    assert store.list() == []


def test_past_booking_reports_date_time(client, make_input):
    response = client.post("/api/bookings", json=make_input(date="2001-01-01"))
    assert response.status_code == 422
    assert set(response.json()["errors"]) == {"date_time"}


def test_unparsable_body_is_400(client):
    response = client.post(
        "/api/bookings",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json() == {"ok": False, "message": "Invalid JSON body."}


def test_non_object_body_is_400(client):
    response = client.post("/api/bookings", json=["name", "email"])
    assert response.status_code == 400
    assert response.json()["message"] == "Request body must be a JSON object."


def test_empty_body_is_a_validation_failure(client):
    response = client.post("/api/bookings")
    assert response.status_code == 422


def test_oversized_body_is_400(client, make_input, monkeypatch):
    monkeypatch.setattr(settings, "MAX_BODY_BYTES", 16)
    response = client.post("/api/bookings", json=make_input())
    assert response.status_code == 400
    assert response.json()["message"] == "Request body too large."


def test_store_failure_is_500_envelope(client, service, make_input):
    with patch.object(service.store, "append", side_effect=StoreError()):
        response = client.post("/api/bookings", json=make_input())

    assert response.status_code == 500
    assert response.json() == {"ok": False, "message": "Unable to save bookings."}


def test_duplicate_id_is_409(client, make_input):
    assert client.post("/api/bookings", json=make_input(id="dup")).status_code == 201
    response = client.post("/api/bookings", json=make_input(id="dup"))
    assert response.status_code == 409
    assert response.json()["ok"] is False


def test_clear_without_passcode_is_401_and_keeps_data(client, store, make_input):
    client.post("/api/bookings", json=make_input())

    response = client.delete("/api/bookings")
    assert response.status_code == 401
    assert response.json() == {"ok": False, "message": "Admin passcode required."}

    response = client.delete("/api/bookings", headers={"x-admin-passcode": "wrong"})
    assert response.status_code == 401
    assert len(store.list()) == 1


def test_clear_with_passcode(client, store, make_input):
    client.post("/api/bookings", json=make_input())

    response = client.delete("/api/bookings", headers=ADMIN)
    assert response.status_code == 200
    assert response.json() == {"ok": True, "message": "All bookings removed."}
    assert store.list() == []


def test_delete_one(client, make_input):
    booking_id = client.post("/api/bookings", json=make_input()).json()["booking"]["id"]

    assert client.delete(f"/api/bookings/{booking_id}").status_code == 401

    response = client.delete(f"/api/bookings/{booking_id}", headers=ADMIN)
    assert response.status_code == 200
    assert response.json() == {"ok": True, "removed": True, "message": "Booking deleted."}

    response = client.delete(f"/api/bookings/{booking_id}", headers=ADMIN)
    assert response.status_code == 200
    assert response.json() == {"ok": False, "removed": False, "message": "No booking matched the id."}


def test_delete_empty_id_is_400_not_clear_all(client, store, make_input):
    client.post("/api/bookings", json=make_input())

    for path in ("/api/bookings/", "/api/bookings/%20"):
        response = client.delete(path, headers=ADMIN)
        assert response.status_code == 400
        assert response.json() == {"ok": False, "message": "Booking id is required."}
    assert len(store.list()) == 1


def test_delete_checks_passcode_before_id(client):
    assert client.delete("/api/bookings/").status_code == 401


def test_unlock(client):
    response = client.post("/api/admin/unlock", json={"passcode": PASSCODE})
    assert response.status_code == 200
    assert response.json() == {"ok": True, "unlocked": True}

    response = client.post("/api/admin/unlock", json={"passcode": "nope"})
    assert response.status_code == 401
    assert response.json() == {"ok": False, "unlocked": False, "message": "Incorrect passcode."}
    assert PASSCODE not in response.text


def test_unlock_with_bad_body_is_400(client):
    response = client.post("/api/admin/unlock", content=b"passcode=admin123")
    assert response.status_code == 400


def test_search_query(client, make_input):
    client.post("/api/bookings", json=make_input(name="Grace Hopper"))
    client.post("/api/bookings", json=make_input(name="Alan Turing"))

    bookings = client.get("/api/bookings", params={"q": "turing"}).json()["bookings"]
    assert [b["name"] for b in bookings] == ["Alan Turing"]


def test_spec_and_health(client):
    spec = client.get("/api/spec").json()
    assert spec["ok"] is True
    assert spec["service_enum"] == ["Consultation", "Follow-up Session", "Premium Planning", "Virtual Meeting"]
    assert spec["constraints"]["business_hours_local"] == "09:00-17:00"
    assert "admin123" not in str(spec)

    assert client.get("/health").json()["status"] == "ok"


@pytest.mark.asyncio
async def test_concurrent_creates_are_all_persisted(api, store, make_input):
    transport = httpx.ASGITransport(app=api)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        responses = await asyncio.gather(*[
            ac.post("/api/bookings", json=make_input(name=f"Guest {i}"))
            for i in range(20)
        ])

    assert all(r.status_code == 201 for r in responses)
    assert len(store.list()) == 20


def post_raw_json(client, path, payload):
    # ensure_ascii keeps lone surrogates as \ud800 escapes on the wire
    return client.post(path, content=json.dumps(payload).encode("ascii"), headers={"Content-Type": "application/json"})


def test_unencodable_text_is_422_and_not_stored(client, store, make_input):
    response = post_raw_json(client, "/api/bookings", make_input(name="Ada \ud800"))

    assert response.status_code == 422
    assert set(response.json()["errors"]) == {"name"}
    assert store.list() == []

    listing = client.get("/api/bookings")
    assert listing.status_code == 200
    assert listing.json()["bookings"] == []


def test_unlock_with_unencodable_passcode_is_401(client):
    response = post_raw_json(client, "/api/admin/unlock", {"passcode": "\ud800"})

    assert response.status_code == 401
    assert response.json()["message"] == "Incorrect passcode."


@pytest.mark.asyncio
async def test_chunked_body_stops_at_limit(monkeypatch):
    monkeypatch.setattr(settings, "MAX_BODY_BYTES", 16)
    chunks = [
        {"type": "http.request", "body": b"x" * 10, "more_body": True},
        {"type": "http.request", "body": b"x" * 10, "more_body": True},
        {"type": "http.request", "body": b"x" * 10, "more_body": False},
    ]
    received = []

    async def receive():
        message = chunks.pop(0)
        received.append(message)
        return message

    scope = {"type": "http", "method": "POST", "path": "/api/bookings", "headers": [], "query_string": b""}
    with pytest.raises(MalformedRequestError):
        await read_json_object(Request(scope, receive))
    assert len(received) == 2
