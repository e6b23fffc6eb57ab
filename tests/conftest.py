import os
import tempfile

# Keep the app's default store and error log out of the working tree
os.environ.setdefault("DATA_FILE", os.path.join(tempfile.mkdtemp(prefix="northline-"), "bookings.json"))
os.environ.setdefault("LOG_FILE", "")

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.api.dependencies import get_booking_service
from app.core.security import AccessGate
from app.services.booking_service import BookingService
from app.services.store import JsonFileStore

PASSCODE = "admin123"


@pytest.fixture
def make_input():
    def _make(**overrides):
        payload = {
            "name": "Ada Lovelace",
            "email": "ada@example.com",
            "phone": "+44 (20) 7946-0018",
            "service": "Consultation",
            "date": "2099-06-15",
            "time": "10:30",
            "notes": "First visit",
        }
        payload.update(overrides)
        return payload
    return _make


@pytest.fixture
def store(tmp_path):
    return JsonFileStore(tmp_path / "data" / "bookings.json")


@pytest.fixture
def service(store):
    return BookingService(store, AccessGate(PASSCODE))


@pytest.fixture
def api(service):
    app.dependency_overrides[get_booking_service] = lambda: service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(api):
    return TestClient(api)
