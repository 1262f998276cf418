import pytest
from fastapi.testclient import TestClient

from clock import VenueClock
from config import Settings
from helpers import NOW, VENUE_TZ
from main import create_app


@pytest.fixture
def clock():
    return VenueClock(VENUE_TZ, now=lambda: NOW)


@pytest.fixture
def settings():
    return Settings(venue_timezone=VENUE_TZ, seed_rooms=False)


@pytest.fixture
def app(settings, clock):
    return create_app(settings=settings, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def room(client):
    response = client.post("/admin/rooms", json={"name": "Room A", "capacity": 8})
    assert response.status_code == 201
    return response.json()
