import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app

API = "/api"


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = {
        "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        "DATA_DIR": tmp_path / "data",
        "ENVIRONMENT": "test",
        "BCRYPT_ROUNDS": 4,
        "RATE_LIMIT_REQUESTS": 10_000,
        "JWT_SECRET_KEY": "test-secret",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def write_sources(settings):
    """Write the three import files into the configured data directory."""

    def _write(bookings=None, rooming_lists=None, links=None):
        data_dir = settings.DATA_DIR
        data_dir.mkdir(parents=True, exist_ok=True)
        for name, records in (
            ("bookings.json", bookings),
            ("rooming-lists.json", rooming_lists),
            ("rooming-list-bookings.json", links),
        ):
            if records is not None:
                (data_dir / name).write_text(json.dumps(records), encoding="utf-8")
        return data_dir

    return _write


@pytest.fixture
def auth_headers(client):
    response = client.post(
        f"{API}/auth/register",
        json={"username": "planner", "email": "planner@example.com", "password": "secret123"},
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


def booking_payload(**overrides):
    payload = {
        "hotelId": 5,
        "eventId": 10,
        "guestName": "Jane Doe",
        "guestPhoneNumber": "5550001111",
        "checkInDate": "2024-03-01",
        "checkOutDate": "2024-03-04",
    }
    payload.update(overrides)
    return payload


def rooming_list_payload(**overrides):
    payload = {
        "eventId": 10,
        "hotelId": 5,
        "rfpName": "Spring Summit",
        "cutOffDate": "2024-02-01",
        "agreement_type": "leisure",
    }
    payload.update(overrides)
    return payload
