"""Shared fixtures for farm-sync tests."""

from collections.abc import Generator
from typing import Any

import pytest

from farm_sync.models import ActivityType
from farm_sync.records import RecordStore
from farm_sync.remote import InMemoryRemote
from farm_sync.session import SessionStore

EMAIL = "ann@example.com"
PASSWORD = "secret-pw"
FULL_NAME = "Ann"


def crop_row(user_id: str, **kwargs: Any) -> dict[str, Any]:
    """Return a new crop row owned by the user."""
    return {
        "user_id": user_id,
        "name": "Maize",
        "planting_date": "2026-03-01",
        "status": "planted",
        **kwargs,
    }


def activity_row(user_id: str, **kwargs: Any) -> dict[str, Any]:
    """Return a new farm activity row owned by the user."""
    return {
        "user_id": user_id,
        "activity_type": ActivityType.WATERING,
        "description": "Watered the north field",
        "date": "2026-03-02",
        **kwargs,
    }


def weather_row(user_id: str, **kwargs: Any) -> dict[str, Any]:
    """Return a new weather row owned by the user."""
    return {
        "user_id": user_id,
        "location": "North field",
        "temperature": 21.5,
        "humidity": 60.0,
        "rainfall": 0.0,
        "wind_speed": 3.2,
        "weather_condition": "sunny",
        "recorded_at": "2026-03-02T08:00:00+00:00",
        **kwargs,
    }


@pytest.fixture
def remote() -> InMemoryRemote:
    """Create an in-memory remote for testing."""
    return InMemoryRemote()


@pytest.fixture
async def user_id(remote: InMemoryRemote) -> str:
    """Register and sign in a user directly on the remote."""
    response = await remote.sign_up(EMAIL, PASSWORD, {"full_name": FULL_NAME})
    assert response.identity
    return response.identity.id


@pytest.fixture
def record_store(remote: InMemoryRemote) -> RecordStore:
    """Create a record store backed by the in-memory remote."""
    return RecordStore(remote)


@pytest.fixture
def session_store(remote: InMemoryRemote) -> Generator[SessionStore, None, None]:
    """Create a session store backed by the in-memory remote."""
    store = SessionStore(remote)
    yield store
    store.close()
