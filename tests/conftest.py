# tests/conftest.py
"""
Shared fixtures: temporary data directory, fake clocks and a mocked geocoding session.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Generator
from unittest.mock import MagicMock

import pytest

# Set before importing the app so the module-level instance does not warn
os.environ.setdefault("SESSION_SECRET", "test-session-secret")

from fastapi.testclient import TestClient

from src.api.app import create_app
from src.auth.credentials import hash_password
from src.config import Settings
from src.db.store import EmployeeStore
from src.geocoding.nominatim import GeocodeCache


MANAGER_USERNAME = "manager"
MANAGER_PASSWORD = "correct horse battery staple"

LONDON_RESPONSE = {
    "display_name": "London, Greater London, England, United Kingdom",
    "address": {"city": "London", "state": "England", "country": "United Kingdom"},
}


class FakeClock:
    """Monotonic-style clock returning seconds."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUtcClock:
    """Clock returning aware UTC datetimes."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_response(status_code: int = 200, payload: Any = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(data_dir=tmp_path / "data", session_secret="test-session-secret")


@pytest.fixture
def http_session() -> MagicMock:
    session = MagicMock()
    session.get.return_value = make_response(payload=LONDON_RESPONSE)
    return session


@pytest.fixture
def geo_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def utc_clock() -> FakeUtcClock:
    return FakeUtcClock()


@pytest.fixture
def geocoder(http_session: MagicMock, geo_clock: FakeClock) -> GeocodeCache:
    return GeocodeCache(session=http_session, clock=geo_clock)


@pytest.fixture
def store(settings: Settings) -> EmployeeStore:
    employee_store = EmployeeStore(settings.employees_file)
    employee_store.ensure_file()
    return employee_store


@pytest.fixture
def password_file(settings: Settings) -> Path:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.password_file.write_text(
        f"{MANAGER_USERNAME}:{hash_password(MANAGER_PASSWORD, rounds=4)}\n", encoding="utf-8"
    )
    return settings.password_file


@pytest.fixture
def client(settings: Settings, geocoder: GeocodeCache, utc_clock: FakeUtcClock) -> Generator[TestClient, None, None]:
    app = create_app(settings=settings, geocoder=geocoder, clock=utc_clock)
    with TestClient(app) as test_client:
        yield test_client
