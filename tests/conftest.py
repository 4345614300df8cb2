from __future__ import annotations

import os
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("SEND_LATENCY_SECONDS", "0")
os.environ.setdefault("STORAGE_BACKEND", "memory")

from portal_chat.core.config import Settings
from portal_chat.database.store import MemoryStore
from portal_chat.engine import ChatEngine, build_engine
from portal_chat.main import app as fastapi_app

T0 = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)

ADMIN_HEADERS = {"X-Viewer-Type": "admin", "X-Viewer-Id": "admin-1", "X-Viewer-Name": "Admin Support"}
INSTALLER_HEADERS = {"X-Viewer-Type": "installer", "X-Viewer-Id": "inst-1", "X-Viewer-Name": "Ali Khan"}


class FakeClock:
    """Advances one second per call so every timestamp is distinct."""

    def __init__(self, start: datetime = T0, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        self.current += self.step
        return self.current


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> Settings:
    return Settings(send_latency_seconds=0)


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def engine(store: MemoryStore, settings: Settings, clock: FakeClock) -> ChatEngine:
    return build_engine(store, settings, clock=clock)


@pytest.fixture()
def admin() -> dict:
    return {"id": "admin-1", "name": "Admin Support", "type": "admin"}


@pytest.fixture()
def installer_a() -> dict:
    return {"id": "inst-1", "name": "Ali Khan", "type": "installer"}


@pytest.fixture()
def installer_b() -> dict:
    return {"id": "inst-2", "name": "Bilal Ahmed", "type": "installer"}


@pytest.fixture()
def client() -> Iterator[TestClient]:
    with TestClient(fastapi_app) as test_client:
        yield test_client
