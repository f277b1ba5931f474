"""Shared fixtures for the cart stream tests."""
from __future__ import annotations

import os
import shutil
from pathlib import Path

# Configure an isolated database before importing the app module.
_TEST_VAR_ROOT = Path(__file__).resolve().parent / "_tmp_var"
os.environ.setdefault("CARTSTREAM_DB_PATH", str((_TEST_VAR_ROOT / "cartstream.db").resolve()))

import pytest
from fastapi.testclient import TestClient

from ..core.events import EventBus
from ..main import app
from ..store import database
from ..store.models import Base


@pytest.fixture(scope="session", autouse=True)
def _var_root():
    _TEST_VAR_ROOT.mkdir(parents=True, exist_ok=True)
    yield
    database.ENGINE.dispose()
    shutil.rmtree(_TEST_VAR_ROOT, ignore_errors=True)


@pytest.fixture
def client() -> TestClient:
    Base.metadata.drop_all(database.ENGINE)
    Base.metadata.create_all(database.ENGINE)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def captured_events(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    bus: EventBus = app.state.bus
    events = []
    original_publish = bus.publish

    async def capture(event):
        events.append(event)
        return await original_publish(event)

    monkeypatch.setattr(bus, "publish", capture)
    return events
