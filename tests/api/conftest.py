"""Fixtures for API tests: a TestClient over the shared runtime."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from assoc_scheduler.api import create_app


@pytest.fixture
def client(settings, runtime):
    app = create_app(settings, runtime=runtime)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def strategy_id(client) -> int:
    resp = client.post(
        "/api/v1/strategies",
        json={"name": "every-5-min", "schedule_type": "FIXED_RATE", "interval_seconds": 300, "time_zone": "UTC"},
    )
    assert resp.status_code == 201
    return resp.json()["data"]["id"]
