"""Tests for the event server module."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from mfcat35_bot.core.config import EventServerConfig
from mfcat35_bot.core.event_server import EventServer


@pytest.fixture
def event_handler():
    """Mock event handler."""
    return AsyncMock()


@pytest.fixture
def basic_config():
    """Basic event server config."""
    return EventServerConfig(enabled=True, host="127.0.0.1", port=8000, path="/qq/events")


def test_health_check(basic_config, event_handler):
    client = TestClient(EventServer(basic_config, event_handler).app)

    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_event_forwarded_to_handler(basic_config, event_handler):
    client = TestClient(EventServer(basic_config, event_handler).app)
    payload = {"post_type": "message", "message": "hi"}

    response = client.post("/qq/events", json=payload)

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    event_handler.assert_awaited_once_with(payload)


def test_invalid_json(basic_config, event_handler):
    client = TestClient(EventServer(basic_config, event_handler).app)

    response = client.post(
        "/qq/events", content=b"not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    event_handler.assert_not_awaited()


def test_non_object_payload_rejected(basic_config, event_handler):
    client = TestClient(EventServer(basic_config, event_handler).app)

    response = client.post("/qq/events", json=[1, 2])

    assert response.status_code == 400


@pytest.mark.parametrize(
    ("headers", "status"),
    [
        ({}, 401),
        ({"Authorization": "Bearer wrong"}, 403),
        ({"Authorization": "Bearer secret"}, 200),
        ({"Authorization": "secret"}, 200),
    ],
)
def test_access_token(basic_config, event_handler, headers, status):
    client = TestClient(EventServer(basic_config, event_handler, access_token="secret").app)

    response = client.post("/qq/events", json={"post_type": "message"}, headers=headers)

    assert response.status_code == status
    assert event_handler.await_count == (1 if status == 200 else 0)


def test_handler_failure_does_not_fail_request(basic_config):
    handler = AsyncMock(side_effect=RuntimeError("boom"))
    client = TestClient(EventServer(basic_config, handler).app)

    response = client.post("/qq/events", json={"post_type": "message"})

    assert response.status_code == 200
    handler.assert_awaited_once()


def test_custom_path(event_handler):
    config = EventServerConfig(path="/onebot")
    client = TestClient(EventServer(config, event_handler).app)

    assert client.post("/onebot", json={}).status_code == 200
    assert client.post("/qq/events", json={}).status_code == 404


@pytest.mark.anyio
async def test_disabled_server_returns_immediately(event_handler):
    server = EventServer(EventServerConfig(enabled=False), event_handler)

    await server.serve()

    assert server.is_running is False
