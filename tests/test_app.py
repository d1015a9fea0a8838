"""Tests for application wiring: health, error mapping and the lifespan."""

from __future__ import annotations

import logging

import pytest
import structlog
from fastapi.testclient import TestClient

from conftest import ADELAIDE, MEMBER, as_user
from community.domain.handlers import initialize_all_listeners
from community.main import app, event_bus

pytestmark = pytest.mark.usefixtures("app_state")


@pytest.fixture()
def restore_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_health_reports_subscriber_counts(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["subscribers"]["post:published"] == 1
    assert body["subscribers"]["city:created"] == 3
    assert body["subscribers"]["user:joined_city"] == 3
    assert "user:created" not in body["subscribers"]


def test_listeners_are_already_initialized_at_import():
    assert initialize_all_listeners(event_bus) is False
    assert event_bus.subscriber_count("city:created") == 3


def test_service_errors_map_to_detail_responses(client):
    resp = client.post(f"/cities/{ADELAIDE}/posts/missing/publish", headers=as_user(MEMBER))
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Post not found or access denied"}


def test_lifespan_binds_and_drains_the_bus(restore_logging):
    with TestClient(app) as client:
        assert event_bus._loop is not None
        resp = client.post(
            f"/cities/{ADELAIDE}/newsletter/subscribe", json={"email": "loop@example.com"}
        )
        assert resp.status_code == 201

    assert event_bus._loop is None
    assert event_bus.pending_count == 0
