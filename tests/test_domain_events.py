"""Tests for the typed domain events."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from community.domain.events import (
    KNOWN_EVENT_NAMES,
    CityCreated,
    PostPublished,
    RSVPAdded,
    RSVPUpdated,
    event_name,
    parse_event,
)


def test_known_event_names_cover_the_catalogue():
    assert len(KNOWN_EVENT_NAMES) == 25
    assert {
        "user:created",
        "event:rsvp_added",
        "event:rsvp_updated",
        "project:unfeatured",
        "city:deactivated",
    } <= KNOWN_EVENT_NAMES


def test_parse_event_picks_the_variant_from_its_name():
    event = parse_event(
        {"name": "event:rsvp_added", "event_id": "e1", "user_id": "u1", "status": "maybe"}
    )
    assert isinstance(event, RSVPAdded)
    assert event.status == "maybe"

    updated = parse_event(
        {"name": "event:rsvp_updated", "event_id": "e1", "user_id": "u1", "status": "no"}
    )
    assert isinstance(updated, RSVPUpdated)


def test_parse_event_rejects_unknown_names():
    with pytest.raises(ValidationError):
        parse_event({"name": "order:created", "id": "a"})


def test_parse_event_rejects_missing_payload_fields():
    with pytest.raises(ValidationError):
        parse_event({"name": "post:published", "post_id": "p1", "city_id": "c1"})


def test_rsvp_status_is_restricted():
    with pytest.raises(ValidationError):
        RSVPAdded(event_id="e1", user_id="u1", status="perhaps")


def test_events_are_immutable():
    event = PostPublished(post_id="p1", city_id="c1", author_id="u1", title="Hi")
    with pytest.raises(ValidationError):
        event.title = "Changed"


def test_city_created_round_trips_through_parse_event():
    original = CityCreated(city_id="c1", city_name="Perth", created_by="u1")
    assert parse_event(original.model_dump()) == original
    assert event_name(CityCreated) == "city:created"
