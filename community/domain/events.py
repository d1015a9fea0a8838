"""Domain events published after a successful write.

Every variant carries a ``name`` literal, which is both the bus routing key
and the discriminator of the ``DomainEvent`` union.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class DomainEventBase(BaseModel):
    """Common base. Subclasses must declare ``name`` as a defaulted field."""

    model_config = ConfigDict(frozen=True)

    name: str


def event_name(event_type: type[DomainEventBase]) -> str:
    """Return the routing key declared by an event class."""
    return event_type.model_fields["name"].default


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserCreated(DomainEventBase):
    """Fired when a verified identity gets its profile for the first time."""

    name: Literal["user:created"] = "user:created"
    user_id: str
    email: str


class UserUpdated(DomainEventBase):
    name: Literal["user:updated"] = "user:updated"
    user_id: str


class UserJoinedCity(DomainEventBase):
    name: Literal["user:joined_city"] = "user:joined_city"
    user_id: str
    city_id: str
    role: str


class UserLeftCity(DomainEventBase):
    name: Literal["user:left_city"] = "user:left_city"
    user_id: str
    city_id: str


# ---------------------------------------------------------------------------
# Community events
# ---------------------------------------------------------------------------


class EventCreated(DomainEventBase):
    name: Literal["event:created"] = "event:created"
    event_id: str
    city_id: str
    created_by: str


class EventUpdated(DomainEventBase):
    name: Literal["event:updated"] = "event:updated"
    event_id: str
    city_id: str
    updated_by: str


class EventDeleted(DomainEventBase):
    name: Literal["event:deleted"] = "event:deleted"
    event_id: str
    city_id: str
    deleted_by: str


class RSVPAdded(DomainEventBase):
    """Fired on a user's first RSVP to an event."""

    name: Literal["event:rsvp_added"] = "event:rsvp_added"
    event_id: str
    user_id: str
    status: Literal["yes", "no", "maybe"]


class RSVPUpdated(DomainEventBase):
    name: Literal["event:rsvp_updated"] = "event:rsvp_updated"
    event_id: str
    user_id: str
    status: Literal["yes", "no", "maybe"]


class RSVPRemoved(DomainEventBase):
    name: Literal["event:rsvp_removed"] = "event:rsvp_removed"
    event_id: str
    user_id: str


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class ProjectSubmitted(DomainEventBase):
    name: Literal["project:submitted"] = "project:submitted"
    project_id: str
    city_id: str
    created_by: str


class ProjectUpdated(DomainEventBase):
    name: Literal["project:updated"] = "project:updated"
    project_id: str
    city_id: str
    updated_by: str


class ProjectDeleted(DomainEventBase):
    name: Literal["project:deleted"] = "project:deleted"
    project_id: str
    city_id: str
    deleted_by: str


class ProjectFeatured(DomainEventBase):
    name: Literal["project:featured"] = "project:featured"
    project_id: str
    city_id: str
    featured_by: str


class ProjectUnfeatured(DomainEventBase):
    name: Literal["project:unfeatured"] = "project:unfeatured"
    project_id: str
    city_id: str


# ---------------------------------------------------------------------------
# Blog
# ---------------------------------------------------------------------------


class PostPublished(DomainEventBase):
    """Fired only on the draft -> published transition."""

    name: Literal["post:published"] = "post:published"
    post_id: str
    city_id: str
    author_id: str
    title: str


class PostUnpublished(DomainEventBase):
    name: Literal["post:unpublished"] = "post:unpublished"
    post_id: str
    city_id: str


class PostUpdated(DomainEventBase):
    name: Literal["post:updated"] = "post:updated"
    post_id: str
    city_id: str
    updated_by: str


class PostDeleted(DomainEventBase):
    name: Literal["post:deleted"] = "post:deleted"
    post_id: str
    city_id: str
    deleted_by: str


class PostFeatured(DomainEventBase):
    name: Literal["post:featured"] = "post:featured"
    post_id: str
    city_id: str
    featured_by: str


# ---------------------------------------------------------------------------
# Newsletter
# ---------------------------------------------------------------------------


class SubscriberAdded(DomainEventBase):
    name: Literal["subscriber:added"] = "subscriber:added"
    email: str
    city_id: str


class SubscriberRemoved(DomainEventBase):
    name: Literal["subscriber:removed"] = "subscriber:removed"
    email: str
    city_id: str


# ---------------------------------------------------------------------------
# Cities
# ---------------------------------------------------------------------------


class CityCreated(DomainEventBase):
    name: Literal["city:created"] = "city:created"
    city_id: str
    city_name: str
    created_by: str


class CityUpdated(DomainEventBase):
    name: Literal["city:updated"] = "city:updated"
    city_id: str
    updated_by: str


class CityDeactivated(DomainEventBase):
    name: Literal["city:deactivated"] = "city:deactivated"
    city_id: str
    deactivated_by: str


DomainEvent = Annotated[
    Union[
        UserCreated,
        UserUpdated,
        UserJoinedCity,
        UserLeftCity,
        EventCreated,
        EventUpdated,
        EventDeleted,
        RSVPAdded,
        RSVPUpdated,
        RSVPRemoved,
        ProjectSubmitted,
        ProjectUpdated,
        ProjectDeleted,
        ProjectFeatured,
        ProjectUnfeatured,
        PostPublished,
        PostUnpublished,
        PostUpdated,
        PostDeleted,
        PostFeatured,
        SubscriberAdded,
        SubscriberRemoved,
        CityCreated,
        CityUpdated,
        CityDeactivated,
    ],
    Field(discriminator="name"),
]

_domain_event_adapter: TypeAdapter[DomainEvent] = TypeAdapter(DomainEvent)

KNOWN_EVENT_NAMES: frozenset[str] = frozenset(
    event_name(variant) for variant in get_args(get_args(DomainEvent)[0])
)


def parse_event(data: dict[str, Any]) -> DomainEventBase:
    """Validate a raw payload (with its ``name``) into the matching variant."""
    return _domain_event_adapter.validate_python(data)
