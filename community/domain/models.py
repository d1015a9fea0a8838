"""Domain models for the city community service."""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")
URL_PATTERN = re.compile(r"^https?://\S+$")


class UserRole(StrEnum):
    SUPER_ADMIN = "super_admin"
    CITY_ADMIN = "city_admin"
    MEMBER = "member"


class RSVPStatus(StrEnum):
    YES = "yes"
    NO = "no"
    MAYBE = "maybe"


class ProjectMemberRole(StrEnum):
    LEAD = "lead"
    CONTRIBUTOR = "contributor"


class FeatureSlug(StrEnum):
    EVENTS = "events"
    BLOG = "blog"
    PROJECTS = "projects"
    NEWSLETTER = "newsletter"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _optional_url(value: Any) -> Any:
    """Empty strings clear the field; anything else must look like a URL."""
    if value is None or value == "":
        return None
    if not isinstance(value, str) or not URL_PATTERN.match(value):
        raise ValueError("must be a valid http(s) URL")
    return value


def _as_utc(value: datetime | None) -> datetime | None:
    """Read timestamps without an offset as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_email(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("Email is required")
    normalized = value.strip().lower()
    if not normalized:
        raise ValueError("Email is required")
    if len(normalized) > 320:
        raise ValueError("Email is too long")
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError("Please enter a valid email address")
    return normalized


# ---------------------------------------------------------------------------
# Tenants and people
# ---------------------------------------------------------------------------


class City(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    slug: str
    logo_url: str | None = None
    hero_image_url: str | None = None
    accent_color: str = "#6366f1"
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Profile(BaseModel):
    id: str
    email: str
    display_name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    linkedin_url: str | None = None
    github_url: str | None = None
    website_url: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class UserCityRole(BaseModel):
    id: str = Field(default_factory=_new_id)
    user_id: str
    city_id: str
    role: UserRole = UserRole.MEMBER
    joined_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Feature content
# ---------------------------------------------------------------------------


class Post(BaseModel):
    id: str = Field(default_factory=_new_id)
    city_id: str
    title: str
    slug: str
    content: str | None = None
    excerpt: str | None = None
    featured_image_url: str | None = None
    published_at: datetime | None = None
    is_featured: bool = False
    created_by: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_published(self) -> bool:
        return self.published_at is not None


class CityEvent(BaseModel):
    """A community meetup or gathering (not a bus event)."""

    id: str = Field(default_factory=_new_id)
    city_id: str
    title: str
    slug: str
    description: str | None = None
    starts_at: datetime
    ends_at: datetime | None = None
    location_name: str | None = None
    location_address: str | None = None
    location_url: str | None = None
    max_attendees: int | None = None
    created_by: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    check_times = field_validator("starts_at", "ends_at")(_as_utc)

    @model_validator(mode="after")
    def _end_after_start(self) -> CityEvent:
        if self.ends_at is not None and self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        return self


class EventRSVP(BaseModel):
    id: str = Field(default_factory=_new_id)
    event_id: str
    user_id: str
    status: RSVPStatus
    created_at: datetime = Field(default_factory=_utcnow)


class Project(BaseModel):
    id: str = Field(default_factory=_new_id)
    city_id: str
    title: str
    slug: str
    description: str | None = None
    problem_statement: str | None = None
    solution: str | None = None
    github_url: str | None = None
    demo_url: str | None = None
    image_url: str | None = None
    is_featured: bool = False
    created_by: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class ProjectMember(BaseModel):
    id: str = Field(default_factory=_new_id)
    project_id: str
    user_id: str
    role: ProjectMemberRole = ProjectMemberRole.CONTRIBUTOR
    created_at: datetime = Field(default_factory=_utcnow)


class NewsletterSubscriber(BaseModel):
    id: str = Field(default_factory=_new_id)
    city_id: str
    email: str
    is_active: bool = True
    subscribed_at: datetime = Field(default_factory=_utcnow)
    unsubscribed_at: datetime | None = None


class CityFeature(BaseModel):
    """Stored toggle for one feature in one city; no row means enabled."""

    id: str = Field(default_factory=_new_id)
    city_id: str
    feature_slug: FeatureSlug
    is_enabled: bool = True
    updated_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class VerifiedUserRequest(BaseModel):
    user_id: str = Field(min_length=1)
    email: str

    check_email = field_validator("email", mode="before")(normalize_email)


class ProfileUpdate(BaseModel):
    display_name: str | None = Field(default=None, max_length=100)
    avatar_url: str | None = None
    bio: str | None = Field(default=None, max_length=2000)
    linkedin_url: str | None = None
    github_url: str | None = None
    website_url: str | None = None

    check_urls = field_validator(
        "avatar_url", "linkedin_url", "github_url", "website_url", mode="before"
    )(_optional_url)


class CityCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str | None = None
    accent_color: str = "#6366f1"
    hero_image_url: str | None = None
    logo_url: str | None = None

    @field_validator("accent_color")
    @classmethod
    def _validate_color(cls, value: str) -> str:
        if not HEX_COLOR_PATTERN.match(value):
            raise ValueError("accent_color must be a hex color like #6366f1")
        return value

    check_urls = field_validator("hero_image_url", "logo_url", mode="before")(
        _optional_url
    )


class CityUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    accent_color: str | None = None
    hero_image_url: str | None = None
    logo_url: str | None = None

    @field_validator("accent_color")
    @classmethod
    def _validate_color(cls, value: str | None) -> str | None:
        if value is not None and not HEX_COLOR_PATTERN.match(value):
            raise ValueError("accent_color must be a hex color like #6366f1")
        return value

    check_urls = field_validator("hero_image_url", "logo_url", mode="before")(
        _optional_url
    )


class AddCityMemberRequest(BaseModel):
    user_id: str = Field(min_length=1)
    role: UserRole = UserRole.MEMBER


class PostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str | None = Field(default=None, max_length=100_000)
    excerpt: str | None = Field(default=None, max_length=500)
    featured_image_url: str | None = None

    check_url = field_validator("featured_image_url", mode="before")(_optional_url)


class PostUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    content: str | None = Field(default=None, max_length=100_000)
    excerpt: str | None = Field(default=None, max_length=500)
    featured_image_url: str | None = None

    check_url = field_validator("featured_image_url", mode="before")(_optional_url)


class CityEventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=10_000)
    starts_at: datetime
    ends_at: datetime | None = None
    location_name: str | None = Field(default=None, max_length=200)
    location_address: str | None = Field(default=None, max_length=500)
    location_url: str | None = None
    max_attendees: int | None = Field(default=None, gt=0)

    check_url = field_validator("location_url", mode="before")(_optional_url)
    check_times = field_validator("starts_at", "ends_at")(_as_utc)

    @model_validator(mode="after")
    def _end_after_start(self) -> CityEventCreate:
        if self.ends_at is not None and self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        return self


class CityEventUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=10_000)
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    location_name: str | None = Field(default=None, max_length=200)
    location_address: str | None = Field(default=None, max_length=500)
    location_url: str | None = None
    max_attendees: int | None = Field(default=None, gt=0)

    check_url = field_validator("location_url", mode="before")(_optional_url)
    check_times = field_validator("starts_at", "ends_at")(_as_utc)


class RSVPRequest(BaseModel):
    status: RSVPStatus


class CityEventWithCounts(CityEvent):
    rsvp_yes_count: int = 0
    rsvp_no_count: int = 0
    rsvp_maybe_count: int = 0
    total_rsvps: int = 0


class ProjectCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=10_000)
    problem_statement: str | None = Field(default=None, max_length=2000)
    solution: str | None = Field(default=None, max_length=2000)
    github_url: str | None = None
    demo_url: str | None = None
    image_url: str | None = None

    check_urls = field_validator(
        "github_url", "demo_url", "image_url", mode="before"
    )(_optional_url)


class ProjectUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=10_000)
    problem_statement: str | None = Field(default=None, max_length=2000)
    solution: str | None = Field(default=None, max_length=2000)
    github_url: str | None = None
    demo_url: str | None = None
    image_url: str | None = None

    check_urls = field_validator(
        "github_url", "demo_url", "image_url", mode="before"
    )(_optional_url)


class ProjectWithMembers(Project):
    members: list[ProjectMember] = Field(default_factory=list)


class ProjectMemberRequest(BaseModel):
    user_id: str = Field(min_length=1)
    role: ProjectMemberRole = ProjectMemberRole.CONTRIBUTOR


class MemberRoleUpdate(BaseModel):
    role: ProjectMemberRole


class SubscribeRequest(BaseModel):
    email: str

    check_email = field_validator("email", mode="before")(normalize_email)


class CSVExport(BaseModel):
    csv: str
    count: int


class FeatureToggleRequest(BaseModel):
    is_enabled: bool


class CityStats(BaseModel):
    member_count: int = 0
    event_count: int = 0
    project_count: int = 0
    post_count: int = 0


class GlobalStats(BaseModel):
    city_count: int = 0
    member_count: int = 0
    event_count: int = 0
    project_count: int = 0
