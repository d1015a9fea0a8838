"""FastAPI application: entry point for the city community service."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

import structlog
from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from community.config import Settings
from community.domain.bus import EventBus
from community.domain.handlers import initialize_all_listeners
from community.domain.models import (
    AddCityMemberRequest,
    City,
    CityCreate,
    CityEvent,
    CityEventCreate,
    CityEventUpdate,
    CityEventWithCounts,
    CityFeature,
    CityStats,
    CityUpdate,
    CSVExport,
    EventRSVP,
    FeatureSlug,
    FeatureToggleRequest,
    GlobalStats,
    MemberRoleUpdate,
    NewsletterSubscriber,
    Post,
    PostCreate,
    PostUpdate,
    Profile,
    ProfileUpdate,
    Project,
    ProjectCreate,
    ProjectMember,
    ProjectMemberRequest,
    ProjectUpdate,
    ProjectWithMembers,
    RSVPRequest,
    SubscribeRequest,
    UserCityRole,
    VerifiedUserRequest,
)
from community.errors import CommunityError
from community.logging_utils import configure_logging
from community.repos.memory import (
    CityEventRepository,
    CityFeatureRepository,
    CityRepository,
    PostRepository,
    ProfileRepository,
    ProjectMemberRepository,
    ProjectRepository,
    RoleRepository,
    RSVPRepository,
    SubscriberRepository,
    seed_cities,
)
from community.services.access import AccessPolicy
from community.services.accounts import AccountService
from community.services.blog import BlogService
from community.services.events import CityEventService
from community.services.newsletter import NewsletterService
from community.services.projects import ProjectService
from community.services.settings import SettingsService
from community.services.stats import StatsService

logger = structlog.get_logger(__name__)

# ── Singletons (created at import time for simplicity) ────────────────
settings = Settings.from_env()

event_bus = EventBus(handler_timeout=settings.handler_timeout_seconds)
city_repo = CityRepository()
profile_repo = ProfileRepository()
role_repo = RoleRepository()
post_repo = PostRepository()
event_repo = CityEventRepository()
rsvp_repo = RSVPRepository()
project_repo = ProjectRepository()
project_member_repo = ProjectMemberRepository()
subscriber_repo = SubscriberRepository()
feature_repo = CityFeatureRepository()

access = AccessPolicy(city_repo=city_repo, role_repo=role_repo)
accounts = AccountService(
    bus=event_bus,
    access=access,
    profile_repo=profile_repo,
    city_repo=city_repo,
    role_repo=role_repo,
)
blog = BlogService(bus=event_bus, access=access, post_repo=post_repo)
events = CityEventService(bus=event_bus, access=access, event_repo=event_repo, rsvp_repo=rsvp_repo)
projects = ProjectService(
    bus=event_bus,
    access=access,
    project_repo=project_repo,
    member_repo=project_member_repo,
)
newsletter = NewsletterService(bus=event_bus, access=access, subscriber_repo=subscriber_repo)
city_settings = SettingsService(access=access, feature_repo=feature_repo)
stats = StatsService(
    access=access,
    city_repo=city_repo,
    profile_repo=profile_repo,
    role_repo=role_repo,
    event_repo=event_repo,
    project_repo=project_repo,
    post_repo=post_repo,
)

if settings.seed_cities:
    seed_cities(city_repo)
if settings.super_admin_id:
    accounts.grant_super_admin(settings.super_admin_id)

initialize_all_listeners(event_bus)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_logging(settings)
    event_bus.bind_loop(asyncio.get_running_loop())
    logger.info(
        "startup.complete",
        app_title=settings.app_title,
        handler_timeout_seconds=settings.handler_timeout_seconds,
    )
    try:
        yield
    finally:
        await event_bus.drain()
        event_bus.unbind_loop()
        logger.info("shutdown.complete")


app = FastAPI(title=settings.app_title, lifespan=lifespan)


@app.exception_handler(CommunityError)
async def community_error_handler(_: Request, exc: CommunityError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


UserId = Annotated[str | None, Header(alias="X-User-Id")]


# ── Health ────────────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict:
    """Liveness plus the handler count behind every subscribed event name."""
    return {
        "status": "ok",
        "subscribers": {
            name: event_bus.subscriber_count(name) for name in event_bus.event_names()
        },
    }


@app.get("/stats", response_model=GlobalStats)
def global_stats() -> GlobalStats:
    return stats.global_stats()


# ── Accounts & profiles ───────────────────────────────────────────────


@app.post("/auth/verified", response_model=Profile)
def auth_verified(body: VerifiedUserRequest) -> Profile:
    """Called by the identity provider after email verification."""
    return accounts.register_verified_user(body.user_id, body.email)


@app.get("/profile", response_model=Profile)
def get_profile(user_id: UserId = None) -> Profile:
    return accounts.get_profile(access.require_user(user_id))


@app.patch("/profile", response_model=Profile)
def update_profile(body: ProfileUpdate, user_id: UserId = None) -> Profile:
    return accounts.update_profile(user_id, body)


@app.get("/profile/cities", response_model=list[UserCityRole])
def my_cities(user_id: UserId = None) -> list[UserCityRole]:
    return accounts.list_user_cities(user_id)


# ── Cities ────────────────────────────────────────────────────────────


@app.get("/cities", response_model=list[City])
def list_cities() -> list[City]:
    return accounts.list_cities()


@app.post("/cities", response_model=City, status_code=201)
def create_city(body: CityCreate, user_id: UserId = None) -> City:
    return accounts.create_city(user_id, body)


@app.get("/cities/{city_slug}", response_model=City)
def get_city(city_slug: str) -> City:
    return access.resolve_city(city_slug)


@app.patch("/cities/{city_slug}", response_model=City)
def update_city(city_slug: str, body: CityUpdate, user_id: UserId = None) -> City:
    return accounts.update_city(user_id, city_slug, body)


@app.post("/cities/{city_slug}/deactivate", response_model=City)
def deactivate_city(city_slug: str, user_id: UserId = None) -> City:
    return accounts.deactivate_city(user_id, city_slug)


@app.get("/cities/{city_slug}/members", response_model=list[UserCityRole])
def list_members(city_slug: str, user_id: UserId = None) -> list[UserCityRole]:
    return accounts.list_members(user_id, city_slug)


@app.post("/cities/{city_slug}/members", response_model=UserCityRole, status_code=201)
def add_member(
    city_slug: str, body: AddCityMemberRequest, user_id: UserId = None
) -> UserCityRole:
    return accounts.add_user_to_city(user_id, city_slug, body.user_id, body.role)


@app.delete("/cities/{city_slug}/members/{member_id}", status_code=204)
def remove_member(city_slug: str, member_id: str, user_id: UserId = None) -> Response:
    accounts.remove_user_from_city(user_id, city_slug, member_id)
    return Response(status_code=204)


# ── Blog ──────────────────────────────────────────────────────────────


@app.get("/cities/{city_slug}/posts", response_model=list[Post])
def list_posts(
    city_slug: str, include_drafts: bool = False, user_id: UserId = None
) -> list[Post]:
    return blog.list_posts(city_slug, viewer_id=user_id, include_drafts=include_drafts)


@app.get("/cities/{city_slug}/posts/featured", response_model=list[Post])
def list_featured_posts(city_slug: str) -> list[Post]:
    return blog.list_featured(city_slug)


@app.get("/cities/{city_slug}/posts/{post_slug}", response_model=Post)
def get_post(city_slug: str, post_slug: str, user_id: UserId = None) -> Post:
    return blog.get_by_slug(city_slug, post_slug, viewer_id=user_id)


@app.post("/cities/{city_slug}/posts", response_model=Post, status_code=201)
def create_post(city_slug: str, body: PostCreate, user_id: UserId = None) -> Post:
    return blog.create_post(user_id, city_slug, body)


@app.patch("/cities/{city_slug}/posts/{post_id}", response_model=Post)
def update_post(
    city_slug: str, post_id: str, body: PostUpdate, user_id: UserId = None
) -> Post:
    return blog.update_post(user_id, city_slug, post_id, body)


@app.delete("/cities/{city_slug}/posts/{post_id}", status_code=204)
def delete_post(city_slug: str, post_id: str, user_id: UserId = None) -> Response:
    blog.delete_post(user_id, city_slug, post_id)
    return Response(status_code=204)


@app.post("/cities/{city_slug}/posts/{post_id}/publish", response_model=Post)
def publish_post(city_slug: str, post_id: str, user_id: UserId = None) -> Post:
    return blog.publish_post(user_id, city_slug, post_id)


@app.post("/cities/{city_slug}/posts/{post_id}/unpublish", response_model=Post)
def unpublish_post(city_slug: str, post_id: str, user_id: UserId = None) -> Post:
    return blog.unpublish_post(user_id, city_slug, post_id)


@app.post("/cities/{city_slug}/posts/{post_id}/feature", response_model=Post)
def feature_post(city_slug: str, post_id: str, user_id: UserId = None) -> Post:
    return blog.toggle_featured(user_id, city_slug, post_id)


# ── Events ────────────────────────────────────────────────────────────


@app.get("/cities/{city_slug}/events", response_model=list[CityEventWithCounts])
def list_events(city_slug: str, upcoming: bool = False) -> list[CityEventWithCounts]:
    return events.list_events(city_slug, upcoming_only=upcoming)


@app.get("/cities/{city_slug}/events/{event_slug}", response_model=CityEventWithCounts)
def get_event(city_slug: str, event_slug: str) -> CityEventWithCounts:
    return events.get_by_slug(city_slug, event_slug)


@app.post("/cities/{city_slug}/events", response_model=CityEvent, status_code=201)
def create_event(
    city_slug: str, body: CityEventCreate, user_id: UserId = None
) -> CityEvent:
    return events.create_event(user_id, city_slug, body)


@app.patch("/cities/{city_slug}/events/{event_id}", response_model=CityEvent)
def update_event(
    city_slug: str, event_id: str, body: CityEventUpdate, user_id: UserId = None
) -> CityEvent:
    return events.update_event(user_id, city_slug, event_id, body)


@app.delete("/cities/{city_slug}/events/{event_id}", status_code=204)
def delete_event(city_slug: str, event_id: str, user_id: UserId = None) -> Response:
    events.delete_event(user_id, city_slug, event_id)
    return Response(status_code=204)


@app.get("/cities/{city_slug}/events/{event_id}/rsvps", response_model=list[EventRSVP])
def list_rsvps(city_slug: str, event_id: str) -> list[EventRSVP]:
    return events.list_rsvps(city_slug, event_id)


@app.put("/cities/{city_slug}/events/{event_id}/rsvp", response_model=EventRSVP)
def rsvp(
    city_slug: str, event_id: str, body: RSVPRequest, user_id: UserId = None
) -> EventRSVP:
    return events.rsvp(user_id, city_slug, event_id, body.status)


@app.delete("/cities/{city_slug}/events/{event_id}/rsvp", status_code=204)
def remove_rsvp(city_slug: str, event_id: str, user_id: UserId = None) -> Response:
    events.remove_rsvp(user_id, city_slug, event_id)
    return Response(status_code=204)


# ── Projects ──────────────────────────────────────────────────────────


@app.get("/cities/{city_slug}/projects", response_model=list[Project])
def list_projects(city_slug: str, featured: bool = False) -> list[Project]:
    return projects.list_projects(city_slug, featured_only=featured)


@app.get("/cities/{city_slug}/projects/{project_slug}", response_model=ProjectWithMembers)
def get_project(city_slug: str, project_slug: str) -> ProjectWithMembers:
    return projects.get_by_slug(city_slug, project_slug)


@app.post("/cities/{city_slug}/projects", response_model=ProjectWithMembers, status_code=201)
def create_project(
    city_slug: str, body: ProjectCreate, user_id: UserId = None
) -> ProjectWithMembers:
    return projects.create_project(user_id, city_slug, body)


@app.patch("/cities/{city_slug}/projects/{project_id}", response_model=Project)
def update_project(
    city_slug: str, project_id: str, body: ProjectUpdate, user_id: UserId = None
) -> Project:
    return projects.update_project(user_id, city_slug, project_id, body)


@app.delete("/cities/{city_slug}/projects/{project_id}", status_code=204)
def delete_project(city_slug: str, project_id: str, user_id: UserId = None) -> Response:
    projects.delete_project(user_id, city_slug, project_id)
    return Response(status_code=204)


@app.post("/cities/{city_slug}/projects/{project_id}/feature", response_model=Project)
def feature_project(city_slug: str, project_id: str, user_id: UserId = None) -> Project:
    return projects.toggle_featured(user_id, city_slug, project_id)


@app.post(
    "/cities/{city_slug}/projects/{project_id}/members",
    response_model=ProjectMember,
    status_code=201,
)
def add_project_member(
    city_slug: str,
    project_id: str,
    body: ProjectMemberRequest,
    user_id: UserId = None,
) -> ProjectMember:
    return projects.add_member(user_id, city_slug, project_id, body.user_id, body.role)


@app.patch(
    "/cities/{city_slug}/projects/{project_id}/members/{member_id}",
    response_model=ProjectMember,
)
def update_project_member(
    city_slug: str,
    project_id: str,
    member_id: str,
    body: MemberRoleUpdate,
    user_id: UserId = None,
) -> ProjectMember:
    return projects.update_member_role(user_id, city_slug, project_id, member_id, body.role)


@app.delete("/cities/{city_slug}/projects/{project_id}/members/{member_id}", status_code=204)
def remove_project_member(
    city_slug: str, project_id: str, member_id: str, user_id: UserId = None
) -> Response:
    projects.remove_member(user_id, city_slug, project_id, member_id)
    return Response(status_code=204)


# ── Newsletter ────────────────────────────────────────────────────────


@app.post("/cities/{city_slug}/newsletter/subscribe", status_code=201)
def subscribe(city_slug: str, body: SubscribeRequest) -> dict:
    newsletter.subscribe(city_slug, body.email)
    return {"message": "Successfully subscribed to newsletter!"}


@app.post("/cities/{city_slug}/newsletter/unsubscribe")
def unsubscribe(city_slug: str, body: SubscribeRequest) -> dict:
    newsletter.unsubscribe(city_slug, body.email)
    return {"message": "Successfully unsubscribed from newsletter"}


@app.get(
    "/cities/{city_slug}/newsletter/subscribers",
    response_model=list[NewsletterSubscriber],
)
def list_subscribers(
    city_slug: str, user_id: UserId = None
) -> list[NewsletterSubscriber]:
    return newsletter.list_subscribers(user_id, city_slug)


@app.get("/cities/{city_slug}/newsletter/subscribers/count")
def subscriber_count(city_slug: str, user_id: UserId = None) -> dict:
    return {"count": newsletter.active_count(user_id, city_slug)}


@app.get("/cities/{city_slug}/newsletter/export", response_model=None)
def export_subscribers(
    city_slug: str, download: bool = False, user_id: UserId = None
) -> CSVExport | PlainTextResponse:
    """JSON envelope by default; ``?download=true`` returns the raw CSV file."""
    export = newsletter.export_csv(user_id, city_slug)
    if not download:
        return export
    return PlainTextResponse(
        export.csv,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{city_slug}-subscribers.csv"'
        },
    )


@app.delete("/cities/{city_slug}/newsletter/subscribers/{subscriber_id}", status_code=204)
def delete_subscriber(
    city_slug: str, subscriber_id: str, user_id: UserId = None
) -> Response:
    newsletter.delete_subscriber(user_id, city_slug, subscriber_id)
    return Response(status_code=204)


@app.post(
    "/cities/{city_slug}/newsletter/subscribers/{subscriber_id}/reactivate",
    response_model=NewsletterSubscriber,
)
def reactivate_subscriber(
    city_slug: str, subscriber_id: str, user_id: UserId = None
) -> NewsletterSubscriber:
    return newsletter.reactivate_subscriber(user_id, city_slug, subscriber_id)


# ── Settings & stats ──────────────────────────────────────────────────


@app.get("/cities/{city_slug}/stats", response_model=CityStats)
def city_stats(city_slug: str) -> CityStats:
    return stats.city_stats(city_slug)


@app.get("/cities/{city_slug}/features", response_model=list[CityFeature])
def list_feature_toggles(city_slug: str, user_id: UserId = None) -> list[CityFeature]:
    return city_settings.get_feature_toggles(user_id, city_slug)


@app.get("/cities/{city_slug}/features/enabled")
def enabled_features(city_slug: str) -> dict[str, bool]:
    """Public view: every feature with its on/off state."""
    return city_settings.enabled_features(city_slug)


@app.get("/cities/{city_slug}/features/{feature_slug}")
def feature_enabled(city_slug: str, feature_slug: FeatureSlug) -> dict:
    return {
        "feature": feature_slug.value,
        "enabled": city_settings.is_feature_enabled(city_slug, feature_slug),
    }


@app.put("/cities/{city_slug}/features/{feature_slug}", response_model=CityFeature)
def toggle_feature(
    city_slug: str,
    feature_slug: FeatureSlug,
    body: FeatureToggleRequest,
    user_id: UserId = None,
) -> CityFeature:
    return city_settings.toggle_feature(user_id, city_slug, feature_slug, body.is_enabled)
