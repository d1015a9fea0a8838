"""Shared fixtures: fresh service wiring and a clean copy of the app singletons."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from community.domain.bus import EventBus
from community.domain.events import KNOWN_EVENT_NAMES
from community.domain.models import UserCityRole, UserRole
from community.main import (
    app,
    city_repo as app_city_repo,
    event_repo as app_event_repo,
    feature_repo as app_feature_repo,
    post_repo as app_post_repo,
    profile_repo as app_profile_repo,
    project_member_repo as app_project_member_repo,
    project_repo as app_project_repo,
    role_repo as app_role_repo,
    rsvp_repo as app_rsvp_repo,
    subscriber_repo as app_subscriber_repo,
)
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

SUPER_ADMIN = "user-super"
CITY_ADMIN = "user-admin"
MEMBER = "user-member"
OUTSIDER = "user-outsider"

ADELAIDE = "adelaide"
SYDNEY = "sydney"


def _grant_default_roles(city_repo: CityRepository, role_repo: RoleRepository) -> None:
    adelaide = city_repo.get_by_slug(ADELAIDE)
    role_repo.add(UserCityRole(user_id=SUPER_ADMIN, city_id=adelaide.id, role=UserRole.SUPER_ADMIN))
    role_repo.add(UserCityRole(user_id=CITY_ADMIN, city_id=adelaide.id, role=UserRole.CITY_ADMIN))
    role_repo.add(UserCityRole(user_id=MEMBER, city_id=adelaide.id, role=UserRole.MEMBER))


@pytest.fixture()
def env():
    """Fresh bus + repos + services, with every published event recorded."""
    bus = EventBus(handler_timeout=1.0)
    city_repo = CityRepository()
    profile_repo = ProfileRepository()
    role_repo = RoleRepository()
    post_repo = PostRepository()
    event_repo = CityEventRepository()
    rsvp_repo = RSVPRepository()
    project_repo = ProjectRepository()
    member_repo = ProjectMemberRepository()
    subscriber_repo = SubscriberRepository()
    feature_repo = CityFeatureRepository()

    seed_cities(city_repo)
    _grant_default_roles(city_repo, role_repo)

    access = AccessPolicy(city_repo=city_repo, role_repo=role_repo)

    published = []
    for name in sorted(KNOWN_EVENT_NAMES):
        bus.subscribe(name, published.append)

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.published = published
    e.city_repo = city_repo
    e.profile_repo = profile_repo
    e.role_repo = role_repo
    e.post_repo = post_repo
    e.event_repo = event_repo
    e.rsvp_repo = rsvp_repo
    e.project_repo = project_repo
    e.member_repo = member_repo
    e.subscriber_repo = subscriber_repo
    e.feature_repo = feature_repo
    e.access = access
    e.accounts = AccountService(
        bus=bus,
        access=access,
        profile_repo=profile_repo,
        city_repo=city_repo,
        role_repo=role_repo,
    )
    e.blog = BlogService(bus=bus, access=access, post_repo=post_repo)
    e.events = CityEventService(bus=bus, access=access, event_repo=event_repo, rsvp_repo=rsvp_repo)
    e.projects = ProjectService(
        bus=bus, access=access, project_repo=project_repo, member_repo=member_repo
    )
    e.newsletter = NewsletterService(bus=bus, access=access, subscriber_repo=subscriber_repo)
    e.settings = SettingsService(access=access, feature_repo=feature_repo)
    e.stats = StatsService(
        access=access,
        city_repo=city_repo,
        profile_repo=profile_repo,
        role_repo=role_repo,
        event_repo=event_repo,
        project_repo=project_repo,
        post_repo=post_repo,
    )
    return e


def _clear_app_repos() -> None:
    app_city_repo._store.clear()
    app_profile_repo._store.clear()
    app_role_repo._roles.clear()
    app_post_repo._store.clear()
    app_event_repo._store.clear()
    app_rsvp_repo._rsvps.clear()
    app_project_repo._store.clear()
    app_project_member_repo._members.clear()
    app_subscriber_repo._store.clear()
    app_feature_repo._store.clear()


@pytest.fixture()
def app_state():
    """Reset the app singletons to the seeded cities plus the default roles."""
    _clear_app_repos()
    seed_cities(app_city_repo)
    _grant_default_roles(app_city_repo, app_role_repo)
    yield
    _clear_app_repos()


@pytest.fixture()
def client():
    return TestClient(app)


def as_user(user_id: str) -> dict[str, str]:
    return {"X-User-Id": user_id}
