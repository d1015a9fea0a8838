"""In-memory repositories, one per table, partitioned by city where it applies."""

from __future__ import annotations

from datetime import datetime, timezone

from community.domain.models import (
    City,
    CityEvent,
    CityFeature,
    EventRSVP,
    NewsletterSubscriber,
    Post,
    Profile,
    Project,
    ProjectMember,
    UserCityRole,
    UserRole,
)


class CityRepository:
    """Dict-backed store for City instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, City] = {}

    def add(self, city: City) -> None:
        self._store[city.id] = city

    def get(self, city_id: str) -> City | None:
        return self._store.get(city_id)

    def get_by_slug(self, slug: str) -> City | None:
        for city in self._store.values():
            if city.slug == slug:
                return city
        return None

    def list_all(self, active_only: bool = True) -> list[City]:
        cities = [c for c in self._store.values() if c.is_active or not active_only]
        return sorted(cities, key=lambda c: c.name)


class ProfileRepository:
    """Dict-backed store for Profile instances, keyed by user id."""

    def __init__(self) -> None:
        self._store: dict[str, Profile] = {}

    def add(self, profile: Profile) -> None:
        self._store[profile.id] = profile

    def get(self, user_id: str) -> Profile | None:
        return self._store.get(user_id)

    def count(self) -> int:
        return len(self._store)


class RoleRepository:
    """List-backed store for UserCityRole rows."""

    def __init__(self) -> None:
        self._roles: list[UserCityRole] = []

    def add(self, role: UserCityRole) -> None:
        self._roles.append(role)

    def get(self, user_id: str, city_id: str) -> UserCityRole | None:
        for role in self._roles:
            if role.user_id == user_id and role.city_id == city_id:
                return role
        return None

    def list_for_user(self, user_id: str) -> list[UserCityRole]:
        return [r for r in self._roles if r.user_id == user_id]

    def list_for_city(self, city_id: str) -> list[UserCityRole]:
        return [r for r in self._roles if r.city_id == city_id]

    def has_role_anywhere(self, user_id: str, role: UserRole) -> bool:
        return any(r.user_id == user_id and r.role == role for r in self._roles)

    def remove(self, user_id: str, city_id: str) -> bool:
        before = len(self._roles)
        self._roles = [
            r for r in self._roles if not (r.user_id == user_id and r.city_id == city_id)
        ]
        return len(self._roles) != before


class PostRepository:
    """Dict-backed store for Post instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Post] = {}

    def add(self, post: Post) -> None:
        self._store[post.id] = post

    def get(self, post_id: str) -> Post | None:
        return self._store.get(post_id)

    def get_by_slug(self, city_id: str, slug: str) -> Post | None:
        for post in self._store.values():
            if post.city_id == city_id and post.slug == slug:
                return post
        return None

    def slug_exists(self, city_id: str, slug: str) -> bool:
        return self.get_by_slug(city_id, slug) is not None

    def list_for_city(self, city_id: str) -> list[Post]:
        """Newest first."""
        posts = [p for p in self._store.values() if p.city_id == city_id]
        return sorted(posts, key=lambda p: p.created_at, reverse=True)

    def delete(self, post_id: str) -> None:
        self._store.pop(post_id, None)


class CityEventRepository:
    """Dict-backed store for CityEvent instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, CityEvent] = {}

    def add(self, event: CityEvent) -> None:
        self._store[event.id] = event

    def get(self, event_id: str) -> CityEvent | None:
        return self._store.get(event_id)

    def get_by_slug(self, city_id: str, slug: str) -> CityEvent | None:
        for event in self._store.values():
            if event.city_id == city_id and event.slug == slug:
                return event
        return None

    def slug_exists(self, city_id: str, slug: str) -> bool:
        return self.get_by_slug(city_id, slug) is not None

    def list_for_city(self, city_id: str) -> list[CityEvent]:
        """Soonest first."""
        events = [e for e in self._store.values() if e.city_id == city_id]
        return sorted(events, key=lambda e: e.starts_at)

    def count(self) -> int:
        return len(self._store)

    def delete(self, event_id: str) -> None:
        self._store.pop(event_id, None)


class RSVPRepository:
    """List-backed store for EventRSVP rows; one row per (event, user)."""

    def __init__(self) -> None:
        self._rsvps: list[EventRSVP] = []

    def upsert(self, rsvp: EventRSVP) -> EventRSVP:
        existing = self.get(rsvp.event_id, rsvp.user_id)
        if existing is not None:
            existing.status = rsvp.status
            return existing
        self._rsvps.append(rsvp)
        return rsvp

    def get(self, event_id: str, user_id: str) -> EventRSVP | None:
        for rsvp in self._rsvps:
            if rsvp.event_id == event_id and rsvp.user_id == user_id:
                return rsvp
        return None

    def list_for_event(self, event_id: str) -> list[EventRSVP]:
        rsvps = [r for r in self._rsvps if r.event_id == event_id]
        return sorted(rsvps, key=lambda r: r.created_at, reverse=True)

    def remove(self, event_id: str, user_id: str) -> bool:
        before = len(self._rsvps)
        self._rsvps = [
            r for r in self._rsvps if not (r.event_id == event_id and r.user_id == user_id)
        ]
        return len(self._rsvps) != before

    def delete_for_event(self, event_id: str) -> None:
        """Cascade used when an event is deleted."""
        self._rsvps = [r for r in self._rsvps if r.event_id != event_id]


class ProjectRepository:
    """Dict-backed store for Project instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Project] = {}

    def add(self, project: Project) -> None:
        self._store[project.id] = project

    def get(self, project_id: str) -> Project | None:
        return self._store.get(project_id)

    def get_by_slug(self, city_id: str, slug: str) -> Project | None:
        for project in self._store.values():
            if project.city_id == city_id and project.slug == slug:
                return project
        return None

    def slug_exists(self, city_id: str, slug: str) -> bool:
        return self.get_by_slug(city_id, slug) is not None

    def list_for_city(self, city_id: str) -> list[Project]:
        projects = [p for p in self._store.values() if p.city_id == city_id]
        return sorted(projects, key=lambda p: p.created_at, reverse=True)

    def count(self) -> int:
        return len(self._store)

    def delete(self, project_id: str) -> None:
        self._store.pop(project_id, None)


class ProjectMemberRepository:
    """List-backed store for ProjectMember rows."""

    def __init__(self) -> None:
        self._members: list[ProjectMember] = []

    def add(self, member: ProjectMember) -> None:
        self._members.append(member)

    def get(self, project_id: str, user_id: str) -> ProjectMember | None:
        for member in self._members:
            if member.project_id == project_id and member.user_id == user_id:
                return member
        return None

    def list_for_project(self, project_id: str) -> list[ProjectMember]:
        members = [m for m in self._members if m.project_id == project_id]
        return sorted(members, key=lambda m: m.created_at)

    def remove(self, project_id: str, user_id: str) -> bool:
        before = len(self._members)
        self._members = [
            m
            for m in self._members
            if not (m.project_id == project_id and m.user_id == user_id)
        ]
        return len(self._members) != before

    def delete_for_project(self, project_id: str) -> None:
        self._members = [m for m in self._members if m.project_id != project_id]


class SubscriberRepository:
    """Dict-backed store for NewsletterSubscriber rows; (city, email) is unique."""

    def __init__(self) -> None:
        self._store: dict[str, NewsletterSubscriber] = {}

    def add(self, subscriber: NewsletterSubscriber) -> None:
        self._store[subscriber.id] = subscriber

    def get(self, subscriber_id: str) -> NewsletterSubscriber | None:
        return self._store.get(subscriber_id)

    def get_by_email(self, city_id: str, email: str) -> NewsletterSubscriber | None:
        for subscriber in self._store.values():
            if subscriber.city_id == city_id and subscriber.email == email:
                return subscriber
        return None

    def list_for_city(self, city_id: str, active_only: bool = False) -> list[NewsletterSubscriber]:
        """Most recently subscribed first."""
        subscribers = [
            s
            for s in self._store.values()
            if s.city_id == city_id and (s.is_active or not active_only)
        ]
        return sorted(subscribers, key=lambda s: s.subscribed_at, reverse=True)

    def delete(self, subscriber_id: str) -> None:
        self._store.pop(subscriber_id, None)


class CityFeatureRepository:
    """Dict-backed store for CityFeature toggles, one per (city, feature)."""

    def __init__(self) -> None:
        self._store: dict[tuple[str, str], CityFeature] = {}

    def get(self, city_id: str, feature_slug: str) -> CityFeature | None:
        return self._store.get((city_id, feature_slug))

    def upsert(self, city_id: str, feature_slug: str, is_enabled: bool) -> CityFeature:
        existing = self.get(city_id, feature_slug)
        if existing is not None:
            existing.is_enabled = is_enabled
            existing.updated_at = datetime.now(timezone.utc)
            return existing
        feature = CityFeature(city_id=city_id, feature_slug=feature_slug, is_enabled=is_enabled)
        self._store[(city_id, feature_slug)] = feature
        return feature

    def list_for_city(self, city_id: str) -> list[CityFeature]:
        features = [f for (cid, _), f in self._store.items() if cid == city_id]
        return sorted(features, key=lambda f: f.feature_slug)


# ---------------------------------------------------------------------------
# Seed data – the launch cities
# ---------------------------------------------------------------------------

DEFAULT_CITIES = [
    City(
        id="c1111111-1111-1111-1111-111111111111",
        name="Adelaide",
        slug="adelaide",
        accent_color="#6366f1",
    ),
    City(
        id="c2222222-2222-2222-2222-222222222222",
        name="Sydney",
        slug="sydney",
        accent_color="#8b5cf6",
    ),
    City(
        id="c3333333-3333-3333-3333-333333333333",
        name="Melbourne",
        slug="melbourne",
        accent_color="#ec4899",
    ),
    City(
        id="c4444444-4444-4444-4444-444444444444",
        name="Brisbane",
        slug="brisbane",
        accent_color="#f59e0b",
    ),
]


def seed_cities(repo: CityRepository) -> None:
    """Insert the launch cities, skipping any slug that already exists."""
    for city in DEFAULT_CITIES:
        if repo.get_by_slug(city.slug) is None:
            repo.add(city.model_copy())
