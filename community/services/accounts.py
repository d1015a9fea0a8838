"""Profiles, cities and city membership."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from community.domain.bus import EventBus
from community.domain.events import (
    CityCreated,
    CityDeactivated,
    CityUpdated,
    UserCreated,
    UserJoinedCity,
    UserLeftCity,
    UserUpdated,
)
from community.domain.models import (
    City,
    CityCreate,
    CityUpdate,
    Profile,
    ProfileUpdate,
    UserCityRole,
    UserRole,
)
from community.errors import InvalidState, NotFound
from community.repos.memory import CityRepository, ProfileRepository, RoleRepository
from community.services.access import AccessPolicy
from community.services.slugify import is_valid_slug, slugify

logger = structlog.get_logger(__name__)


class AccountService:
    def __init__(
        self,
        bus: EventBus,
        access: AccessPolicy,
        profile_repo: ProfileRepository,
        city_repo: CityRepository,
        role_repo: RoleRepository,
    ) -> None:
        self.bus = bus
        self.access = access
        self.profile_repo = profile_repo
        self.city_repo = city_repo
        self.role_repo = role_repo

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def register_verified_user(self, user_id: str, email: str) -> Profile:
        """Create the profile for a freshly verified identity.

        Only the first verification publishes ``user:created``; later logins
        return the stored profile untouched.
        """
        existing = self.profile_repo.get(user_id)
        if existing is not None:
            return existing

        profile = Profile(id=user_id, email=email, display_name=email.split("@")[0] or "User")
        self.profile_repo.add(profile)
        logger.info("profile.created", user_id=user_id)

        self.bus.publish(UserCreated(user_id=user_id, email=email))
        return profile

    def get_profile(self, user_id: str) -> Profile:
        profile = self.profile_repo.get(user_id)
        if profile is None:
            raise NotFound("Profile not found")
        return profile

    def update_profile(self, user_id: str | None, changes: ProfileUpdate) -> Profile:
        user_id = self.access.require_user(user_id)
        profile = self.get_profile(user_id)

        for field, value in changes.model_dump(exclude_unset=True).items():
            setattr(profile, field, value)
        profile.updated_at = datetime.now(timezone.utc)

        self.bus.publish(UserUpdated(user_id=user_id))
        return profile

    # ------------------------------------------------------------------
    # Cities
    # ------------------------------------------------------------------

    def list_cities(self) -> list[City]:
        return self.city_repo.list_all()

    def create_city(self, actor_id: str | None, payload: CityCreate) -> City:
        actor_id = self.access.require_super_admin(actor_id)

        slug = payload.slug or slugify(payload.name)
        if not is_valid_slug(slug):
            raise InvalidState(f"Invalid city slug: {slug!r}")
        if self.city_repo.get_by_slug(slug) is not None:
            raise InvalidState(f"A city with slug {slug!r} already exists")

        city = City(
            name=payload.name,
            slug=slug,
            accent_color=payload.accent_color,
            hero_image_url=payload.hero_image_url,
            logo_url=payload.logo_url,
        )
        self.city_repo.add(city)
        logger.info("city.created", city_id=city.id, slug=slug)

        self.bus.publish(CityCreated(city_id=city.id, city_name=city.name, created_by=actor_id))
        return city

    def update_city(self, actor_id: str | None, city_slug: str, changes: CityUpdate) -> City:
        actor_id = self.access.require_super_admin(actor_id)
        city = self.access.resolve_city(city_slug)

        for field, value in changes.model_dump(exclude_unset=True).items():
            if field == "name" and value is None:
                continue
            setattr(city, field, value)
        city.updated_at = datetime.now(timezone.utc)

        self.bus.publish(CityUpdated(city_id=city.id, updated_by=actor_id))
        return city

    def deactivate_city(self, actor_id: str | None, city_slug: str) -> City:
        actor_id = self.access.require_super_admin(actor_id)
        city = self.access.resolve_city(city_slug)

        city.is_active = False
        city.updated_at = datetime.now(timezone.utc)
        logger.info("city.deactivated", city_id=city.id)

        self.bus.publish(CityDeactivated(city_id=city.id, deactivated_by=actor_id))
        return city

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def list_user_cities(self, user_id: str | None) -> list[UserCityRole]:
        """Every city role the user holds, across tenants."""
        return self.role_repo.list_for_user(self.access.require_user(user_id))

    def list_members(self, actor_id: str | None, city_slug: str) -> list[UserCityRole]:
        city = self.access.resolve_city(city_slug)
        self.access.require_admin(actor_id, city, "view members")
        return self.role_repo.list_for_city(city.id)

    def add_user_to_city(
        self,
        actor_id: str | None,
        city_slug: str,
        user_id: str,
        role: UserRole = UserRole.MEMBER,
    ) -> UserCityRole:
        city = self.access.resolve_city(city_slug)
        self.access.require_admin(actor_id, city, "add members")
        if role == UserRole.SUPER_ADMIN:
            self.access.require_super_admin(actor_id)

        if self.role_repo.get(user_id, city.id) is not None:
            raise InvalidState("User is already a member of this city")

        membership = UserCityRole(user_id=user_id, city_id=city.id, role=role)
        self.role_repo.add(membership)

        self.bus.publish(UserJoinedCity(user_id=user_id, city_id=city.id, role=role.value))
        return membership

    def remove_user_from_city(self, actor_id: str | None, city_slug: str, user_id: str) -> None:
        city = self.access.resolve_city(city_slug)
        self.access.require_admin(actor_id, city, "remove members")

        if not self.role_repo.remove(user_id, city.id):
            raise NotFound("User is not a member of this city")

        self.bus.publish(UserLeftCity(user_id=user_id, city_id=city.id))

    def grant_super_admin(self, user_id: str) -> None:
        """Bootstrap path used at startup; bypasses authorization and events."""
        if self.role_repo.has_role_anywhere(user_id, UserRole.SUPER_ADMIN):
            return
        cities = self.city_repo.list_all()
        if not cities:
            # The role row needs a city to hang off.
            logger.warning("super_admin.no_city", user_id=user_id)
            return
        existing = self.role_repo.get(user_id, cities[0].id)
        if existing is not None:
            existing.role = UserRole.SUPER_ADMIN
        else:
            self.role_repo.add(
                UserCityRole(user_id=user_id, city_id=cities[0].id, role=UserRole.SUPER_ADMIN)
            )
        logger.info("super_admin.granted", user_id=user_id, city_id=cities[0].id)
