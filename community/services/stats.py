"""Headline counts for a city page and for the landing page."""

from __future__ import annotations

from community.domain.models import CityStats, GlobalStats
from community.repos.memory import (
    CityEventRepository,
    CityRepository,
    PostRepository,
    ProfileRepository,
    ProjectRepository,
    RoleRepository,
)
from community.services.access import AccessPolicy


class StatsService:
    def __init__(
        self,
        access: AccessPolicy,
        city_repo: CityRepository,
        profile_repo: ProfileRepository,
        role_repo: RoleRepository,
        event_repo: CityEventRepository,
        project_repo: ProjectRepository,
        post_repo: PostRepository,
    ) -> None:
        self.access = access
        self.city_repo = city_repo
        self.profile_repo = profile_repo
        self.role_repo = role_repo
        self.event_repo = event_repo
        self.project_repo = project_repo
        self.post_repo = post_repo

    def city_stats(self, city_slug: str) -> CityStats:
        """Members, events, projects and published posts in one city."""
        city = self.access.resolve_city(city_slug)
        return CityStats(
            member_count=len(self.role_repo.list_for_city(city.id)),
            event_count=len(self.event_repo.list_for_city(city.id)),
            project_count=len(self.project_repo.list_for_city(city.id)),
            post_count=sum(1 for p in self.post_repo.list_for_city(city.id) if p.is_published),
        )

    def global_stats(self) -> GlobalStats:
        # Only the city count skips deactivated cities.
        return GlobalStats(
            city_count=len(self.city_repo.list_all()),
            member_count=self.profile_repo.count(),
            event_count=self.event_repo.count(),
            project_count=self.project_repo.count(),
        )
