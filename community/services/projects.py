"""Community projects and their team members."""

from __future__ import annotations

from datetime import datetime, timezone

from community.domain.bus import EventBus
from community.domain.events import (
    ProjectDeleted,
    ProjectFeatured,
    ProjectSubmitted,
    ProjectUnfeatured,
    ProjectUpdated,
)
from community.domain.models import (
    City,
    Project,
    ProjectCreate,
    ProjectMember,
    ProjectMemberRole,
    ProjectUpdate,
    ProjectWithMembers,
)
from community.errors import InvalidState, NotFound
from community.repos.memory import ProjectMemberRepository, ProjectRepository
from community.services.access import AccessPolicy
from community.services.slugify import unique_slug_for


class ProjectService:
    def __init__(
        self,
        bus: EventBus,
        access: AccessPolicy,
        project_repo: ProjectRepository,
        member_repo: ProjectMemberRepository,
    ) -> None:
        self.bus = bus
        self.access = access
        self.project_repo = project_repo
        self.member_repo = member_repo

    def _get_in_city(self, city: City, project_id: str) -> Project:
        project = self.project_repo.get(project_id)
        if project is None or project.city_id != city.id:
            raise NotFound("Project not found or access denied")
        return project

    def with_members(self, project: Project) -> ProjectWithMembers:
        return ProjectWithMembers(
            **project.model_dump(),
            members=self.member_repo.list_for_project(project.id),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_projects(self, city_slug: str, featured_only: bool = False) -> list[Project]:
        city = self.access.resolve_city(city_slug)
        projects = self.project_repo.list_for_city(city.id)
        if featured_only:
            projects = [p for p in projects if p.is_featured]
        return projects

    def get_by_slug(self, city_slug: str, slug: str) -> ProjectWithMembers:
        city = self.access.resolve_city(city_slug)
        project = self.project_repo.get_by_slug(city.id, slug)
        if project is None:
            raise NotFound("Project not found")
        return self.with_members(project)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_project(
        self, actor_id: str | None, city_slug: str, payload: ProjectCreate
    ) -> ProjectWithMembers:
        """Any city member may submit; the submitter becomes the team lead."""
        city = self.access.resolve_city(city_slug)
        actor_id = self.access.require_member(actor_id, city)

        slug = unique_slug_for(payload.title, lambda s: self.project_repo.slug_exists(city.id, s))
        project = Project(city_id=city.id, slug=slug, created_by=actor_id, **payload.model_dump())
        self.project_repo.add(project)
        self.member_repo.add(
            ProjectMember(project_id=project.id, user_id=actor_id, role=ProjectMemberRole.LEAD)
        )

        self.bus.publish(
            ProjectSubmitted(project_id=project.id, city_id=city.id, created_by=actor_id)
        )
        return self.with_members(project)

    def update_project(
        self, actor_id: str | None, city_slug: str, project_id: str, changes: ProjectUpdate
    ) -> Project:
        city = self.access.resolve_city(city_slug)
        self.access.require_user(actor_id)
        project = self._get_in_city(city, project_id)
        actor_id = self.access.require_owner_or_admin(
            actor_id, city, project.created_by, "project"
        )

        for field, value in changes.model_dump(exclude_unset=True).items():
            if field == "title" and value is None:
                continue
            setattr(project, field, value)
        project.updated_at = datetime.now(timezone.utc)

        self.bus.publish(
            ProjectUpdated(project_id=project.id, city_id=city.id, updated_by=actor_id)
        )
        return project

    def delete_project(self, actor_id: str | None, city_slug: str, project_id: str) -> None:
        city = self.access.resolve_city(city_slug)
        actor_id = self.access.require_admin(actor_id, city, "delete projects")
        project = self._get_in_city(city, project_id)

        self.project_repo.delete(project.id)
        self.member_repo.delete_for_project(project.id)

        self.bus.publish(
            ProjectDeleted(project_id=project.id, city_id=city.id, deleted_by=actor_id)
        )

    def toggle_featured(self, actor_id: str | None, city_slug: str, project_id: str) -> Project:
        city = self.access.resolve_city(city_slug)
        actor_id = self.access.require_admin(actor_id, city, "feature projects")
        project = self._get_in_city(city, project_id)

        project.is_featured = not project.is_featured
        project.updated_at = datetime.now(timezone.utc)

        if project.is_featured:
            self.bus.publish(
                ProjectFeatured(project_id=project.id, city_id=city.id, featured_by=actor_id)
            )
        else:
            self.bus.publish(ProjectUnfeatured(project_id=project.id, city_id=city.id))
        return project

    # ------------------------------------------------------------------
    # Team members
    # ------------------------------------------------------------------

    def _require_team_manager(self, actor_id: str | None, city_slug: str, project_id: str) -> Project:
        city = self.access.resolve_city(city_slug)
        self.access.require_user(actor_id)
        project = self._get_in_city(city, project_id)
        self.access.require_owner_or_admin(actor_id, city, project.created_by, "project")
        return project

    def add_member(
        self,
        actor_id: str | None,
        city_slug: str,
        project_id: str,
        user_id: str,
        role: ProjectMemberRole,
    ) -> ProjectMember:
        project = self._require_team_manager(actor_id, city_slug, project_id)
        if self.member_repo.get(project.id, user_id) is not None:
            raise InvalidState("User is already on this project team")

        member = ProjectMember(project_id=project.id, user_id=user_id, role=role)
        self.member_repo.add(member)
        return member

    def remove_member(
        self, actor_id: str | None, city_slug: str, project_id: str, user_id: str
    ) -> None:
        project = self._require_team_manager(actor_id, city_slug, project_id)
        if not self.member_repo.remove(project.id, user_id):
            raise NotFound("Team member not found")

    def update_member_role(
        self,
        actor_id: str | None,
        city_slug: str,
        project_id: str,
        user_id: str,
        role: ProjectMemberRole,
    ) -> ProjectMember:
        project = self._require_team_manager(actor_id, city_slug, project_id)
        member = self.member_repo.get(project.id, user_id)
        if member is None:
            raise NotFound("Team member not found")
        member.role = role
        return member
