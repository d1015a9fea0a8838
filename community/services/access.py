"""Authorization and tenant-context checks shared by every feature service."""

from __future__ import annotations

from community.domain.models import City, UserRole
from community.errors import NotAuthenticated, NotFound, PermissionDenied
from community.repos.memory import CityRepository, RoleRepository

_ADMIN_ROLES = (UserRole.CITY_ADMIN, UserRole.SUPER_ADMIN)


class AccessPolicy:
    """Answers "who may do what in which city" from the role table."""

    def __init__(self, city_repo: CityRepository, role_repo: RoleRepository) -> None:
        self.city_repo = city_repo
        self.role_repo = role_repo

    def resolve_city(self, city_slug: str) -> City:
        city = self.city_repo.get_by_slug(city_slug)
        if city is None or not city.is_active:
            raise NotFound("City not found")
        return city

    def role_in(self, user_id: str, city_id: str) -> UserRole | None:
        role = self.role_repo.get(user_id, city_id)
        return role.role if role else None

    def is_super_admin(self, user_id: str | None) -> bool:
        if not user_id:
            return False
        return self.role_repo.has_role_anywhere(user_id, UserRole.SUPER_ADMIN)

    def is_admin(self, user_id: str | None, city_id: str) -> bool:
        if not user_id:
            return False
        return self.role_in(user_id, city_id) in _ADMIN_ROLES or self.is_super_admin(user_id)

    def is_member(self, user_id: str | None, city_id: str) -> bool:
        if not user_id:
            return False
        return self.role_in(user_id, city_id) is not None or self.is_super_admin(user_id)

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def require_user(self, user_id: str | None) -> str:
        if not user_id:
            raise NotAuthenticated("Not authenticated")
        return user_id

    def require_super_admin(self, user_id: str | None) -> str:
        user_id = self.require_user(user_id)
        if not self.is_super_admin(user_id):
            raise PermissionDenied("Unauthorized - super admin only")
        return user_id

    def require_admin(self, user_id: str | None, city: City, action: str) -> str:
        user_id = self.require_user(user_id)
        if not self.is_admin(user_id, city.id):
            raise PermissionDenied(f"Unauthorized - only city admins can {action}")
        return user_id

    def require_member(self, user_id: str | None, city: City) -> str:
        user_id = self.require_user(user_id)
        if not self.is_member(user_id, city.id):
            raise PermissionDenied("Unauthorized - you are not a member of this city")
        return user_id

    def require_owner_or_admin(
        self, user_id: str | None, city: City, owner_id: str | None, what: str
    ) -> str:
        user_id = self.require_user(user_id)
        if owner_id != user_id and not self.is_admin(user_id, city.id):
            raise PermissionDenied(
                f"Unauthorized - only {what} creator or city admin can do this"
            )
        return user_id
