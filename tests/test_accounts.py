"""Tests for profiles, cities and city membership."""

from __future__ import annotations

import pytest

from conftest import ADELAIDE, CITY_ADMIN, MEMBER, OUTSIDER, SUPER_ADMIN, SYDNEY, as_user
from community.domain.events import (
    CityCreated,
    CityDeactivated,
    UserCreated,
    UserJoinedCity,
    UserLeftCity,
    UserUpdated,
)
from community.domain.models import CityCreate, ProfileUpdate, UserRole
from community.errors import InvalidState, NotAuthenticated, NotFound, PermissionDenied
from community.repos.memory import CityRepository, RoleRepository

pytestmark = pytest.mark.usefixtures("app_state")


# ---------------------------------------------------------------------------
# Service level
# ---------------------------------------------------------------------------


def test_first_verification_creates_profile_and_announces_it(env):
    profile = env.accounts.register_verified_user("u-new", "jane.doe@example.com")

    assert profile.display_name == "jane.doe"
    assert env.published == [UserCreated(user_id="u-new", email="jane.doe@example.com")]


def test_repeat_verification_is_silent(env):
    first = env.accounts.register_verified_user("u-new", "jane@example.com")
    second = env.accounts.register_verified_user("u-new", "jane@example.com")

    assert second is first
    assert len(env.published) == 1


def test_update_profile_publishes_user_updated(env):
    env.accounts.register_verified_user("u-new", "jane@example.com")
    env.published.clear()

    profile = env.accounts.update_profile("u-new", ProfileUpdate(bio="Builder"))

    assert profile.bio == "Builder"
    assert env.published == [UserUpdated(user_id="u-new")]


def test_create_city_requires_super_admin(env):
    with pytest.raises(PermissionDenied):
        env.accounts.create_city(CITY_ADMIN, CityCreate(name="Perth"))
    with pytest.raises(NotAuthenticated):
        env.accounts.create_city(None, CityCreate(name="Perth"))
    assert env.published == []


def test_create_city_derives_slug_and_publishes(env):
    city = env.accounts.create_city(SUPER_ADMIN, CityCreate(name="Gold Coast"))

    assert city.slug == "gold-coast"
    assert env.published == [
        CityCreated(city_id=city.id, city_name="Gold Coast", created_by=SUPER_ADMIN)
    ]


def test_create_city_rejects_duplicate_slug(env):
    with pytest.raises(InvalidState):
        env.accounts.create_city(SUPER_ADMIN, CityCreate(name="Adelaide"))


def test_deactivated_city_is_hidden(env):
    city = env.accounts.deactivate_city(SUPER_ADMIN, SYDNEY)

    assert city.is_active is False
    assert SYDNEY not in [c.slug for c in env.accounts.list_cities()]
    assert env.published == [CityDeactivated(city_id=city.id, deactivated_by=SUPER_ADMIN)]
    with pytest.raises(NotFound):
        env.access.resolve_city(SYDNEY)


def test_add_and_remove_city_member(env):
    adelaide = env.city_repo.get_by_slug(ADELAIDE)

    membership = env.accounts.add_user_to_city(CITY_ADMIN, ADELAIDE, OUTSIDER, UserRole.MEMBER)
    assert membership.role == UserRole.MEMBER
    assert env.access.is_member(OUTSIDER, adelaide.id)

    env.accounts.remove_user_from_city(CITY_ADMIN, ADELAIDE, OUTSIDER)
    assert not env.access.is_member(OUTSIDER, adelaide.id)

    assert env.published == [
        UserJoinedCity(user_id=OUTSIDER, city_id=adelaide.id, role="member"),
        UserLeftCity(user_id=OUTSIDER, city_id=adelaide.id),
    ]


def test_adding_an_existing_member_conflicts(env):
    with pytest.raises(InvalidState) as exc_info:
        env.accounts.add_user_to_city(CITY_ADMIN, ADELAIDE, MEMBER, UserRole.MEMBER)
    assert exc_info.value.detail == "User is already a member of this city"
    assert env.published == []


def test_only_super_admins_grant_super_admin(env):
    with pytest.raises(PermissionDenied):
        env.accounts.add_user_to_city(CITY_ADMIN, ADELAIDE, OUTSIDER, UserRole.SUPER_ADMIN)


def test_member_cannot_add_members(env):
    with pytest.raises(PermissionDenied) as exc_info:
        env.accounts.add_user_to_city(MEMBER, ADELAIDE, OUTSIDER, UserRole.MEMBER)
    assert exc_info.value.detail == "Unauthorized - only city admins can add members"


def test_super_admin_is_admin_in_every_city(env):
    sydney = env.city_repo.get_by_slug(SYDNEY)
    assert env.access.is_admin(SUPER_ADMIN, sydney.id)
    assert not env.access.is_admin(CITY_ADMIN, sydney.id)


def test_grant_super_admin_without_cities_only_warns(env):
    city_repo = CityRepository()
    role_repo = RoleRepository()
    env.accounts.city_repo = city_repo
    env.accounts.role_repo = role_repo

    env.accounts.grant_super_admin("u-boot")

    assert role_repo.list_for_user("u-boot") == []


def test_grant_super_admin_upgrades_an_existing_membership(env):
    adelaide = env.city_repo.get_by_slug(ADELAIDE)

    env.accounts.grant_super_admin(MEMBER)

    rows = env.role_repo.list_for_user(MEMBER)
    assert [(r.city_id, r.role) for r in rows] == [(adelaide.id, UserRole.SUPER_ADMIN)]
    members = env.accounts.list_members(SUPER_ADMIN, ADELAIDE)
    assert [m.user_id for m in members].count(MEMBER) == 1


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


def test_api_verified_user_and_profile(client):
    resp = client.post("/auth/verified", json={"user_id": "u-api", "email": " Sam@Example.com "})
    assert resp.status_code == 200
    assert resp.json()["email"] == "sam@example.com"

    resp = client.get("/profile", headers=as_user("u-api"))
    assert resp.status_code == 200
    assert resp.json()["display_name"] == "sam"


def test_api_profile_requires_header(client):
    resp = client.get("/profile")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authenticated"


def test_api_profile_rejects_bad_url(client):
    client.post("/auth/verified", json={"user_id": "u-api", "email": "sam@example.com"})
    resp = client.patch("/profile", json={"github_url": "github"}, headers=as_user("u-api"))
    assert resp.status_code == 422


def test_api_list_cities_is_sorted_by_name(client):
    resp = client.get("/cities")
    assert resp.status_code == 200
    assert [c["slug"] for c in resp.json()] == ["adelaide", "brisbane", "melbourne", "sydney"]


def test_api_create_city(client):
    resp = client.post(
        "/cities",
        json={"name": "Perth", "accent_color": "#112233"},
        headers=as_user(SUPER_ADMIN),
    )
    assert resp.status_code == 201
    assert resp.json()["slug"] == "perth"

    resp = client.get("/cities/perth")
    assert resp.status_code == 200


def test_api_create_city_forbidden_for_city_admin(client):
    resp = client.post("/cities", json={"name": "Perth"}, headers=as_user(CITY_ADMIN))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Unauthorized - super admin only"


def test_api_create_city_rejects_bad_color(client):
    resp = client.post(
        "/cities", json={"name": "Perth", "accent_color": "blue"}, headers=as_user(SUPER_ADMIN)
    )
    assert resp.status_code == 422


def test_api_unknown_city_is_404(client):
    resp = client.get("/cities/atlantis")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "City not found"


def test_api_membership_flow(client):
    resp = client.post(
        f"/cities/{ADELAIDE}/members",
        json={"user_id": OUTSIDER},
        headers=as_user(CITY_ADMIN),
    )
    assert resp.status_code == 201
    assert resp.json()["role"] == "member"

    resp = client.post(
        f"/cities/{ADELAIDE}/members",
        json={"user_id": OUTSIDER},
        headers=as_user(CITY_ADMIN),
    )
    assert resp.status_code == 409

    resp = client.get(f"/cities/{ADELAIDE}/members", headers=as_user(CITY_ADMIN))
    assert OUTSIDER in [m["user_id"] for m in resp.json()]

    resp = client.delete(f"/cities/{ADELAIDE}/members/{OUTSIDER}", headers=as_user(CITY_ADMIN))
    assert resp.status_code == 204

    resp = client.delete(f"/cities/{ADELAIDE}/members/{OUTSIDER}", headers=as_user(CITY_ADMIN))
    assert resp.status_code == 404
