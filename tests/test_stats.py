"""Tests for city and global statistics."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import ADELAIDE, CITY_ADMIN, MEMBER, SUPER_ADMIN, SYDNEY, as_user
from community.domain.models import (
    CityEventCreate,
    CityStats,
    GlobalStats,
    PostCreate,
    ProjectCreate,
)

pytestmark = pytest.mark.usefixtures("app_state")


def test_city_stats_count_only_published_posts(env):
    env.blog.create_post(MEMBER, ADELAIDE, PostCreate(title="Draft"))
    published = env.blog.create_post(MEMBER, ADELAIDE, PostCreate(title="Live"))
    env.blog.publish_post(MEMBER, ADELAIDE, published.id)
    env.projects.create_project(MEMBER, ADELAIDE, ProjectCreate(title="Tool"))
    env.events.create_event(
        CITY_ADMIN,
        ADELAIDE,
        CityEventCreate(title="Meetup", starts_at=datetime(2030, 1, 1, tzinfo=timezone.utc)),
    )

    assert env.stats.city_stats(ADELAIDE) == CityStats(
        member_count=3, event_count=1, project_count=1, post_count=1
    )
    assert env.stats.city_stats(SYDNEY) == CityStats()


def test_global_stats_skip_deactivated_cities(env):
    env.accounts.register_verified_user("u-1", "one@example.com")
    env.accounts.register_verified_user("u-2", "two@example.com")
    env.projects.create_project(MEMBER, ADELAIDE, ProjectCreate(title="Tool"))
    env.accounts.deactivate_city(SUPER_ADMIN, SYDNEY)

    assert env.stats.global_stats() == GlobalStats(
        city_count=3, member_count=2, event_count=0, project_count=1
    )


def test_user_cities_lists_every_role(env):
    env.accounts.add_user_to_city(CITY_ADMIN, ADELAIDE, "u-new")
    env.accounts.add_user_to_city(SUPER_ADMIN, SYDNEY, "u-new")

    cities = env.accounts.list_user_cities("u-new")

    assert len(cities) == 2
    assert {c.city_id for c in cities} == {
        env.city_repo.get_by_slug(ADELAIDE).id,
        env.city_repo.get_by_slug(SYDNEY).id,
    }


def test_api_stats(client):
    resp = client.get(f"/cities/{ADELAIDE}/stats")
    assert resp.status_code == 200
    assert resp.json()["member_count"] == 3

    resp = client.get("/stats")
    assert resp.status_code == 200
    assert resp.json()["city_count"] == 4

    resp = client.get("/cities/atlantis/stats")
    assert resp.status_code == 404


def test_api_my_cities(client):
    resp = client.get("/profile/cities", headers=as_user(MEMBER))
    assert resp.status_code == 200
    assert [r["role"] for r in resp.json()] == ["member"]

    assert client.get("/profile/cities").status_code == 401
