"""Blog posts: drafts, publishing and featuring."""

from __future__ import annotations

from datetime import datetime, timezone

from community.domain.bus import EventBus
from community.domain.events import (
    PostDeleted,
    PostFeatured,
    PostPublished,
    PostUnpublished,
    PostUpdated,
)
from community.domain.models import City, Post, PostCreate, PostUpdate
from community.errors import InvalidState, NotFound
from community.repos.memory import PostRepository
from community.services.access import AccessPolicy
from community.services.slugify import unique_slug_for

FEATURED_LIMIT = 6


class BlogService:
    def __init__(self, bus: EventBus, access: AccessPolicy, post_repo: PostRepository) -> None:
        self.bus = bus
        self.access = access
        self.post_repo = post_repo

    def _get_in_city(self, city: City, post_id: str) -> Post:
        post = self.post_repo.get(post_id)
        if post is None or post.city_id != city.id:
            raise NotFound("Post not found or access denied")
        return post

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_posts(
        self, city_slug: str, viewer_id: str | None = None, include_drafts: bool = False
    ) -> list[Post]:
        """Published posts, newest first. Admins may ask for drafts too."""
        city = self.access.resolve_city(city_slug)
        posts = self.post_repo.list_for_city(city.id)
        if include_drafts:
            self.access.require_admin(viewer_id, city, "view drafts")
            return posts
        return [p for p in posts if p.is_published]

    def list_featured(self, city_slug: str) -> list[Post]:
        city = self.access.resolve_city(city_slug)
        featured = [
            p for p in self.post_repo.list_for_city(city.id) if p.is_featured and p.is_published
        ]
        featured.sort(key=lambda p: p.published_at, reverse=True)
        return featured[:FEATURED_LIMIT]

    def get_by_slug(self, city_slug: str, slug: str, viewer_id: str | None = None) -> Post:
        """Drafts are visible only to their author and city admins."""
        city = self.access.resolve_city(city_slug)
        post = self.post_repo.get_by_slug(city.id, slug)
        if post is None:
            raise NotFound("Post not found")
        if not post.is_published and not (
            viewer_id
            and (post.created_by == viewer_id or self.access.is_admin(viewer_id, city.id))
        ):
            raise NotFound("Post not found")
        return post

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_post(self, actor_id: str | None, city_slug: str, payload: PostCreate) -> Post:
        """New posts start as drafts; nothing is published until publish_post."""
        city = self.access.resolve_city(city_slug)
        actor_id = self.access.require_member(actor_id, city)

        slug = unique_slug_for(payload.title, lambda s: self.post_repo.slug_exists(city.id, s))
        post = Post(city_id=city.id, slug=slug, created_by=actor_id, **payload.model_dump())
        self.post_repo.add(post)
        return post

    def update_post(
        self, actor_id: str | None, city_slug: str, post_id: str, changes: PostUpdate
    ) -> Post:
        city = self.access.resolve_city(city_slug)
        self.access.require_user(actor_id)
        post = self._get_in_city(city, post_id)
        actor_id = self.access.require_owner_or_admin(actor_id, city, post.created_by, "post")

        for field, value in changes.model_dump(exclude_unset=True).items():
            if field == "title" and value is None:
                continue
            setattr(post, field, value)
        post.updated_at = datetime.now(timezone.utc)

        self.bus.publish(PostUpdated(post_id=post.id, city_id=city.id, updated_by=actor_id))
        return post

    def delete_post(self, actor_id: str | None, city_slug: str, post_id: str) -> None:
        city = self.access.resolve_city(city_slug)
        actor_id = self.access.require_admin(actor_id, city, "delete posts")
        post = self._get_in_city(city, post_id)

        self.post_repo.delete(post.id)
        self.bus.publish(PostDeleted(post_id=post.id, city_id=city.id, deleted_by=actor_id))

    def publish_post(self, actor_id: str | None, city_slug: str, post_id: str) -> Post:
        city = self.access.resolve_city(city_slug)
        self.access.require_user(actor_id)
        post = self._get_in_city(city, post_id)
        if post.is_published:
            raise InvalidState("Post is already published")
        actor_id = self.access.require_owner_or_admin(actor_id, city, post.created_by, "post")

        post.published_at = datetime.now(timezone.utc)
        post.updated_at = post.published_at

        self.bus.publish(
            PostPublished(
                post_id=post.id,
                city_id=city.id,
                author_id=actor_id,
                title=post.title,
            )
        )
        return post

    def unpublish_post(self, actor_id: str | None, city_slug: str, post_id: str) -> Post:
        city = self.access.resolve_city(city_slug)
        self.access.require_user(actor_id)
        post = self._get_in_city(city, post_id)
        if not post.is_published:
            raise InvalidState("Post is already a draft")
        self.access.require_owner_or_admin(actor_id, city, post.created_by, "post")

        post.published_at = None
        post.updated_at = datetime.now(timezone.utc)

        self.bus.publish(PostUnpublished(post_id=post.id, city_id=city.id))
        return post

    def toggle_featured(self, actor_id: str | None, city_slug: str, post_id: str) -> Post:
        """Only the off -> on transition is announced."""
        city = self.access.resolve_city(city_slug)
        actor_id = self.access.require_admin(actor_id, city, "feature posts")
        post = self._get_in_city(city, post_id)

        post.is_featured = not post.is_featured
        post.updated_at = datetime.now(timezone.utc)

        if post.is_featured:
            self.bus.publish(PostFeatured(post_id=post.id, city_id=city.id, featured_by=actor_id))
        return post
