"""Newsletter subscriptions: public subscribe/unsubscribe and admin tools."""

from __future__ import annotations

import csv
import io
from datetime import datetime, timezone

import structlog

from community.domain.bus import EventBus
from community.domain.events import SubscriberAdded, SubscriberRemoved
from community.domain.models import CSVExport, NewsletterSubscriber, normalize_email
from community.errors import InvalidInput, InvalidState, NotFound
from community.repos.memory import SubscriberRepository
from community.services.access import AccessPolicy

logger = structlog.get_logger(__name__)

CSV_HEADER = ("Email", "Subscribed At")


class NewsletterService:
    def __init__(
        self, bus: EventBus, access: AccessPolicy, subscriber_repo: SubscriberRepository
    ) -> None:
        self.bus = bus
        self.access = access
        self.subscriber_repo = subscriber_repo

    @staticmethod
    def _clean_email(email: str) -> str:
        try:
            return normalize_email(email)
        except ValueError as exc:
            raise InvalidInput(str(exc)) from exc

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    def subscribe(self, city_slug: str, email: str) -> NewsletterSubscriber:
        """Subscribe, or reactivate a previous subscription for the same email."""
        city = self.access.resolve_city(city_slug)
        email = self._clean_email(email)

        existing = self.subscriber_repo.get_by_email(city.id, email)
        if existing is not None:
            if existing.is_active:
                raise InvalidState("You are already subscribed to this newsletter")
            existing.is_active = True
            existing.subscribed_at = datetime.now(timezone.utc)
            existing.unsubscribed_at = None
            subscriber = existing
        else:
            subscriber = NewsletterSubscriber(city_id=city.id, email=email)
            self.subscriber_repo.add(subscriber)

        self.bus.publish(SubscriberAdded(email=email, city_id=city.id))
        return subscriber

    def unsubscribe(self, city_slug: str, email: str) -> None:
        city = self.access.resolve_city(city_slug)
        email = self._clean_email(email)

        subscriber = self.subscriber_repo.get_by_email(city.id, email)
        if subscriber is None:
            raise NotFound("Email not found in our subscriber list")

        subscriber.is_active = False
        subscriber.unsubscribed_at = datetime.now(timezone.utc)

        self.bus.publish(SubscriberRemoved(email=email, city_id=city.id))

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def list_subscribers(self, actor_id: str | None, city_slug: str) -> list[NewsletterSubscriber]:
        city = self.access.resolve_city(city_slug)
        self.access.require_admin(actor_id, city, "view subscribers")
        return self.subscriber_repo.list_for_city(city.id)

    def active_count(self, actor_id: str | None, city_slug: str) -> int:
        city = self.access.resolve_city(city_slug)
        self.access.require_admin(actor_id, city, "view subscribers")
        return len(self.subscriber_repo.list_for_city(city.id, active_only=True))

    def export_csv(self, actor_id: str | None, city_slug: str) -> CSVExport:
        """Active subscribers only, newest first."""
        city = self.access.resolve_city(city_slug)
        self.access.require_admin(actor_id, city, "export subscribers")

        active = self.subscriber_repo.list_for_city(city.id, active_only=True)
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for subscriber in active:
            writer.writerow([subscriber.email, subscriber.subscribed_at.isoformat()])

        logger.info("newsletter.exported", city_id=city.id, count=len(active))
        return CSVExport(csv=buffer.getvalue().rstrip("\n"), count=len(active))

    def delete_subscriber(self, actor_id: str | None, city_slug: str, subscriber_id: str) -> None:
        """Hard delete (right to be forgotten)."""
        city = self.access.resolve_city(city_slug)
        self.access.require_admin(actor_id, city, "delete subscribers")

        subscriber = self.subscriber_repo.get(subscriber_id)
        if subscriber is None or subscriber.city_id != city.id:
            raise NotFound("Subscriber not found")

        self.subscriber_repo.delete(subscriber.id)
        self.bus.publish(SubscriberRemoved(email=subscriber.email, city_id=city.id))

    def reactivate_subscriber(
        self, actor_id: str | None, city_slug: str, subscriber_id: str
    ) -> NewsletterSubscriber:
        city = self.access.resolve_city(city_slug)
        self.access.require_admin(actor_id, city, "reactivate subscribers")

        subscriber = self.subscriber_repo.get(subscriber_id)
        if subscriber is None or subscriber.city_id != city.id:
            raise NotFound("Subscriber not found")

        subscriber.is_active = True
        subscriber.subscribed_at = datetime.now(timezone.utc)
        subscriber.unsubscribed_at = None

        self.bus.publish(SubscriberAdded(email=subscriber.email, city_id=city.id))
        return subscriber
