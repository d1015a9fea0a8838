"""City events (meetups) and RSVPs."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import ValidationError

from community.domain.bus import EventBus
from community.domain.events import (
    EventCreated,
    EventDeleted,
    EventUpdated,
    RSVPAdded,
    RSVPRemoved,
    RSVPUpdated,
)
from community.domain.models import (
    City,
    CityEvent,
    CityEventCreate,
    CityEventUpdate,
    CityEventWithCounts,
    EventRSVP,
    RSVPStatus,
)
from community.errors import InvalidInput, InvalidState, NotFound
from community.repos.memory import CityEventRepository, RSVPRepository
from community.services.access import AccessPolicy
from community.services.slugify import unique_slug_for


class CityEventService:
    def __init__(
        self,
        bus: EventBus,
        access: AccessPolicy,
        event_repo: CityEventRepository,
        rsvp_repo: RSVPRepository,
    ) -> None:
        self.bus = bus
        self.access = access
        self.event_repo = event_repo
        self.rsvp_repo = rsvp_repo

    def _get_in_city(self, city: City, event_id: str) -> CityEvent:
        event = self.event_repo.get(event_id)
        if event is None or event.city_id != city.id:
            raise NotFound("Event not found or access denied")
        return event

    def with_counts(self, event: CityEvent) -> CityEventWithCounts:
        rsvps = self.rsvp_repo.list_for_event(event.id)
        counts = {status: 0 for status in RSVPStatus}
        for rsvp in rsvps:
            counts[rsvp.status] += 1
        return CityEventWithCounts(
            **event.model_dump(),
            rsvp_yes_count=counts[RSVPStatus.YES],
            rsvp_no_count=counts[RSVPStatus.NO],
            rsvp_maybe_count=counts[RSVPStatus.MAYBE],
            total_rsvps=len(rsvps),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_events(
        self, city_slug: str, upcoming_only: bool = False, now: datetime | None = None
    ) -> list[CityEventWithCounts]:
        city = self.access.resolve_city(city_slug)
        events = self.event_repo.list_for_city(city.id)
        if upcoming_only:
            current = now or datetime.now(timezone.utc)
            events = [e for e in events if e.starts_at >= current]
        return [self.with_counts(e) for e in events]

    def get_by_slug(self, city_slug: str, slug: str) -> CityEventWithCounts:
        city = self.access.resolve_city(city_slug)
        event = self.event_repo.get_by_slug(city.id, slug)
        if event is None:
            raise NotFound("Event not found")
        return self.with_counts(event)

    def list_rsvps(self, city_slug: str, event_id: str) -> list[EventRSVP]:
        city = self.access.resolve_city(city_slug)
        event = self._get_in_city(city, event_id)
        return self.rsvp_repo.list_for_event(event.id)

    # ------------------------------------------------------------------
    # Admin writes
    # ------------------------------------------------------------------

    def create_event(
        self, actor_id: str | None, city_slug: str, payload: CityEventCreate
    ) -> CityEvent:
        city = self.access.resolve_city(city_slug)
        actor_id = self.access.require_admin(actor_id, city, "create events")

        slug = unique_slug_for(payload.title, lambda s: self.event_repo.slug_exists(city.id, s))
        event = CityEvent(city_id=city.id, slug=slug, created_by=actor_id, **payload.model_dump())
        self.event_repo.add(event)

        self.bus.publish(EventCreated(event_id=event.id, city_id=city.id, created_by=actor_id))
        return event

    def update_event(
        self, actor_id: str | None, city_slug: str, event_id: str, changes: CityEventUpdate
    ) -> CityEvent:
        city = self.access.resolve_city(city_slug)
        actor_id = self.access.require_admin(actor_id, city, "update events")
        event = self._get_in_city(city, event_id)

        updates = changes.model_dump(exclude_unset=True)
        for required in ("title", "starts_at"):
            if updates.get(required, ...) is None:
                updates.pop(required)
        # Validate the merged record before touching the stored one.
        try:
            merged = CityEvent(**{**event.model_dump(), **updates})
        except ValidationError as exc:
            raise InvalidInput(exc.errors()[0]["msg"]) from exc
        for field in updates:
            setattr(event, field, getattr(merged, field))
        event.updated_at = datetime.now(timezone.utc)

        self.bus.publish(EventUpdated(event_id=event.id, city_id=city.id, updated_by=actor_id))
        return event

    def delete_event(self, actor_id: str | None, city_slug: str, event_id: str) -> None:
        city = self.access.resolve_city(city_slug)
        actor_id = self.access.require_admin(actor_id, city, "delete events")
        event = self._get_in_city(city, event_id)

        self.event_repo.delete(event.id)
        self.rsvp_repo.delete_for_event(event.id)

        self.bus.publish(EventDeleted(event_id=event.id, city_id=city.id, deleted_by=actor_id))

    # ------------------------------------------------------------------
    # RSVPs
    # ------------------------------------------------------------------

    def rsvp(
        self, actor_id: str | None, city_slug: str, event_id: str, status: RSVPStatus
    ) -> EventRSVP:
        """Create or change the actor's RSVP.

        The first answer publishes ``event:rsvp_added``; later ones publish
        ``event:rsvp_updated``.

        A "yes" is refused once ``max_attendees`` other people said yes.
        """
        city = self.access.resolve_city(city_slug)
        actor_id = self.access.require_user(actor_id)
        event = self._get_in_city(city, event_id)

        if status == RSVPStatus.YES and event.max_attendees:
            yes_from_others = sum(
                1
                for r in self.rsvp_repo.list_for_event(event.id)
                if r.status == RSVPStatus.YES and r.user_id != actor_id
            )
            if yes_from_others >= event.max_attendees:
                raise InvalidState("Event is at capacity")

        changed = self.rsvp_repo.get(event.id, actor_id) is not None
        rsvp = self.rsvp_repo.upsert(EventRSVP(event_id=event.id, user_id=actor_id, status=status))

        announce = RSVPUpdated if changed else RSVPAdded
        self.bus.publish(announce(event_id=event.id, user_id=actor_id, status=status.value))
        return rsvp

    def remove_rsvp(self, actor_id: str | None, city_slug: str, event_id: str) -> None:
        city = self.access.resolve_city(city_slug)
        actor_id = self.access.require_user(actor_id)
        event = self._get_in_city(city, event_id)

        if not self.rsvp_repo.remove(event.id, actor_id):
            raise NotFound("RSVP not found")

        self.bus.publish(RSVPRemoved(event_id=event.id, user_id=actor_id))
