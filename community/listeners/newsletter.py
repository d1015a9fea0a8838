"""Newsletter reactions to content and subscription events.

Only logging for now; campaign delivery hooks in here later.
"""

from __future__ import annotations

import structlog

from community.domain.bus import EventBus
from community.domain.events import (
    EventCreated,
    PostPublished,
    SubscriberAdded,
    SubscriberRemoved,
)

logger = structlog.get_logger(__name__)


async def on_post_published(event: PostPublished) -> None:
    logger.info(
        "newsletter.post_published",
        post_id=event.post_id,
        city_id=event.city_id,
        title=event.title,
    )


async def on_event_created(event: EventCreated) -> None:
    logger.info("newsletter.event_created", event_id=event.event_id, city_id=event.city_id)


async def on_subscriber_added(event: SubscriberAdded) -> None:
    logger.info("newsletter.subscriber_added", email=event.email, city_id=event.city_id)


async def on_subscriber_removed(event: SubscriberRemoved) -> None:
    logger.info("newsletter.subscriber_removed", email=event.email, city_id=event.city_id)


def register_newsletter_listeners(bus: EventBus) -> None:
    bus.subscribe(PostPublished, on_post_published)
    bus.subscribe(EventCreated, on_event_created)
    bus.subscribe(SubscriberAdded, on_subscriber_added)
    bus.subscribe(SubscriberRemoved, on_subscriber_removed)
