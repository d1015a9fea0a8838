"""Listeners owned by the community events feature."""

from __future__ import annotations

import structlog

from community.domain.bus import EventBus
from community.domain.events import CityCreated, UserJoinedCity

logger = structlog.get_logger(__name__)


async def on_user_joined_city(event: UserJoinedCity) -> None:
    logger.info(
        "events.user_joined_city",
        user_id=event.user_id,
        city_id=event.city_id,
        role=event.role,
    )


async def on_city_created(event: CityCreated) -> None:
    logger.info("events.city_created", city_id=event.city_id, city_name=event.city_name)


def register_event_listeners(bus: EventBus) -> None:
    bus.subscribe(UserJoinedCity, on_user_joined_city)
    bus.subscribe(CityCreated, on_city_created)
