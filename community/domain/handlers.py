"""Composition root for cross-feature listeners.

Every feature exposes a ``register_*_listeners(bus)`` function; this module
is the only place that knows about all of them.
"""

from __future__ import annotations

import threading
import weakref

import structlog

from community.domain.bus import EventBus
from community.listeners.blog import register_blog_listeners
from community.listeners.events import register_event_listeners
from community.listeners.newsletter import register_newsletter_listeners
from community.listeners.projects import register_project_listeners

logger = structlog.get_logger(__name__)

LISTENER_REGISTRATIONS = (
    register_newsletter_listeners,
    register_event_listeners,
    register_blog_listeners,
    register_project_listeners,
)

_initialized: weakref.WeakSet[EventBus] = weakref.WeakSet()
_init_lock = threading.Lock()


def initialize_all_listeners(bus: EventBus) -> bool:
    """Register every feature's listeners on ``bus`` once.

    Returns False (and registers nothing) when ``bus`` was already initialized.
    """
    with _init_lock:
        if bus in _initialized:
            logger.warning("listeners.already_initialized")
            return False
        _initialized.add(bus)

    for register in LISTENER_REGISTRATIONS:
        register(bus)

    logger.info(
        "listeners.initialized",
        features=len(LISTENER_REGISTRATIONS),
        events=bus.event_names(),
    )
    return True
