"""In-process event bus with per-handler failure isolation."""

from __future__ import annotations

import asyncio
import inspect
import threading
from collections import defaultdict
from collections.abc import Awaitable, Callable
from concurrent.futures import Future
from typing import Any

import structlog

from community.domain.events import DomainEventBase, event_name

logger = structlog.get_logger(__name__)

Handler = Callable[[Any], Awaitable[None] | None]


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


class EventBus:
    """Publish/subscribe bus for domain events.

    Handlers are keyed by event name and called in registration order.
    Synchronous handlers run inline. Handlers that return an awaitable are
    scheduled as background work bounded by ``handler_timeout``, so
    ``publish`` never waits on them. A handler that raises or times out is
    logged and skipped; nothing reaches the publisher.
    """

    def __init__(self, handler_timeout: float = 5.0) -> None:
        self.handler_timeout = handler_timeout
        self._subscribers: dict[str, list[Handler]] = defaultdict(list)
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: set[asyncio.Future | Future] = set()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def subscribe(self, event: type[DomainEventBase] | str, handler: Handler) -> None:
        key = event if isinstance(event, str) else event_name(event)
        with self._lock:
            self._subscribers[key].append(handler)
        logger.debug("event.subscribed", event_name=key, handler=_handler_name(handler))

    def subscriber_count(self, event: type[DomainEventBase] | str) -> int:
        key = event if isinstance(event, str) else event_name(event)
        with self._lock:
            return len(self._subscribers.get(key, ()))

    def event_names(self) -> list[str]:
        with self._lock:
            return sorted(name for name, handlers in self._subscribers.items() if handlers)

    # ------------------------------------------------------------------
    # Loop binding
    # ------------------------------------------------------------------

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Let worker threads hand async handlers to the application loop."""
        self._loop = loop

    def unbind_loop(self) -> None:
        self._loop = None

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def publish(self, event: DomainEventBase) -> None:
        with self._lock:
            handlers = tuple(self._subscribers.get(event.name, ()))

        if not handlers:
            logger.debug("event.unhandled", event_name=event.name)
            return

        logger.debug("event.published", event_name=event.name, handlers=len(handlers))
        for handler in handlers:
            try:
                result = handler(event)
            except Exception:
                logger.exception(
                    "event.handler.failed",
                    event_name=event.name,
                    handler=_handler_name(handler),
                )
                continue
            if inspect.isawaitable(result):
                self._schedule(result, event, handler)

    def _schedule(self, awaitable: Awaitable, event: DomainEventBase, handler: Handler) -> None:
        guarded = self._guard(awaitable, event, handler)
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None:
            self._track(running.create_task(guarded))
        elif self._loop is not None and self._loop.is_running():
            self._track(asyncio.run_coroutine_threadsafe(guarded, self._loop))
        else:
            # No loop anywhere: run it here, still bounded by the timeout.
            asyncio.run(guarded)

    async def _guard(self, awaitable: Awaitable, event: DomainEventBase, handler: Handler) -> None:
        try:
            await asyncio.wait_for(awaitable, timeout=self.handler_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "event.handler.timeout",
                event_name=event.name,
                handler=_handler_name(handler),
                timeout_seconds=self.handler_timeout,
            )
        except asyncio.CancelledError:
            # Only a cancellation aimed at the guard itself propagates.
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            logger.warning(
                "event.handler.cancelled",
                event_name=event.name,
                handler=_handler_name(handler),
            )
        except Exception:
            logger.exception(
                "event.handler.failed",
                event_name=event.name,
                handler=_handler_name(handler),
            )

    def _track(self, future: asyncio.Future | Future) -> None:
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: asyncio.Future | Future) -> None:
        with self._lock:
            self._pending.discard(future)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return sum(1 for f in self._pending if not f.done())

    async def drain(self) -> None:
        """Wait until every scheduled handler has finished."""
        while True:
            with self._lock:
                pending = [f for f in self._pending if not f.done()]
            if not pending:
                return
            await asyncio.gather(
                *(asyncio.wrap_future(f) if isinstance(f, Future) else f for f in pending),
                return_exceptions=True,
            )
