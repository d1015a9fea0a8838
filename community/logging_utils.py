"""Logging bootstrap: structlog rendered through the stdlib root logger."""

from __future__ import annotations

import logging

import structlog

from community.config import Settings


def configure_logging(settings: Settings) -> None:
    """Route structlog and stdlib logging through one stderr handler.

    JSON lines when ``settings.structured_logs`` is set, otherwise the
    structlog console renderer.
    """
    level = getattr(logging, settings.log_level, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    shared_processors = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Module-level proxies must keep honouring reconfiguration in tests.
        cache_logger_on_first_use=False,
    )

    if settings.structured_logs:
        renderer = structlog.processors.JSONRenderer(
            ensure_ascii=False, separators=(",", ":")
        )
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    # Uvicorn access lines duplicate what the routes already log.
    for logger_name in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(logger_name).setLevel(logging.WARNING)
