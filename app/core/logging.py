"""
core/logging.py
---------------
structlog setup shared by the gateway and the responder.

Both processes call configure_logging() from their lifespan. Output is a
console renderer when DEBUG is on and one JSON object per line otherwise.
Log calls pass fields as keyword arguments:

    logger.info("Reply received", engine="EchoEngine", latency_ms=12.5)

The tenant of the current request is bound once through bind_tenant()
and merged into every line by structlog.contextvars; background turn
tasks inherit it because asyncio copies the context on create_task.
"""

import logging
import sys

import structlog

from app.core.config import settings

# Chatty third-party loggers that only matter while debugging.
_QUIET_LOGGERS = ("uvicorn.access", "httpx")


def _renderer(debug: bool):
    if debug:
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def configure_logging() -> None:
    level = logging.DEBUG if settings.DEBUG else logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    if not settings.DEBUG:
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            _renderer(settings.DEBUG),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_tenant(tenant_id: str) -> None:
    """Attach the tenant id to every log line of the current request."""
    structlog.contextvars.bind_contextvars(tenant_id=tenant_id)


def get_logger(name: str = __name__):
    return structlog.get_logger(name)
