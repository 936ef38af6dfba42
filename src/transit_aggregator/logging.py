"""Structured logging for the API and the dataset build CLI."""

from __future__ import annotations

import logging
import sys
from typing import IO, TYPE_CHECKING, Any, Optional

import structlog

if TYPE_CHECKING:
    from structlog.types import Processor

from transit_aggregator.config import get_settings

# Upstream clients log every request at INFO
QUIET_LOGGERS = ("httpcore", "uvicorn.access")


def _renderer(environment: str) -> Processor:
    if environment == "development":
        return structlog.dev.ConsoleRenderer(colors=False)
    return structlog.processors.JSONRenderer(sort_keys=True)


def setup_logging(level: Optional[str] = None, stream: Optional[IO[str]] = None) -> None:
    """Route structlog and stdlib records through one handler.

    Pipeline reports are printed to stdout, so records default to stderr.
    ``level`` overrides the configured ``LOG_LEVEL``.
    """
    settings = get_settings()

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if settings.environment != "development":
        pre_chain.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings.environment),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel((level or settings.log_level).upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.DEBUG if settings.debug else logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.stdlib.get_logger(name)


def bind_request_context(**kwargs: Any) -> None:
    """Attach ``kwargs`` to every record logged while handling this request."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
