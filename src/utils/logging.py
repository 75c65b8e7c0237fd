"""Structured logging configuration for tubesource.

Every module logs through `logging.getLogger(__name__)`; structlog renders
those records (console or JSON) and tags each one with the resolution it
belongs to, so interleaved concurrent resolutions can be told apart.
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

import structlog

# (resolution_id, video_id) of the resolution running in this task
_resolution: ContextVar[Optional[tuple[str, str]]] = ContextVar("resolution", default=None)

NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def add_resolution_fields(_logger, _method_name, event_dict):
    """Structlog processor adding resolution_id and video_id to log events."""
    current = _resolution.get()
    if current is not None:
        resolution_id, video_id = current
        event_dict.setdefault("resolution_id", resolution_id)
        event_dict.setdefault("video_id", video_id)
    return event_dict


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Configure structured logging for the server.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_output: Emit one JSON object per line instead of colored console output
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_resolution_fields,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def resolution_context(video_id: str, resolution_id: Optional[str] = None) -> Iterator[str]:
    """Tag log records emitted inside the block with a resolution.

    Args:
        video_id: Video being resolved
        resolution_id: Correlation id; a short random one is generated when omitted

    Yields:
        The resolution id in effect
    """
    resolution_id = resolution_id or uuid.uuid4().hex[:12]
    token = _resolution.set((resolution_id, video_id))
    try:
        yield resolution_id
    finally:
        _resolution.reset(token)
