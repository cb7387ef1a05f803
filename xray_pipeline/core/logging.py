"""
Structured logging configuration for xray-pipeline.

Uses structlog for key/value log events so that per-host and per-app failures
can be filtered by host, record id and error kind. The record being worked on
is carried in context variables rather than repeated on every call.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from .config import Config

# HTTP client libraries log every request at INFO; one mapping run sends one
# request per host, so they only speak up at DEBUG.
CHATTY_LOGGERS = ("httpx", "httpcore")


def _processors(json_output: bool) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors += [
            structlog.dev.set_exc_info,
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    return processors


def setup_logging(config: Config | None = None) -> None:
    """Configure structured logging for the application.

    Events go to stderr, rendered for a terminal when stderr is a TTY and as
    one JSON object per line otherwise.
    """
    log_level = config.log_level if config else "INFO"
    level = getattr(logging, log_level, logging.INFO)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler])
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)

    structlog.configure(
        processors=_processors(json_output=not sys.stderr.isatty()),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


@contextmanager
def log_context(**kwargs: object) -> Iterator[None]:
    """Attach ``kwargs`` to every event logged inside the block.

    Previously bound values are restored on exit, so blocks can nest.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
