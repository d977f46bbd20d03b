"""Structured logging configuration.

All modules log through structlog so every fetch against the registry,
the GitHub search API and the release notes endpoints carries key/value
context (package, version, owner/repo, window) instead of formatted text:

  {"event": "pull_request_search", "package": "@salesforce/cli",
   "owner": "oclif", "repo": "core"}

Every event is stamped with the CLI package being compared, and events
emitted while serving a request also carry its method and path (bound by
the timing middleware in ``main``).

Usage:
    from release_compare.logging_config import setup_logging, get_logger

    setup_logging(environment="production", package="@salesforce/cli")
    logger = get_logger(__name__)
    logger.info("registry_fetch", version="2.0.0")
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

# Loggers whose per-request INFO lines duplicate our own fetch events.
NOISY_LOGGERS = ("httpx", "httpcore")


def stamp_package(package: str) -> structlog.types.Processor:
    """Processor adding ``package`` to events that don't set one themselves."""

    def processor(logger: Any, method_name: str, event_dict: dict) -> dict:
        event_dict.setdefault("package", package)
        return event_dict

    return processor


def setup_logging(
    environment: str | None = None,
    log_level: str | None = None,
    package: str | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Development gets the colorized console renderer, production gets one
    JSON object per line.

    Args:
        environment: "development" or "production". Reads from
                     ENVIRONMENT env var if not provided.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Reads from LOG_LEVEL env var if not provided.
        package: CLI package name stamped on every event, if given.
    """
    env = environment or os.environ.get("ENVIRONMENT", "development")
    level = getattr(logging, (log_level or os.environ.get("LOG_LEVEL", "INFO")).upper())

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
    ]
    if package:
        processors.append(stamp_package(package))
    processors += [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
        if env == "production"
        else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # uvicorn logs through the stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)


def get_logger(name: str) -> Any:
    """Return a structlog bound logger named after the calling module."""
    return structlog.get_logger(name)
