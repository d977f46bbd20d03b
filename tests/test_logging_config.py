"""Tests for structured logging setup.

Run with: pytest tests/test_logging_config.py -v
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from release_compare.logging_config import (
    NOISY_LOGGERS,
    get_logger,
    setup_logging,
    stamp_package,
)


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)


def last_event(capsys: pytest.CaptureFixture[str]) -> dict:
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])


class TestStampPackage:
    def test_adds_package(self) -> None:
        event = stamp_package("@salesforce/cli")(None, "info", {"event": "x"})
        assert event["package"] == "@salesforce/cli"

    def test_explicit_package_wins(self) -> None:
        processor = stamp_package("@salesforce/cli")
        event = processor(None, "info", {"event": "x", "package": "@oclif/core"})
        assert event["package"] == "@oclif/core"


class TestSetupLogging:
    def test_production_events_are_json_with_package(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        setup_logging(environment="production", log_level="INFO", package="@salesforce/cli")

        get_logger("tests").info("registry_fetch", version="2.0.0")

        event = last_event(capsys)
        assert event["event"] == "registry_fetch"
        assert event["package"] == "@salesforce/cli"
        assert event["version"] == "2.0.0"
        assert event["level"] == "info"

    def test_bound_request_context_is_merged(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        setup_logging(environment="production", log_level="INFO")

        with structlog.contextvars.bound_contextvars(method="GET", path="/compare"):
            get_logger("tests").info("request_handled")

        event = last_event(capsys)
        assert event["method"] == "GET"
        assert event["path"] == "/compare"
        assert "package" not in event

    def test_level_filters_events(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(environment="production", log_level="WARNING")

        get_logger("tests").info("registry_fetch")

        assert capsys.readouterr().out == ""

    def test_http_client_loggers_are_quieted(self) -> None:
        setup_logging(environment="production", log_level="INFO")
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_http_client_loggers_follow_debug(self) -> None:
        setup_logging(environment="production", log_level="DEBUG")
        assert logging.getLogger("httpx").level == logging.DEBUG
