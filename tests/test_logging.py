"""Tests for logging configuration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from loguru import logger

from github_team_metrics.config import LoggingConfig
from github_team_metrics.logging import (
    bind_activity,
    bind_repo,
    get_logger,
    reset_logging,
    setup_logging,
)

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def _reset_logging_state() -> Generator[None, None, None]:
    """Reset loguru state before and after each test."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def captured() -> Generator[list[str], None, None]:
    """Messages rendered as ``{extra} | {message}``."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda msg: messages.append(str(msg)),
        format="{extra} | {message}",
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_verbose_takes_precedence_over_quiet(self) -> None:
        """verbose wins when both flags are given."""
        setup_logging(level="INFO", verbose=True, quiet=True)
        assert logging.getLogger("httpx").level == logging.DEBUG

    def test_quiet_raises_library_levels(self) -> None:
        setup_logging(level="DEBUG", quiet=True)
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_file_logging(self, tmp_path: Path) -> None:
        log_file = tmp_path / "metrics.log"
        setup_logging(level="INFO", file=LoggingConfig(log_file=str(log_file)))

        logger.bind(name="test").debug("Written to file")
        logger.complete()

        assert log_file.exists()
        assert "Written to file" in log_file.read_text()

    def test_no_file_sink_without_path(self, tmp_path: Path) -> None:
        setup_logging(level="INFO", file=LoggingConfig())
        logger.bind(name="test").info("Console only")
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.parametrize("level", ["DEBUG", "INFO", "WARNING", "ERROR"])
    def test_log_level_accepted(self, level: str) -> None:
        assert setup_logging(level=level) is logger  # type: ignore[arg-type]


class TestInterceptHandler:
    """Tests for stdlib logging interception."""

    def test_stdlib_records_reach_loguru(self) -> None:
        setup_logging(level="DEBUG")
        messages: list[str] = []
        handler_id = logger.add(lambda msg: messages.append(str(msg)))
        try:
            logging.getLogger("test_stdlib_intercept").warning("Hello from stdlib")
            assert any("Hello from stdlib" in msg for msg in messages)
        finally:
            logger.remove(handler_id)

    def test_library_levels(self) -> None:
        setup_logging(level="INFO")

        assert logging.getLogger("sqlalchemy.engine").level >= logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_httpx_debug_in_verbose_mode(self) -> None:
        setup_logging(level="INFO", verbose=True)
        assert logging.getLogger("httpx").level == logging.DEBUG


class TestContextBinding:
    """Tests for context binding helpers."""

    def test_get_logger_binds_name(self, captured: list[str]) -> None:
        get_logger("my_test_module").info("Test message")
        assert any("my_test_module" in msg for msg in captured)

    def test_bind_repo(self, captured: list[str]) -> None:
        bind_repo("octo/widgets").info("Repo message")
        assert any("octo/widgets" in msg for msg in captured)

    def test_bind_activity(self, captured: list[str]) -> None:
        bind_activity("octo/widgets", 123).info("PR message")
        output = "".join(captured)
        assert "octo/widgets" in output
        assert "123" in output

    def test_contextualize_scopes_job_name(self, captured: list[str]) -> None:
        log = get_logger("scheduler")
        with log.contextualize(job="daily_metrics"):
            log.info("Inside context")
        log.info("Outside context")

        inside = next(msg for msg in captured if "Inside context" in msg)
        outside = next(msg for msg in captured if "Outside context" in msg)
        assert "daily_metrics" in inside
        assert "daily_metrics" not in outside


def test_reset_logging_removes_sinks() -> None:
    messages: list[str] = []
    logger.add(lambda msg: messages.append(str(msg)))
    reset_logging()
    logger.info("Nobody hears this")
    assert messages == []
