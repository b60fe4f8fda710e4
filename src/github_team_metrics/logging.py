"""Loguru setup for the sync, metrics and scheduler commands.

Every module logs through ``get_logger(__name__)``. Sync code adds the
repository and pull request being processed with ``bind_repo`` and
``bind_activity`` so a failing item can be traced in the output.
SQLAlchemy and httpx (used by githubkit) log through the standard
library; their records are forwarded to loguru.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger

    from github_team_metrics.config import LoggingConfig

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[name]}:{line} | {extra} | {message}"
)


def _console_format(source: str) -> str:
    return (
        "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | "
        f"<cyan>{{{source}}}</cyan> - <level>{{message}}</level>"
    )


def _from_project(record: Any) -> bool:
    return "name" in record["extra"]


class InterceptHandler(logging.Handler):
    """Forward standard library records to loguru at the caller's frame."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame = logging.currentframe()
        depth = 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    file: LoggingConfig | None = None,
) -> Logger:
    """Install the console sinks and, when configured, a rotating file sink.

    ``verbose`` forces DEBUG and wins over ``quiet``, which forces WARNING.
    The file sink always records DEBUG and above.
    """
    if verbose:
        level = "DEBUG"
    elif quiet:
        level = "WARNING"

    logger.remove()
    # Project records carry a bound name; forwarded library records do not
    logger.add(sys.stderr, level=level, format=_console_format("extra[name]"), filter=_from_project)
    logger.add(
        sys.stderr,
        level=level,
        format=_console_format("name"),
        filter=lambda record: not _from_project(record),
    )

    if file is not None and file.log_file:
        logger.add(
            file.log_file,
            level="DEBUG",
            format=_FILE_FORMAT,
            rotation=file.rotation,
            retention=file.retention,
            compression="gz",
            serialize=file.serialize,
            filter=_from_project,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    verbose_libraries = level in ("TRACE", "DEBUG")
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if verbose_libraries else logging.WARNING
    )
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.DEBUG if verbose_libraries else logging.WARNING)

    return logger


def get_logger(name: str) -> Logger:
    return logger.bind(name=name)


def bind_repo(full_name: str) -> Logger:
    """Sync logger tagged with an ``owner/name`` repository."""
    return logger.bind(name="sync", repo=full_name)


def bind_activity(full_name: str, number: int) -> Logger:
    """Sync logger tagged with a repository and pull request number."""
    return logger.bind(name="sync", repo=full_name, pr=number)


def reset_logging() -> None:
    """Drop every sink; used between tests and CLI invocations."""
    logger.remove()
