# src/suiterun/telemetry/logger/base.py

"""
structlog configuration for suiterun.

Every logger renders through stdlib logging so that console and file
output share one processor chain and one level.
"""

import logging
import sys

import structlog
from structlog.typing import FilteringBoundLogger

from suiterun.telemetry.logger.processors import (
    add_emoji_processor,
    remove_extra_keys_processor,
)

BASE_LOGGER_NAME = "suiterun"

StructLogger = FilteringBoundLogger


def _processor_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_emoji_processor,
        remove_extra_keys_processor,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]


def _json_formatter() -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(processor=structlog.processors.JSONRenderer(sort_keys=True))


def _console_formatter(json_logs: bool) -> structlog.stdlib.ProcessorFormatter:
    if json_logs:
        return _json_formatter()
    # No colour codes when stderr is not a terminal.
    renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    return structlog.stdlib.ProcessorFormatter(processor=renderer)


def _reset_root(level: int) -> logging.Logger:
    root = logging.getLogger()
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)
    root.setLevel(level)
    return root


def setup_logging(
    level: int = logging.INFO,
    json_logs: bool = False,
    log_file: str | None = None,
    file_only: bool = False,
) -> None:
    """
    Configures structlog and the root logger.

    Console records go to stderr (stdout carries command output). With
    `log_file`, records are also written there as JSON lines. Calling this
    again replaces the handlers installed by a previous call.
    """
    structlog.configure(
        processors=_processor_chain(),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    root = _reset_root(level)
    slog = structlog.get_logger(BASE_LOGGER_NAME)

    if not file_only:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(_console_formatter(json_logs))
        root.addHandler(console)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            slog.error("Cannot open log file", path=log_file, error=str(e))
        else:
            file_handler.setFormatter(_json_formatter())
            file_handler.setLevel(level)
            root.addHandler(file_handler)

    slog.debug(
        "Logging configured",
        level=logging.getLevelName(level),
        json_console=json_logs,
        console=not file_only,
        log_file=log_file,
    )

# 🔼⚙️
