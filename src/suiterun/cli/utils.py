# src/suiterun/cli/utils.py

"""
Options and helpers shared by every suiterun command.
"""

import logging
from pathlib import Path

import click
import structlog

from suiterun.config import SuiterunConfig, load_config
from suiterun.telemetry import setup_logging

log = structlog.get_logger("cli.utils")

ENV_PREFIX = "SUITERUN_"
LOG_LEVEL_CHOICES = click.Choice(list(logging._nameToLevel.keys()), case_sensitive=False)

# Applied bottom-up, so --help lists them in this order.
_LOGGING_OPTIONS = (
    click.option(
        "--json-logs",
        is_flag=True,
        default=None,
        envvar=f"{ENV_PREFIX}JSON_LOGS",
        help="Render console logs as JSON.",
    ),
    click.option(
        "--log-file",
        type=click.Path(dir_okay=False, writable=True, resolve_path=True),
        default=None,
        envvar=f"{ENV_PREFIX}LOG_FILE",
        help="Also write logs to this file as JSON lines.",
    ),
    click.option(
        "-l",
        "--log-level",
        type=LOG_LEVEL_CHOICES,
        default=None,
        envvar=f"{ENV_PREFIX}LOG_LEVEL",
        help="Logging level (overrides the config file).",
    ),
)


def logging_options(f):
    """Adds --log-level, --log-file and --json-logs to a command."""
    for option in _LOGGING_OPTIONS:
        f = option(f)
    return f


def config_path_option(f):
    """Adds the shared -c/--config-path option."""
    return click.option(
        "-c",
        "--config-path",
        type=click.Path(exists=True, file_okay=True, dir_okay=False, readable=True, path_type=Path),
        default=None,
        envvar=f"{ENV_PREFIX}CONF",
        show_envvar=True,
        help="suiterun TOML configuration file.",
    )(f)


def load_config_or_default(config_path: Path | None) -> SuiterunConfig:
    """Loads `config_path`, or returns built-in defaults when none was given."""
    if config_path is None:
        log.debug("No configuration file given, using defaults")
        return SuiterunConfig()
    return load_config(config_path)


def _numeric_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging_from_context(
    ctx: click.Context,
    local_log_level: str | None = None,
    local_log_file: str | None = None,
    local_json_logs: bool | None = None,
    default_log_level: str = "INFO",
) -> None:
    """
    Configures logging from the group's options, letting command-level
    options win over them.
    """
    group = ctx.obj or {}
    level_name = local_log_level or group.get("LOG_LEVEL") or default_log_level
    log_file = local_log_file or group.get("LOG_FILE")
    json_logs = group.get("JSON_LOGS", False) if local_json_logs is None else local_json_logs

    setup_logging(level=_numeric_level(level_name), json_logs=json_logs, log_file=log_file)
    log.debug("CLI logging ready", level=level_name, log_file=log_file, json_logs=json_logs)


def setup_command_logging(ctx: click.Context, options: dict, default_log_level: str = "INFO") -> None:
    """Shortcut for commands that collect the logging options into `**options`."""
    setup_logging_from_context(
        ctx,
        local_log_level=options.get("log_level"),
        local_log_file=options.get("log_file"),
        local_json_logs=options.get("json_logs"),
        default_log_level=default_log_level,
    )

# ⚙️🛠️
