# src/suiterun/cli/main.py

"""
Entry point of the `suiterun` command.
"""

from importlib.metadata import PackageNotFoundError, version

import click
import structlog

from suiterun.cli.config_cmds import config_cli
from suiterun.cli.run_cmds import run_cli
from suiterun.cli.utils import logging_options, setup_logging_from_context
from suiterun.telemetry import StructLogger

try:
    __version__ = version("suiterun")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

log: StructLogger = structlog.get_logger("cli.main")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-V", "--version", package_name="suiterun")
@logging_options
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, log_file: str | None, json_logs: bool | None):
    """
    suiterun: submit test suites to a backend and report how they went.

    Settings are taken from CLI options first, then SUITERUN_* environment
    variables, then the config file, then built-in defaults.
    """
    ctx.ensure_object(dict)
    ctx.obj.update(LOG_LEVEL=log_level, LOG_FILE=log_file, JSON_LOGS=bool(json_logs))
    setup_logging_from_context(ctx, default_log_level="WARNING")
    log.debug("CLI group ready", subcommand=ctx.invoked_subcommand)


for command in (config_cli, run_cli):
    cli.add_command(command)

if __name__ == "__main__":
    cli()

# 🖥️⚙️
