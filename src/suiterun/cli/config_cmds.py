# src/suiterun/cli/config_cmds.py

from pathlib import Path

import click
import structlog
from rich.pretty import pretty_repr

from suiterun.cli.utils import (
    config_path_option,
    load_config_or_default,
    logging_options,
    setup_command_logging,
)
from suiterun.exceptions import ConfigurationError
from suiterun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cli.config")


@click.group(name="config")
def config_cli():
    """Inspect the suiterun configuration."""


@config_cli.command(name="show")
@config_path_option
@logging_options
@click.pass_context
def show_config(ctx: click.Context, config_path: Path | None, **options):
    """Validate the configuration and print it with defaults filled in."""
    setup_command_logging(ctx, options)
    source = str(config_path) if config_path else "<defaults>"
    log.info("Showing configuration", source=source)

    try:
        config = load_config_or_default(config_path)
    except ConfigurationError as e:
        log.error("Configuration is invalid", source=source, error=str(e))
        click.echo(f"Error: invalid configuration in {source}:\n{e}", err=True)
        ctx.exit(1)

    click.echo(pretty_repr(config, expand_all=True))
    if not config.suites:
        log.warning("No [suites.<name>] tables; `suiterun run` will need --suite or --test.")

# 🔼⚙️
