# src/suiterun/cli/run_cmds.py

import asyncio
import json
import logging
import sys
from collections import Counter
from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.table import Table

from suiterun.backends import get_backend
from suiterun.cli.utils import (
    config_path_option,
    load_config_or_default,
    logging_options,
    setup_command_logging,
)
from suiterun.config import SuiterunConfig
from suiterun.exceptions import ConfigurationError
from suiterun.protocols import RunOutcome, RunRequest, RunResult, RunSummary
from suiterun.runtime import RunOrchestrator, combine
from suiterun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cli.run")

EXIT_FAILED = 1
EXIT_ERROR = 2


def _parse_test(value: str) -> tuple[str, str]:
    suite, sep, case = value.partition(".")
    if not sep or not suite or not case:
        raise click.BadParameter(f"'{value}' is not in SUITE.CASE form", param_hint="--test")
    return suite, case


def build_requests(
    config: SuiterunConfig, suites: tuple[str, ...], tests: tuple[str, ...]
) -> list[RunRequest]:
    """
    One request per named suite, plus one request for all targeted cases.

    With nothing named, every configured suite is run.
    """
    if not suites and not tests:
        suites = tuple(config.suites)
    requests = []
    for suite in suites:
        known = config.suites.get(suite)
        requests.append(RunRequest.for_suites({suite: known.cases if known else ()}))
    if tests:
        requests.append(RunRequest.for_suites([], case_filter=[_parse_test(t) for t in tests]))
    return requests


async def _run_requests(config: SuiterunConfig, requests: list[RunRequest]) -> list[RunResult]:
    orchestrator = RunOrchestrator(get_backend(config.backend), config.orchestrator)

    def log_progress() -> None:
        counts = Counter(
            case.status.name for suite in orchestrator.all_runs() for case in suite.children
        )
        log.info("Run progress", **dict(sorted(counts.items())))

    orchestrator.on_changed(log_progress)
    try:
        return await orchestrator.request_runs(requests)
    finally:
        await orchestrator.aclose()


def _summary_dict(summary: RunSummary) -> dict:
    return {
        "outcome": summary.outcome.value,
        "tests_ran": summary.tests_ran,
        "passing": summary.passing,
        "failing": summary.failing,
        "skipped": summary.skipped,
        "duration_ms": summary.duration_ms,
        "pass_rate": summary.pass_rate,
        "fail_rate": summary.fail_rate,
    }


def _result_dict(result: RunResult) -> dict:
    return {
        "run_id": result.run_id,
        "suites": list(result.suites),
        "summary": _summary_dict(result.summary),
        "failures": [
            {"suite": c.suite, "case": c.case, "detail": c.failure_detail}
            for c in result.cases
            if c.failure_detail
        ],
        "missing": [f"{s}.{c}" for s, c in result.missing],
        "errors": list(result.errors),
    }


def render_results(console: Console, results: list[RunResult], total: RunSummary) -> None:
    table = Table(title="Test runs")
    for column in ("Suites", "Ran", "Passed", "Failed", "Skipped", "Time (s)", "Outcome"):
        table.add_column(column)

    def row(label: str, summary: RunSummary) -> None:
        style = "green" if summary.outcome is RunOutcome.PASSED else "red"
        table.add_row(
            label,
            str(summary.tests_ran),
            str(summary.passing),
            str(summary.failing),
            str(summary.skipped),
            f"{summary.duration_ms / 1000:.2f}",
            f"[{style}]{summary.outcome.value}[/]",
        )

    for result in results:
        row(", ".join(result.suites), result.summary)
    if len(results) > 1:
        row("[bold]Total[/]", total)
    console.print(table)

    for result in results:
        for case in result.cases:
            if case.failure_detail:
                console.print(f"[red]✗ {case.suite}.{case.case}[/]: {case.failure_detail}")
        for suite, case in result.missing:
            console.print(f"[yellow]? {suite}.{case}[/]: no result reported")
        for error in result.errors:
            console.print(f"[yellow]! {error}[/]")


@click.command(name="run")
@config_path_option
@click.option("-s", "--suite", "suites", multiple=True, help="Suite to run in full (repeatable).")
@click.option("-t", "--test", "tests", multiple=True, help="Single case as SUITE.CASE (repeatable).")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON.")
@logging_options
@click.pass_context
def run_cli(
    ctx: click.Context,
    config_path: Path | None,
    suites: tuple[str, ...],
    tests: tuple[str, ...],
    as_json: bool,
    **options,
):
    """Run test suites or cases and report the combined result."""
    setup_command_logging(ctx, options, default_log_level="WARNING")

    try:
        config = load_config_or_default(config_path)
        if config_path is not None:
            # The file's [global] level sits below CLI options and env vars.
            setup_command_logging(ctx, options, default_log_level=config.global_config.log_level)
        requests = build_requests(config, suites, tests)
        if not requests:
            raise ConfigurationError("Nothing to run: name --suite/--test or configure [suites.<name>].")
    except ConfigurationError as e:
        log.error("Cannot start test run", error=str(e))
        click.echo(f"Error: {e}", err=True)
        ctx.exit(EXIT_ERROR)

    log.info("Starting test runs", runs=len(requests))
    try:
        results = asyncio.run(_run_requests(config, requests))
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(EXIT_ERROR)
    except KeyboardInterrupt:
        log.warning("Shutdown initiated by KeyboardInterrupt (CTRL-C).")
        sys.exit(130)
    finally:
        logging.shutdown()

    total = combine(results)
    if as_json:
        click.echo(json.dumps({"runs": [_result_dict(r) for r in results], "total": _summary_dict(total)}, indent=2))
    else:
        render_results(Console(), results, total)

    if all(r.run_id is None for r in results):
        ctx.exit(EXIT_ERROR)
    if total.outcome is RunOutcome.FAILED:
        ctx.exit(EXIT_FAILED)

# 🔼⚙️
