# src/suiterun/runtime/aggregator.py

"""
Combines independent run results into one summary.
"""

from collections.abc import Iterable

import structlog

from suiterun.protocols import RunOutcome, RunResult, RunSummary
from suiterun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.aggregator")


def _summary_of(item: RunResult | RunSummary) -> RunSummary:
    return item.summary if isinstance(item, RunResult) else item


def combine(results: Iterable[RunResult | RunSummary]) -> RunSummary:
    """
    Folds run results into a single `RunSummary`.

    No results gives an all-zero FAILED summary, a single result is passed
    through unchanged, and several are summed field by field with FAILED
    winning over PASSED. The fold is commutative and associative.
    """
    summaries = [_summary_of(r) for r in results]
    if not summaries:
        return RunSummary(outcome=RunOutcome.FAILED)
    if len(summaries) == 1:
        return summaries[0]

    combined = RunSummary(
        tests_ran=sum(s.tests_ran for s in summaries),
        passing=sum(s.passing for s in summaries),
        failing=sum(s.failing for s in summaries),
        skipped=sum(s.skipped for s in summaries),
        duration_ms=sum(s.duration_ms for s in summaries),
        outcome=(
            RunOutcome.FAILED
            if any(s.outcome is RunOutcome.FAILED for s in summaries)
            else RunOutcome.PASSED
        ),
    )
    log.debug(
        "Combined run summaries",
        runs=len(summaries),
        tests_ran=combined.tests_ran,
        outcome=combined.outcome.value,
    )
    return combined
