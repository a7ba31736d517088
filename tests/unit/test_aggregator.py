#
# tests/unit/test_aggregator.py
#
"""
Tests for combining run results.
"""

from itertools import permutations

import pytest

from suiterun.protocols import CaseResult, Outcome, RunOutcome, RunResult, RunSummary
from suiterun.runtime.aggregator import combine


def _result(run_id: str, *outcomes: Outcome, duration_ms: int = 100) -> RunResult:
    cases = tuple(
        CaseResult(f"Suite{run_id}", f"case{i}", outcome, duration_ms=duration_ms)
        for i, outcome in enumerate(outcomes)
    )
    return RunResult(
        run_id=run_id,
        suites=(f"Suite{run_id}",),
        summary=RunSummary.from_cases(cases),
        cases=cases,
    )


@pytest.fixture
def results() -> list[RunResult]:
    return [
        _result("1", Outcome.PASS, Outcome.PASS),
        _result("2", Outcome.PASS, Outcome.FAIL, Outcome.SKIP, duration_ms=250),
        _result("3", Outcome.SKIP, duration_ms=7),
    ]


def test_empty_is_failed_with_zero_counts() -> None:
    summary = combine([])
    assert summary.tests_ran == 0
    assert summary.passing == summary.failing == summary.skipped == 0
    assert summary.duration_ms == 0
    assert summary.outcome is RunOutcome.FAILED


def test_single_result_passes_through(results: list[RunResult]) -> None:
    assert combine([results[0]]) == results[0].summary
    assert combine([results[1].summary]) == results[1].summary


def test_sums_fields_and_failed_wins(results: list[RunResult]) -> None:
    summary = combine(results)
    assert summary.tests_ran == 6
    assert summary.passing == 3
    assert summary.failing == 1
    assert summary.skipped == 2
    assert summary.duration_ms == 200 + 750 + 7
    assert summary.outcome is RunOutcome.FAILED


def test_all_passing_runs_pass(results: list[RunResult]) -> None:
    assert combine([results[0], results[2]]).outcome is RunOutcome.PASSED


def test_order_does_not_matter(results: list[RunResult]) -> None:
    expected = combine(results)
    for ordering in permutations(results):
        assert combine(ordering) == expected


def test_grouping_does_not_matter(results: list[RunResult]) -> None:
    a, b, c = results
    assert combine([combine([a, b]), c]) == combine([a, combine([b, c])]) == combine(results)


def test_rates() -> None:
    summary = RunSummary.from_cases(
        [
            CaseResult("S", "a", Outcome.PASS),
            CaseResult("S", "b", Outcome.PASS),
            CaseResult("S", "c", Outcome.FAIL),
        ]
    )
    assert summary.pass_rate == 66.7
    assert summary.fail_rate == 33.3
    assert RunSummary().pass_rate == 0.0


def test_missing_cases_fail_the_summary() -> None:
    summary = RunSummary.from_cases([CaseResult("S", "a", Outcome.PASS)], missing=1)
    assert summary.tests_ran == 1
    assert summary.outcome is RunOutcome.FAILED
