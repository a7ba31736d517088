#
# src/suiterun/protocols.py
#
"""
Defines the backend protocol and the canonical result structures.

Everything a backend returns is normalized into these shapes at the
adapter boundary (see `suiterun.backends.normalize`) before it reaches
the orchestration core.
"""

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Protocol, runtime_checkable

from attrs import define, field


class Outcome(Enum):
    """Backend-reported result of a single case."""

    PASS = "Pass"
    FAIL = "Fail"
    SKIP = "Skip"


class RunOutcome(Enum):
    """Overall outcome of a run or of an aggregate of runs."""

    PASSED = "Passed"
    FAILED = "Failed"


@define(frozen=True, slots=True)
class CaseResult:
    """
    Canonical per-case result as reported by a backend poll.
    """

    suite: str
    case: str
    outcome: Outcome
    duration_ms: int = 0
    message: str | None = None
    stack_trace: str | None = None
    artifact_id: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.suite, self.case)

    @property
    def failure_detail(self) -> str | None:
        """Human-readable failure text built from message and stack trace."""
        parts = [p for p in (self.message, self.stack_trace) if p]
        if parts:
            return "\n".join(parts)
        if self.outcome is Outcome.FAIL:
            return "Test failed without a message"
        return None


@define(frozen=True, slots=True)
class RunSummary:
    """
    Counts, timing and outcome for one run or an aggregate of runs.
    """

    tests_ran: int = 0
    passing: int = 0
    failing: int = 0
    skipped: int = 0
    duration_ms: int = 0
    outcome: RunOutcome = RunOutcome.FAILED

    @property
    def pass_rate(self) -> float:
        return round(self.passing / self.tests_ran * 100, 1) if self.tests_ran else 0.0

    @property
    def fail_rate(self) -> float:
        return round(self.failing / self.tests_ran * 100, 1) if self.tests_ran else 0.0

    @classmethod
    def from_cases(cls, results: Sequence[CaseResult], missing: int = 0) -> "RunSummary":
        """Counts reported case outcomes. Missing cases force a FAILED outcome."""
        passing = sum(1 for r in results if r.outcome is Outcome.PASS)
        failing = sum(1 for r in results if r.outcome is Outcome.FAIL)
        skipped = sum(1 for r in results if r.outcome is Outcome.SKIP)
        failed = failing > 0 or missing > 0 or not results
        return cls(
            tests_ran=len(results),
            passing=passing,
            failing=failing,
            skipped=skipped,
            duration_ms=sum(r.duration_ms for r in results),
            outcome=RunOutcome.FAILED if failed else RunOutcome.PASSED,
        )


@define(frozen=True, slots=True)
class RunResult:
    """
    Result of one requested run, returned to the caller of `request_run`.
    """

    run_id: str | None
    suites: tuple[str, ...]
    summary: RunSummary
    cases: tuple[CaseResult, ...] = ()
    missing: tuple[tuple[str, str], ...] = ()
    errors: tuple[str, ...] = ()

    @property
    def outcome(self) -> RunOutcome:
        return self.summary.outcome

    @classmethod
    def failed_submission(cls, suites: Sequence[str], error: Exception) -> "RunResult":
        return cls(run_id=None, suites=tuple(suites), summary=RunSummary(), errors=(str(error),))


@define(frozen=True, slots=True)
class RunRequest:
    """
    A run to perform: suites with their known case names, optionally
    narrowed to specific (suite, case) pairs.
    """

    suites: Mapping[str, tuple[str, ...]] = field(converter=lambda s: {k: tuple(v) for k, v in dict(s).items()})
    case_filter: tuple[tuple[str, str], ...] | None = field(
        default=None, converter=lambda f: None if f is None else tuple((s, c) for s, c in f)
    )

    @classmethod
    def for_suites(cls, suite_names: Sequence[str] | Mapping[str, Sequence[str]], case_filter=None) -> "RunRequest":
        if isinstance(suite_names, Mapping):
            suites = {name: list(cases) for name, cases in suite_names.items()}
        else:
            suites = {name: [] for name in suite_names}
        pairs: list[tuple[str, str]] = []
        if case_filter:
            # Targeted cases define the whole tree for their suite.
            targeted: dict[str, list[str]] = {}
            for suite, case in case_filter:
                cases = targeted.setdefault(suite, [])
                if case not in cases:
                    cases.append(case)
                    pairs.append((suite, case))
            suites.update(targeted)
        return cls(suites=suites, case_filter=pairs or None)

    def cases_for(self, suite: str) -> tuple[str, ...]:
        return self.suites.get(suite, ())

    def is_targeted(self, suite: str) -> bool:
        return self.case_filter is not None and any(s == suite for s, _ in self.case_filter)

    @property
    def whole_suites(self) -> list[str]:
        """Suites submitted in full rather than case by case."""
        return [name for name in self.suites if not self.is_targeted(name)]


@runtime_checkable
class TestBackend(Protocol):
    """
    Protocol for the external collaborator that executes tests.
    """

    async def submit_run(
        self,
        suite_names: Sequence[str],
        case_names: Sequence[tuple[str, str]],
    ) -> str:
        """
        Starts a run and returns its identifier.

        Raises:
            SubmissionError: if the backend is unreachable or rejects the run.
        """
        ...

    async def poll_results(self, run_id: str) -> Sequence[CaseResult]:
        """
        Returns every result known so far for the run. May be called repeatedly.

        Raises:
            PollError: on a transient failure.
        """
        ...

    async def fetch_artifact(self, artifact_id: str) -> str:
        """
        Retrieves an artifact such as an execution log.

        Raises:
            FetchError: if the artifact cannot be retrieved.
        """
        ...

# 🔼⚙️
