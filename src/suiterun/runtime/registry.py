# src/suiterun/runtime/registry.py

"""
In-memory registry of the current run tree for each suite.
"""

import itertools
from collections.abc import Sequence

import structlog

from suiterun.runtime.scheduler import ChangeScheduler
from suiterun.state import RunNode, RunStatus, RunTree
from suiterun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.registry")


class RunRegistry:
    """
    Maps suite names to their current `RunTree`.

    Adding a run for a name already present discards the previous tree.
    Every run gets a fresh token from a process-wide monotonic counter, so
    a superseded tree can be told apart from its replacement even when
    both carry the same suite name.

    All methods are synchronous; callers on one event loop therefore
    never interleave inside a mutation.
    """

    def __init__(self, scheduler: ChangeScheduler | None = None):
        self._runs: dict[str, RunTree] = {}
        self._tokens = itertools.count(1)
        self.scheduler = scheduler

    def _notify(self) -> None:
        if self.scheduler is not None:
            self.scheduler.notify()

    def add_run(self, suite_name: str, case_names: Sequence[str]) -> RunNode:
        """Replaces any run for `suite_name` with a fresh RUNNING suite of PENDING cases."""
        return self.start_run(suite_name, case_names).suite

    def start_run(self, suite_name: str, case_names: Sequence[str]) -> RunTree:
        """Same as `add_run`, but returns the whole new tree."""
        previous = self._runs.pop(suite_name, None)
        tree = RunTree.build(suite_name, list(case_names), run_token=next(self._tokens))
        self._runs[suite_name] = tree
        log.info(
            "Added test run",
            suite=suite_name,
            cases=len(case_names),
            run_token=tree.run_token,
            replaced=previous.run_token if previous else None,
        )
        self._notify()
        return tree

    def get_run(self, suite_name: str) -> RunNode | None:
        tree = self._runs.get(suite_name)
        return tree.suite if tree else None

    def get_tree(self, suite_name: str) -> RunTree | None:
        return self._runs.get(suite_name)

    def all_runs(self) -> list[RunNode]:
        """Suite nodes in insertion order (a re-added suite moves to the end)."""
        return [tree.suite for tree in self._runs.values()]

    def clear(self) -> None:
        count = len(self._runs)
        self._runs.clear()
        log.info("Cleared all test runs", count=count)
        self._notify()

    def is_current(self, tree: RunTree) -> bool:
        """True while `tree` still occupies its suite's slot."""
        current = self._runs.get(tree.suite.name)
        return current is tree and current.run_token == tree.run_token

    def update_case(
        self,
        suite_name: str,
        case_name: str,
        status: RunStatus,
        artifact_id: str | None = None,
        error_detail: str | None = None,
    ) -> bool:
        """
        Updates one case of the current run and rolls the suite up when complete.

        Returns False when the suite or case is not found.
        """
        tree = self._runs.get(suite_name)
        if tree is None:
            log.warning("Suite not found in test runs", suite=suite_name)
            return False
        node = tree.find_case(case_name)
        if node is None:
            log.warning("Case not found in suite", suite=suite_name, case=case_name)
            return False
        node.update_status(status, error_detail)
        if artifact_id:
            node.artifact_id = artifact_id
        tree.roll_up()
        self._notify()
        return True

    def update_suite(self, suite_name: str, status: RunStatus, error_detail: str | None = None) -> bool:
        """Sets the suite status directly. Returns False when the suite is not found."""
        tree = self._runs.get(suite_name)
        if tree is None:
            log.warning("Suite not found in test runs", suite=suite_name)
            return False
        tree.suite.update_status(status, error_detail)
        self._notify()
        return True

    def __len__(self) -> int:
        return len(self._runs)

    def __contains__(self, suite_name: object) -> bool:
        return suite_name in self._runs

# 🔼⚙️
