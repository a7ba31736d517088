# src/suiterun/state.py
#
"""
Defines the dynamic state models for tracked test runs in suiterun.

A run is held as a small arena (`RunTree`): a flat list of `RunNode`
records where index 0 is the suite and the cases follow. Nodes refer to
each other by index, never by rendering objects.
"""

from enum import Enum, auto
from typing import TYPE_CHECKING

import structlog
from attrs import field, mutable

if TYPE_CHECKING:
    from suiterun.protocols import Outcome

# Logger specific to state management
log: structlog.stdlib.BoundLogger = structlog.get_logger("state")


class RunStatus(Enum):
    """Enumeration of the states a suite or case moves through during a run."""

    PENDING = auto()  # Created, nothing submitted yet.
    RUNNING = auto()  # Submitted to the backend, awaiting a result.
    DOWNLOADING = auto()  # Result known, artifact fetch in progress.
    SUCCESS = auto()
    FAILED = auto()


class NodeKind(Enum):
    SUITE = auto()
    CASE = auto()


TERMINAL_STATUSES = frozenset({RunStatus.SUCCESS, RunStatus.FAILED})

# Ordering used to keep transitions monotonic within one run.
_STATUS_RANK = {
    RunStatus.PENDING: 0,
    RunStatus.RUNNING: 1,
    RunStatus.DOWNLOADING: 2,
    RunStatus.SUCCESS: 3,
    RunStatus.FAILED: 3,
}

# Mapping of RunStatus to display emojis for console output
STATUS_EMOJI_MAP = {
    RunStatus.PENDING: "⏳",
    RunStatus.RUNNING: "🔄",
    RunStatus.DOWNLOADING: "📥",
    RunStatus.SUCCESS: "✅",
    RunStatus.FAILED: "❌",
}


def is_terminal(status: RunStatus) -> bool:
    """True once no further transition can happen within the same run."""
    return status in TERMINAL_STATUSES


@mutable(slots=True)
class RunNode:
    """
    A single suite or case record inside a `RunTree` arena.

    Mutable because the orchestrator updates status, artifact and error
    fields in place as backend responses arrive.
    """

    name: str = field()
    kind: NodeKind = field()
    index: int = field()
    parent: int | None = field(default=None)
    child_indices: list[int] = field(factory=list)
    status: RunStatus = field(default=RunStatus.PENDING)
    artifact_id: str | None = field(default=None)
    error_detail: str | None = field(default=None)
    outcome: "Outcome | None" = field(default=None)
    duration_ms: int = field(default=0)
    _arena: "RunTree | None" = field(default=None, repr=False, eq=False)

    @property
    def children(self) -> list["RunNode"]:
        """Child nodes in insertion order, resolved through the arena."""
        if self._arena is None:
            return []
        return [self._arena.nodes[i] for i in self.child_indices]

    @property
    def run_token(self) -> int | None:
        return self._arena.run_token if self._arena is not None else None

    @property
    def tree(self) -> "RunTree | None":
        return self._arena

    @property
    def display_status_emoji(self) -> str:
        return STATUS_EMOJI_MAP.get(self.status, "❓")

    def update_status(self, new_status: RunStatus, error_msg: str | None = None) -> bool:
        """
        Moves the node to `new_status` if the transition is allowed.

        Returns True when the status changed. Terminal nodes never change
        again, and non-terminal nodes never move backwards.
        """
        old_status = self.status
        if old_status == new_status:
            return False

        if is_terminal(old_status) or _STATUS_RANK[new_status] < _STATUS_RANK[old_status]:
            log.warning(
                "Rejected status regression",
                node=self.name,
                kind=self.kind.name,
                old_status=old_status.name,
                new_status=new_status.name,
            )
            return False

        self.status = new_status
        log_func = log.debug

        if new_status == RunStatus.FAILED:
            self.error_detail = error_msg or self.error_detail or "Unknown error"
            log_func = log.warning

        log_func(
            "Run node status changed",
            node=self.name,
            kind=self.kind.name,
            old_status=old_status.name,
            new_status=new_status.name,
            **({"error": self.error_detail} if new_status == RunStatus.FAILED else {}),
        )
        return True

    def are_all_children_complete(self) -> bool:
        return all(is_terminal(child.status) for child in self.children)

    def has_failed_children(self) -> bool:
        return any(child.status == RunStatus.FAILED for child in self.children)


@mutable(slots=True)
class RunTree:
    """Arena of `RunNode` records for one suite run. Index 0 is the suite."""

    run_token: int = field()
    nodes: list[RunNode] = field(factory=list)

    @classmethod
    def build(cls, suite_name: str, case_names: list[str], run_token: int) -> "RunTree":
        """Creates a RUNNING suite with one PENDING case per name."""
        tree = cls(run_token=run_token)
        suite = RunNode(name=suite_name, kind=NodeKind.SUITE, index=0, status=RunStatus.RUNNING)
        suite._arena = tree
        tree.nodes.append(suite)
        for case_name in case_names:
            tree.add_case(case_name)
        log.debug(
            "Initialized run tree",
            suite=suite_name,
            cases=len(case_names),
            run_token=run_token,
        )
        return tree

    @property
    def suite(self) -> RunNode:
        return self.nodes[0]

    @property
    def cases(self) -> list[RunNode]:
        return self.suite.children

    def add_case(self, case_name: str, status: RunStatus = RunStatus.PENDING) -> RunNode:
        """Appends a case under the suite. Names stay unique among siblings."""
        existing = self.find_case(case_name)
        if existing is not None:
            return existing
        node = RunNode(
            name=case_name,
            kind=NodeKind.CASE,
            index=len(self.nodes),
            parent=0,
            status=status,
        )
        node._arena = self
        self.nodes.append(node)
        self.suite.child_indices.append(node.index)
        return node

    def find_case(self, case_name: str) -> RunNode | None:
        for node in self.cases:
            if node.name == case_name:
                return node
        return None

    def roll_up(self) -> bool:
        """
        Derives the suite status from its cases once all of them are terminal.

        Returns True when the suite status changed.
        """
        suite = self.suite
        if not suite.child_indices or not suite.are_all_children_complete():
            return False
        if suite.has_failed_children():
            failed = [c.name for c in self.cases if c.status == RunStatus.FAILED]
            return suite.update_status(RunStatus.FAILED, f"{len(failed)} case(s) failed: {', '.join(failed)}")
        return suite.update_status(RunStatus.SUCCESS)

# 🔼⚙️
