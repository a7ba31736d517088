# src/suiterun/runtime/orchestrator.py

"""
High-level coordinator for test runs.

Submits runs to the backend, polls for case results, applies status
transitions to the registry, fetches artifacts in the background and
returns a `RunResult` per request.
"""

import asyncio
from collections.abc import Callable, Mapping, Sequence
from functools import partial
from typing import TypeAlias

import structlog

from suiterun.config import OrchestratorConfig
from suiterun.exceptions import FetchError, MissingResultError, PollError, SubmissionError
from suiterun.protocols import (
    CaseResult,
    Outcome,
    RunOutcome,
    RunRequest,
    RunResult,
    RunSummary,
    TestBackend,
)
from suiterun.runtime.clock import AsyncioClock, Clock
from suiterun.runtime.downloads import DownloadCoordinator
from suiterun.runtime.registry import RunRegistry
from suiterun.runtime.scheduler import ChangeHandler, ChangeScheduler
from suiterun.state import RunNode, RunStatus, RunTree, is_terminal
from suiterun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.orchestrator")

ErrorHandler = Callable[[Exception], None]
CaseKey: TypeAlias = tuple[str, str]


def _status_for(result: CaseResult) -> tuple[RunStatus, str | None]:
    """Maps a reported outcome to the terminal status it implies."""
    if result.outcome is Outcome.FAIL:
        return RunStatus.FAILED, result.failure_detail
    return RunStatus.SUCCESS, None


class RunOrchestrator:
    """Drives test runs against a backend and keeps the registry current."""

    def __init__(
        self,
        backend: TestBackend,
        config: OrchestratorConfig | None = None,
        registry: RunRegistry | None = None,
        downloads: DownloadCoordinator | None = None,
        scheduler: ChangeScheduler | None = None,
        clock: Clock | None = None,
    ):
        self.backend = backend
        self.config = config or OrchestratorConfig()
        self._clock = clock or AsyncioClock()
        self.scheduler = scheduler or ChangeScheduler(delay=self.config.debounce_delay, clock=self._clock)
        self.registry = registry or RunRegistry(self.scheduler)
        if self.registry.scheduler is None:
            self.registry.scheduler = self.scheduler
        self.downloads = downloads or DownloadCoordinator(self.config.artifact_cache_size)
        self._fetch_tasks: set[asyncio.Task] = set()
        # Fetch tasks whose body has not yet released the in-flight mark.
        self._open_fetches: dict[asyncio.Task, str] = {}
        self._error_handlers: list[ErrorHandler] = []
        log.debug("RunOrchestrator initialized.", backend=type(backend).__name__)

    # --- Observer surface ---

    def on_changed(self, handler: ChangeHandler) -> Callable[[], None]:
        return self.scheduler.on_changed(handler)

    def on_error(self, handler: ErrorHandler) -> Callable[[], None]:
        """Subscribes to non-fatal failures (poll and fetch errors)."""
        self._error_handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._error_handlers:
                self._error_handlers.remove(handler)

        return unsubscribe

    def get_run(self, suite_name: str) -> RunNode | None:
        return self.registry.get_run(suite_name)

    def all_runs(self) -> list[RunNode]:
        return self.registry.all_runs()

    def get_artifact(self, artifact_id: str) -> str | None:
        return self.downloads.get_content(artifact_id)

    def clear(self) -> None:
        """Drops every run and every cached artifact."""
        self.registry.clear()
        self.downloads.clear_contents()

    # --- Run requests ---

    async def request_run(
        self,
        suite_names: Sequence[str] | Mapping[str, Sequence[str]],
        case_filter: Sequence[tuple[str, str]] | None = None,
    ) -> RunResult:
        """
        Runs the given suites (or only the cases in `case_filter`) and waits for the result.

        Raises:
            SubmissionError: if the backend refused to start the run.
        """
        request = RunRequest.for_suites(suite_names, case_filter)
        return await self._execute(request, propagate_submission_error=True)

    async def request_runs(self, batch: Sequence[RunRequest]) -> list[RunResult]:
        """Runs independent requests concurrently; failed submissions become FAILED results."""
        log.info("Starting batch of test runs", runs=len(batch))
        return list(
            await asyncio.gather(*(self._execute(request, propagate_submission_error=False) for request in batch))
        )

    async def _execute(self, request: RunRequest, propagate_submission_error: bool) -> RunResult:
        suites = tuple(request.suites)
        run_log = log.bind(suites=list(suites))

        trees: dict[str, RunTree] = {}
        for suite_name in suites:
            trees[suite_name] = self.registry.start_run(suite_name, request.cases_for(suite_name))

        run_log.info("Submitting test run", targeted=len(request.case_filter or ()), emoji_key="submit")
        try:
            run_id = await self.backend.submit_run(request.whole_suites, list(request.case_filter or ()))
        except SubmissionError as e:
            run_log.error("Test run submission failed", error=str(e))
            self._fail_submission(request, trees, e)
            if propagate_submission_error:
                raise
            return RunResult.failed_submission(suites, e)
        except Exception as e:
            error = SubmissionError(str(e) or type(e).__name__, details=e)
            run_log.error("Unexpected error submitting test run", error=str(e), exc_info=True)
            self._fail_submission(request, trees, error)
            if propagate_submission_error:
                raise error from e
            return RunResult.failed_submission(suites, error)

        run_log = run_log.bind(run_id=run_id)
        for tree in self._current(trees):
            for case in tree.cases:
                case.update_status(RunStatus.RUNNING)
        self.scheduler.notify()

        applied: dict[CaseKey, CaseResult] = {}
        errors: list[str] = []
        fetches: list[asyncio.Task] = []

        try:
            await self._poll_until_done(run_id, request, trees, applied, errors, fetches, run_log)
            if fetches:
                await asyncio.gather(*fetches, return_exceptions=True)
            missing = self._conclude(trees, applied)
        except Exception as e:
            run_log.critical("Unexpected error while tracking test run", error=str(e), exc_info=True)
            errors.append(f"Run failure: {e}")
            missing = self._conclude(trees, applied, fallback_detail=f"Run failure: {e}")

        result = RunResult(
            run_id=run_id,
            suites=suites,
            summary=RunSummary.from_cases(list(applied.values()), missing=len(missing)),
            cases=tuple(applied.values()),
            missing=tuple(missing),
            errors=tuple(errors),
        )
        run_log.info(
            "Test run finished",
            outcome=result.outcome.value,
            tests_ran=result.summary.tests_ran,
            failing=result.summary.failing,
            missing=len(missing),
            emoji_key="success" if result.outcome is RunOutcome.PASSED else None,
        )
        return result

    def _current(self, trees: Mapping[str, RunTree]) -> list[RunTree]:
        return [tree for tree in trees.values() if self.registry.is_current(tree)]

    def _fail_submission(self, request: RunRequest, trees: Mapping[str, RunTree], error: SubmissionError) -> None:
        detail = f"Submission failed: {error}"
        for tree in self._current(trees):
            tree.suite.update_status(RunStatus.FAILED, detail)
            if request.is_targeted(tree.suite.name):
                for case in tree.cases:
                    case.update_status(RunStatus.FAILED, detail)
        self.scheduler.notify()

    # --- Polling ---

    async def _poll_until_done(
        self,
        run_id: str,
        request: RunRequest,
        trees: Mapping[str, RunTree],
        applied: dict[CaseKey, CaseResult],
        errors: list[str],
        fetches: list[asyncio.Task],
        run_log: StructLogger,
    ) -> None:
        """
        Polls until every expected case has reported.

        Suites requested without any known case names learn their cases
        from the polls themselves, so for those a poll that reports
        nothing new is also required before polling stops.
        """
        discovering = {name for name in trees if not request.cases_for(name)}
        max_polls = self.config.max_polls
        for attempt in range(1, max_polls + 1):
            try:
                results = await self.backend.poll_results(run_id)
            except Exception as e:
                error = e if isinstance(e, PollError) else PollError(f"Poll failed: {e}", details=e)
                run_log.warning("Polling for results failed", attempt=attempt, error=str(error), emoji_key="poll")
                errors.append(str(error))
                self._report_error(error)
            else:
                new_results = 0
                for result in results:
                    if result.key in applied or result.suite not in trees:
                        continue
                    applied[result.key] = result
                    new_results += 1
                    task = self._apply_case_result(trees[result.suite], result)
                    if task is not None:
                        fetches.append(task)
                run_log.debug(
                    "Polled results", attempt=attempt, new=new_results, reported=len(applied), emoji_key="poll"
                )

                if self._all_reported(trees, applied) and (
                    new_results == 0 or not self._awaiting_discovery(trees, discovering)
                ):
                    run_log.debug("All cases reported", attempts=attempt)
                    return

            if not self._current(trees):
                run_log.info("All suites of this run were superseded, polling stopped")
                return
            if attempt < max_polls:
                await self._clock.sleep(self.config.poll_interval)

        run_log.warning("Polling concluded before every case reported", attempts=max_polls)

    def _all_reported(self, trees: Mapping[str, RunTree], applied: Mapping[CaseKey, CaseResult]) -> bool:
        for tree in self._current(trees):
            cases = tree.cases
            if not cases:
                return False
            if any((tree.suite.name, case.name) not in applied for case in cases):
                return False
        return True

    def _awaiting_discovery(self, trees: Mapping[str, RunTree], discovering: set[str]) -> bool:
        return any(tree.suite.name in discovering for tree in self._current(trees))

    # --- Applying results ---

    def _apply_case_result(self, tree: RunTree, result: CaseResult) -> asyncio.Task | None:
        """Applies one newly reported result. Returns the fetch task if this case started one."""
        if not self.registry.is_current(tree):
            log.debug("Dropping result for superseded run", suite=result.suite, case=result.case)
            return None

        node = tree.find_case(result.case)
        if node is None:
            log.info("Discovered case not in the requested list", suite=result.suite, case=result.case)
            node = tree.add_case(result.case, status=RunStatus.RUNNING)
        node.outcome = result.outcome
        node.duration_ms = result.duration_ms

        artifact_id = result.artifact_id
        if artifact_id and not self.config.fetch_artifacts:
            node.artifact_id = artifact_id
        elif artifact_id:
            if self.downloads.has_content(artifact_id):
                node.artifact_id = artifact_id
            elif self.downloads.begin_fetch(artifact_id):
                node.update_status(RunStatus.DOWNLOADING)
                self.scheduler.notify()
                task = asyncio.create_task(self._fetch_artifact(tree, node, result, artifact_id))
                self._fetch_tasks.add(task)
                self._open_fetches[task] = artifact_id
                task.add_done_callback(self._on_fetch_task_done)
                return task
            else:
                self.downloads.follow(artifact_id, partial(self._on_shared_fetch_done, tree, node))

        self._settle_case(tree, node, result)
        return None

    def _settle_case(self, tree: RunTree, node: RunNode, result: CaseResult) -> None:
        status, detail = _status_for(result)
        node.update_status(status, detail)
        tree.roll_up()
        self.scheduler.notify()

    async def _fetch_artifact(self, tree: RunTree, node: RunNode, result: CaseResult, artifact_id: str) -> None:
        fetch_log = log.bind(suite=result.suite, case=result.case, artifact_id=artifact_id)
        fetch_log.debug("Fetching artifact", emoji_key="fetch")
        content: str | None = None
        try:
            content = await asyncio.wait_for(
                self.backend.fetch_artifact(artifact_id), timeout=self.config.artifact_timeout
            )
        except TimeoutError as e:
            error = FetchError("Artifact fetch timed out", artifact_id=artifact_id, details=e)
            fetch_log.warning("Artifact fetch timed out", timeout=self.config.artifact_timeout)
            self._report_error(error)
        except FetchError as e:
            fetch_log.warning("Artifact fetch failed", error=str(e))
            self._report_error(e)
        except Exception as e:
            fetch_log.error("Unexpected error fetching artifact", error=str(e), exc_info=True)
            self._report_error(FetchError(f"Artifact fetch failed: {e}", artifact_id=artifact_id, details=e))
        finally:
            self._open_fetches.pop(asyncio.current_task(), None)
            self.downloads.end_fetch(artifact_id, content)

        if not self.registry.is_current(tree):
            fetch_log.debug("Fetch finished for superseded run, node left untouched")
            return
        if content is not None:
            node.artifact_id = artifact_id
            fetch_log.info("Artifact fetched", size=len(content))
        self._settle_case(tree, node, result)

    def _on_fetch_task_done(self, task: asyncio.Task) -> None:
        self._fetch_tasks.discard(task)
        artifact_id = self._open_fetches.pop(task, None)
        if artifact_id is not None:
            # Cancelled before its first step, so its finally block never ran.
            log.debug("Releasing fetch that never started", artifact_id=artifact_id)
            self.downloads.end_fetch(artifact_id)

    def _on_shared_fetch_done(self, tree: RunTree, node: RunNode, artifact_id: str, succeeded: bool) -> None:
        if succeeded and self.registry.is_current(tree):
            node.artifact_id = artifact_id
            self.scheduler.notify()

    # --- Conclusion ---

    def _conclude(
        self,
        trees: Mapping[str, RunTree],
        applied: Mapping[CaseKey, CaseResult],
        fallback_detail: str | None = None,
    ) -> list[CaseKey]:
        """Forces every case still open to a terminal status and rolls suites up."""
        missing: list[CaseKey] = []
        for tree in self._current(trees):
            suite_name = tree.suite.name
            for case in tree.cases:
                if is_terminal(case.status):
                    continue
                result = applied.get((suite_name, case.name))
                if result is not None:
                    status, detail = _status_for(result)
                    case.update_status(status, detail)
                    continue
                missing.append((suite_name, case.name))
                case.update_status(RunStatus.FAILED, fallback_detail or str(MissingResultError(suite_name, case.name)))
            if not tree.cases:
                tree.suite.update_status(
                    RunStatus.FAILED, fallback_detail or f"No result reported for suite {suite_name}"
                )
            tree.roll_up()
        if missing:
            log.warning("Cases without any reported result marked failed", missing=[f"{s}.{c}" for s, c in missing])
        self.scheduler.notify()
        return missing

    # --- Errors and lifecycle ---

    def _report_error(self, error: Exception) -> None:
        for handler in list(self._error_handlers):
            try:
                handler(error)
            except Exception as e:
                log.warning("Error handler raised", handler=repr(handler), error=str(e), exc_info=True)

    async def wait_for_downloads(self) -> None:
        """Waits until every background artifact fetch has finished."""
        if self._fetch_tasks:
            await asyncio.gather(*list(self._fetch_tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancels in-flight fetches and delivers any pending change notification."""
        if self._fetch_tasks:
            log.debug("Cancelling in-flight artifact fetches", count=len(self._fetch_tasks))
            for task in list(self._fetch_tasks):
                task.cancel()
            await asyncio.gather(*self._fetch_tasks, return_exceptions=True)
        await self.scheduler.aclose()
        log.debug("RunOrchestrator closed.")

# 🔼⚙️
