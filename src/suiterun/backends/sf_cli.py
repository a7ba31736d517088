#
# src/suiterun/backends/sf_cli.py
#
"""
A test backend driving the Salesforce `sf` command line via asyncio.subprocess.
"""
import asyncio
import json
from collections.abc import Sequence
from typing import Any

import structlog

from suiterun.backends.normalize import normalize_case_result
from suiterun.exceptions import BackendError, FetchError, PollError, SubmissionError
from suiterun.protocols import CaseResult
from suiterun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("backends.sf_cli")


class SfCliBackend:
    """
    Implements the TestBackend protocol by running `sf` commands with `--json`.
    """

    def __init__(self, executable: str = "sf", target_org: str | None = None, wait_minutes: int = 0):
        self.executable = executable
        self.target_org = target_org
        self.wait_minutes = wait_minutes

    def _base_args(self, *args: str) -> list[str]:
        command = [self.executable, *args, "--json"]
        if self.target_org:
            command += ["--target-org", self.target_org]
        return command

    async def _run_json(self, command: list[str], error_cls: type[BackendError]) -> Any:
        """Runs `command` and returns the `result` member of its JSON output."""
        cmd_log = log.bind(command=" ".join(command))
        cmd_log.debug("Executing sf command")
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout_bytes, stderr_bytes = await process.communicate()
        except FileNotFoundError as e:
            cmd_log.error("sf executable not found", executable=self.executable)
            raise error_cls(
                f"Command not found: '{self.executable}'. Is it installed and in the system's PATH?", details=e
            ) from e
        except OSError as e:
            raise error_cls(f"Failed to start '{self.executable}': {e}", details=e) from e

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        try:
            payload = json.loads(stdout) if stdout.strip() else {}
        except json.JSONDecodeError as e:
            cmd_log.warning("sf produced non-JSON output", stdout_len=len(stdout), stderr=stderr[:200])
            raise error_cls(f"Unreadable output from sf: {e}", details=e) from e
        if not isinstance(payload, dict):
            cmd_log.warning("sf produced unexpected JSON", kind=type(payload).__name__)
            raise error_cls(f"Unexpected output from sf: expected a JSON object, got {type(payload).__name__}")

        status = payload.get("status", process.returncode)
        if process.returncode != 0 or status not in (0, None):
            message = payload.get("message") or stderr.strip() or f"exit code {process.returncode}"
            cmd_log.warning("sf command failed", exit_code=process.returncode, message=message)
            raise error_cls(f"sf command failed: {message}")

        cmd_log.debug("sf command finished", exit_code=process.returncode)
        return payload.get("result")

    async def submit_run(self, suite_names: Sequence[str], case_names: Sequence[tuple[str, str]]) -> str:
        args = ["apex", "run", "test", "--result-format", "json"]
        for suite in suite_names:
            args += ["--class-names", suite]
        for suite, case in case_names:
            args += ["--tests", f"{suite}.{case}"]
        if self.wait_minutes:
            args += ["--wait", str(self.wait_minutes)]

        result = await self._run_json(self._base_args(*args), SubmissionError)
        run_id = None
        if isinstance(result, dict):
            run_id = result.get("testRunId") or (result.get("summary") or {}).get("testRunId")
        if not run_id:
            raise SubmissionError("sf did not return a test run id")
        log.info("Test run submitted", run_id=run_id, suites=list(suite_names), cases=len(case_names))
        return str(run_id)

    async def poll_results(self, run_id: str) -> list[CaseResult]:
        result = await self._run_json(self._base_args("apex", "get", "test", "--test-run-id", run_id), PollError)
        records = result.get("tests") or [] if isinstance(result, dict) else []
        cases: list[CaseResult] = []
        for record in records:
            try:
                cases.append(normalize_case_result(record))
            except ValueError as e:
                log.warning("Skipping unreadable test record", run_id=run_id, error=str(e))
        return cases

    async def fetch_artifact(self, artifact_id: str) -> str:
        try:
            result = await self._run_json(self._base_args("apex", "get", "log", "--log-id", artifact_id), FetchError)
        except FetchError as e:
            raise FetchError(e.message, artifact_id=artifact_id, details=e.details) from e

        entries = result if isinstance(result, list) else [result]
        for entry in entries:
            if isinstance(entry, dict) and isinstance(entry.get("log"), str):
                return entry["log"]
            if isinstance(entry, str):
                return entry
        raise FetchError("sf returned no log content", artifact_id=artifact_id)

# 🔼⚙️
