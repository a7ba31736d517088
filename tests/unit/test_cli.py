#
# tests/unit/test_cli.py
#
"""
Tests for the suiterun command line.
"""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from suiterun.cli.main import __version__, cli
from suiterun.exceptions import SubmissionError
from suiterun.protocols import CaseResult, Outcome


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestMainCLI:
    def test_cli_help(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "suiterun" in result.output.lower()
        assert "run" in result.output
        assert "config" in result.output

    def test_cli_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_invalid_log_level(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--log-level", "INVALID", "config", "show", "--help"])
        assert result.exit_code != 0


class TestConfigShow:
    def test_shows_loaded_config(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["--log-level", "CRITICAL", "config", "show", "-c", str(config_file)])

        assert result.exit_code == 0
        assert "OrderTest" in result.output
        assert "scratch" in result.output

    def test_invalid_config_exits_1(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "bad.toml"
        path.write_text("[orchestrator]\nmax_polls = -1\n")

        result = runner.invoke(cli, ["--log-level", "CRITICAL", "config", "show", "-c", str(path)])

        assert result.exit_code == 1
        assert "Invalid value" in result.output


class TestRunCommand:
    @pytest.fixture
    def backend(self, fake_backend: AsyncMock, order_results: list[CaseResult]):
        fake_backend.poll_results.return_value = order_results
        with patch("suiterun.cli.run_cmds.get_backend", return_value=fake_backend):
            yield fake_backend

    def _run(self, runner: CliRunner, config_file: Path, *args: str):
        return runner.invoke(cli, ["--log-level", "CRITICAL", "run", "-c", str(config_file), *args])

    def test_failing_suite_exits_1(self, runner: CliRunner, config_file: Path, backend: AsyncMock) -> None:
        result = self._run(runner, config_file, "-s", "OrderTest")

        assert result.exit_code == 1
        assert "assertion failed" in result.output
        backend.submit_run.assert_awaited_once_with(["OrderTest"], [])

    def test_passing_tests_exit_0(self, runner: CliRunner, config_file: Path, backend: AsyncMock) -> None:
        backend.poll_results.return_value = [CaseResult("OrderTest", "testCreate", Outcome.PASS)]

        result = self._run(runner, config_file, "-t", "OrderTest.testCreate")

        assert result.exit_code == 0
        assert "OrderTest" in result.output
        backend.submit_run.assert_awaited_once_with([], [("OrderTest", "testCreate")])

    def test_json_output_for_every_configured_suite(
        self, runner: CliRunner, config_file: Path, backend: AsyncMock
    ) -> None:
        result = self._run(runner, config_file, "--json")

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert [run["suites"] for run in data["runs"]] == [["OrderTest"], ["InvoiceTest"]]
        order, invoice = data["runs"]
        assert order["summary"]["passing"] == 1
        assert order["failures"] == [{"suite": "OrderTest", "case": "testCancel", "detail": "assertion failed"}]
        assert invoice["missing"] == ["InvoiceTest.testTotals"]
        assert data["total"]["tests_ran"] == 2
        assert data["total"]["outcome"] == "Failed"

    def test_submission_failure_exits_2(self, runner: CliRunner, config_file: Path, backend: AsyncMock) -> None:
        backend.submit_run.side_effect = SubmissionError("No default org")

        result = self._run(runner, config_file, "-s", "OrderTest")

        assert result.exit_code == 2
        assert "No default org" in result.output

    def test_malformed_test_name(self, runner: CliRunner, config_file: Path, backend: AsyncMock) -> None:
        result = self._run(runner, config_file, "-t", "OrderTest")

        assert result.exit_code == 2
        assert "SUITE.CASE" in result.output
        backend.submit_run.assert_not_awaited()

    def test_nothing_to_run_exits_2(self, runner: CliRunner, tmp_path: Path, backend: AsyncMock) -> None:
        path = tmp_path / "empty.toml"
        path.write_text("[backend]\ntype = 'sf_cli'\n")

        result = self._run(runner, path)

        assert result.exit_code == 2
        assert "Nothing to run" in result.output
