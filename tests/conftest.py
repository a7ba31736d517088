import logging
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from suiterun.config import OrchestratorConfig
from suiterun.protocols import CaseResult, Outcome

SAMPLE_CONFIG = """
[global]
log_level = "DEBUG"

[orchestrator]
poll_interval = 0
max_polls = 3
artifact_timeout = 5

[backend]
type = "sf_cli"
target_org = "scratch"

[suites.OrderTest]
cases = ["testCreate", "testCancel"]

[suites.InvoiceTest]
cases = ["testTotals"]
"""


@pytest.fixture(autouse=True)
def reset_root_logging():
    """CLI tests attach handlers to streams that are gone once the runner exits."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)


@pytest.fixture
def orchestrator_config() -> OrchestratorConfig:
    return OrchestratorConfig(poll_interval=0, max_polls=3, artifact_timeout=5)


@pytest.fixture
def fake_backend() -> AsyncMock:
    """A backend that accepts every run and reports nothing until told otherwise."""
    backend = AsyncMock()
    backend.submit_run.return_value = "707000000000001"
    backend.poll_results.return_value = []
    backend.fetch_artifact.return_value = "LOG CONTENT"
    return backend


@pytest.fixture
def order_results() -> list[CaseResult]:
    return [
        CaseResult("OrderTest", "testCreate", Outcome.PASS, duration_ms=120),
        CaseResult("OrderTest", "testCancel", Outcome.FAIL, duration_ms=80, message="assertion failed"),
    ]


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "suiterun.toml"
    path.write_text(SAMPLE_CONFIG)
    return path
