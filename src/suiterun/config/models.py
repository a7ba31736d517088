#
# config/models.py
#
"""
Attrs-based data models for suiterun configuration structure.
"""

import logging
from typing import Any

from attrs import define, field


# --- Validators ---
def _validate_log_level(inst: Any, attr: Any, value: str) -> None:
    """Validator for standard logging level names."""
    valid = logging._nameToLevel.keys()
    if value.upper() not in valid:
        raise ValueError(f"Invalid log_level '{value}'. Must be one of {list(valid)}.")


def _validate_positive_int(inst: Any, attr: Any, value: int) -> None:
    """Validator ensures integer is positive."""
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValueError(f"Field '{attr.name}' must be positive integer, got {value}")


def _validate_positive_number(inst: Any, attr: Any, value: float) -> None:
    if not isinstance(value, int | float) or isinstance(value, bool) or value <= 0:
        raise ValueError(f"Field '{attr.name}' must be a positive number, got {value}")


def _validate_non_negative_number(inst: Any, attr: Any, value: float) -> None:
    if not isinstance(value, int | float) or isinstance(value, bool) or value < 0:
        raise ValueError(f"Field '{attr.name}' must be zero or positive, got {value}")


# --- Orchestration and Backend Models ---
@define(frozen=True, slots=True)
class OrchestratorConfig:
    """Timing and behaviour of the run orchestrator."""
    poll_interval: float = field(default=2.0, validator=_validate_non_negative_number)
    max_polls: int = field(default=60, validator=_validate_positive_int)
    debounce_delay: float = field(default=0.1, validator=_validate_positive_number)
    artifact_timeout: float = field(default=30.0, validator=_validate_positive_number)
    fetch_artifacts: bool = field(default=True)
    artifact_cache_size: int = field(default=64, validator=_validate_positive_int)


@define(frozen=True, slots=True)
class BackendConfig:
    """Which test execution backend to drive, and how."""
    type: str = field(default="sf_cli")
    executable: str = field(default="sf")
    target_org: str | None = field(default=None)
    wait_minutes: int = field(default=0, validator=_validate_non_negative_number)


@define(frozen=True, slots=True)
class SuiteConfig:
    """Known case names for a suite, used when the whole suite is run."""
    cases: tuple[str, ...] = field(factory=tuple, converter=tuple)


# --- Global and Root Config Models ---
@define(frozen=True, slots=True)
class GlobalConfig:
    """Global default settings for suiterun."""
    log_level: str = field(default="INFO", validator=_validate_log_level)

    @property
    def numeric_log_level(self) -> int:
        return logging.getLevelName(self.log_level.upper())


@define(frozen=True, slots=True)
class SuiterunConfig:
    """Root configuration object for the suiterun application."""
    global_config: GlobalConfig = field(factory=GlobalConfig, metadata={"toml_name": "global"})
    orchestrator: OrchestratorConfig = field(factory=OrchestratorConfig)
    backend: BackendConfig = field(factory=BackendConfig)
    suites: dict[str, SuiteConfig] = field(factory=dict)

# 🔼⚙️
