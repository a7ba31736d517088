#
# config/loader.py
#
"""
Loads and validates the suiterun TOML configuration file.
"""

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import attrs
import structlog

from suiterun.config.models import (
    BackendConfig,
    GlobalConfig,
    OrchestratorConfig,
    SuiteConfig,
    SuiterunConfig,
)
from suiterun.exceptions import ConfigurationError
from suiterun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("config.loader")

LOG_LEVEL_ENV_VAR = "SUITERUN_LOG_LEVEL"


def _section(data: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Section [{name}] must be a table, got {type(value).__name__}.")
    return dict(value)


def _build(model: type, values: dict[str, Any], section: str) -> Any:
    known = {a.name for a in attrs.fields(model)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(f"Unknown key(s) in [{section}]: {', '.join(unknown)}")
    try:
        return model(**values)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value in [{section}]: {e}") from e


def _global_toml_name() -> str:
    return attrs.fields(SuiterunConfig).global_config.metadata.get("toml_name", "global_config")


def parse_config(data: Mapping[str, Any]) -> SuiterunConfig:
    """Builds a `SuiterunConfig` from already-parsed TOML data."""
    global_name = _global_toml_name()
    global_values = _section(data, global_name)
    env_level = os.environ.get(LOG_LEVEL_ENV_VAR)
    if env_level:
        log.debug("Log level overridden from environment", env_var=LOG_LEVEL_ENV_VAR, level=env_level)
        global_values["log_level"] = env_level

    suites: dict[str, SuiteConfig] = {}
    for suite_name, suite_values in _section(data, "suites").items():
        if not isinstance(suite_values, Mapping):
            raise ConfigurationError(f"Suite '{suite_name}' must be a table.")
        suites[suite_name] = _build(SuiteConfig, dict(suite_values), f"suites.{suite_name}")

    return SuiterunConfig(
        global_config=_build(GlobalConfig, global_values, global_name),
        orchestrator=_build(OrchestratorConfig, _section(data, "orchestrator"), "orchestrator"),
        backend=_build(BackendConfig, _section(data, "backend"), "backend"),
        suites=suites,
    )


def load_config(config_path: Path) -> SuiterunConfig:
    """
    Reads `config_path` and returns the validated configuration.

    Raises:
        ConfigurationError: if the file is missing, unreadable, not valid
            TOML, or contains invalid values.
    """
    config_path = Path(config_path)
    log.debug("Loading configuration", path=str(config_path))
    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Configuration file not found: '{config_path}'") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file '{config_path}': {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in '{config_path}': {e}") from e

    config = parse_config(data)
    log.info(
        "Configuration loaded",
        path=str(config_path),
        backend=config.backend.type,
        suites=len(config.suites),
    )
    return config

# 🔼⚙️
