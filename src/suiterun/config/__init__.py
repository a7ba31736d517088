#
# config/__init__.py
#
"""
Configuration handling sub-package for suiterun.

Exports the loading function and core configuration model.
"""

from .loader import load_config
from .models import (
    BackendConfig,
    GlobalConfig,
    OrchestratorConfig,
    SuiteConfig,
    SuiterunConfig,
)

__all__ = [
    "BackendConfig",
    "GlobalConfig",
    "OrchestratorConfig",
    "SuiteConfig",
    "SuiterunConfig",
    "load_config",
]

# 🔼⚙️
