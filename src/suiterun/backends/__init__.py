#
# src/suiterun/backends/__init__.py
#
"""
Test execution backends for suiterun.
"""
from .factory import get_backend
from .normalize import normalize_case_result
from .sf_cli import SfCliBackend

__all__ = [
    "SfCliBackend",
    "get_backend",
    "normalize_case_result",
]

# 🔼⚙️
