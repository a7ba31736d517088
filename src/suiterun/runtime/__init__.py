#
# src/suiterun/runtime/__init__.py
#
"""
Run orchestration and state tracking.
"""
from .aggregator import combine
from .clock import AsyncioClock, ManualClock
from .downloads import DownloadCoordinator
from .orchestrator import RunOrchestrator
from .registry import RunRegistry
from .scheduler import ChangeScheduler

__all__ = [
    "AsyncioClock",
    "ChangeScheduler",
    "DownloadCoordinator",
    "ManualClock",
    "RunOrchestrator",
    "RunRegistry",
    "combine",
]
