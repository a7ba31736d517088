#
# src/suiterun/backends/factory.py
#
"""
Factory for creating TestBackend instances.
"""
import structlog

from suiterun.backends.sf_cli import SfCliBackend
from suiterun.config import BackendConfig
from suiterun.exceptions import ConfigurationError
from suiterun.protocols import TestBackend

log = structlog.get_logger("backends.factory")

BACKEND_MAP = {
    "sf_cli": SfCliBackend,
    "sf": SfCliBackend,  # A short alias
}


def get_backend(config: BackendConfig) -> TestBackend:
    """
    Factory function to get an instance of a TestBackend based on config.
    """
    backend_key = config.type.lower()
    backend_class = BACKEND_MAP.get(backend_key)

    if not backend_class:
        log.error("Unsupported test backend specified", backend=config.type)
        raise ConfigurationError(
            f"Unsupported test backend: '{config.type}'. "
            f"Available backends: {list(BACKEND_MAP.keys())}"
        )

    log.debug("Instantiating test backend", backend=backend_key)
    try:
        return backend_class(
            executable=config.executable,
            target_org=config.target_org,
            wait_minutes=config.wait_minutes,
        )
    except Exception as e:
        log.error("Failed to instantiate test backend", backend=backend_key, error=str(e))
        raise ConfigurationError(f"Failed to initialize backend '{backend_key}': {e}") from e

# 🔼⚙️
