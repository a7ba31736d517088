# src/suiterun/exceptions.py

"""
Exception hierarchy for suiterun.

Backend errors carry the suite they relate to and keep the original
transport error attached as a note.
"""


class SuiterunError(Exception):
    """Base class for all suiterun errors."""

    pass


class ConfigurationError(SuiterunError):
    """Raised when configuration cannot be loaded or is invalid."""

    pass


class BackendError(SuiterunError):
    """Base class for failures reported by a test execution backend."""

    def __init__(
        self,
        message: str,
        suite: str | None = None,
        details: Exception | None = None,
    ):
        self.message = message
        self.suite = suite
        self.details = details
        full_message = message
        if suite:
            full_message += f" (Suite: '{suite}')"
        super().__init__(full_message)
        if details and hasattr(self, "add_note"):
            self.add_note(f"Original error: {type(details).__name__}: {details}")


class SubmissionError(BackendError):
    """The backend was unreachable or rejected the run request."""

    pass


class PollError(BackendError):
    """A poll for results failed. Transient; the next poll may succeed."""

    pass


class FetchError(BackendError):
    """An artifact could not be retrieved."""

    def __init__(self, message: str, artifact_id: str | None = None, details: Exception | None = None):
        self.artifact_id = artifact_id
        if artifact_id:
            message = f"{message} (Artifact: '{artifact_id}')"
        super().__init__(message, details=details)


class MissingResultError(SuiterunError):
    """A requested case never appeared in any poll response."""

    def __init__(self, suite: str, case: str):
        self.suite = suite
        self.case = case
        super().__init__(f"No result reported for {suite}.{case}")

# 🔼⚙️
