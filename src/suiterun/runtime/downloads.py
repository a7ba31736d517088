# src/suiterun/runtime/downloads.py

"""
Coordinates artifact fetches so each artifact is fetched at most once at a time.
"""

from collections.abc import Callable

import structlog

from suiterun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.downloads")

FetchListener = Callable[[str, bool], None]
DEFAULT_MAX_CONTENTS = 64


class DownloadCoordinator:
    """
    Tracks which artifact ids have a fetch in flight.

    Membership in the in-flight set is the only signal that a fetch is in
    progress. `begin_fetch` is a check-and-set that runs without yielding
    to the event loop, so concurrent tasks can never both win it.

    Callers that lose the race can `follow()` the in-flight fetch and are
    told how it ended when `end_fetch` runs.

    Fetched contents are kept for the `max_contents` most recently used
    ids; older entries are evicted.
    """

    def __init__(self, max_contents: int = DEFAULT_MAX_CONTENTS) -> None:
        if max_contents <= 0:
            raise ValueError(f"max_contents must be positive, got {max_contents}")
        self.max_contents = max_contents
        self._in_flight: set[str] = set()
        self._followers: dict[str, list[FetchListener]] = {}
        self._contents: dict[str, str] = {}

    def begin_fetch(self, artifact_id: str) -> bool:
        """Marks `artifact_id` in flight. False if a fetch is already running."""
        if artifact_id in self._in_flight:
            log.debug("Fetch already in flight", artifact_id=artifact_id)
            return False
        self._in_flight.add(artifact_id)
        log.debug("Fetch started", artifact_id=artifact_id)
        return True

    def end_fetch(self, artifact_id: str, content: str | None = None) -> None:
        """
        Clears the in-flight mark and notifies followers.

        Must run exactly once per successful `begin_fetch`, from a
        `finally` block. `content` is None when the fetch failed.
        """
        self._in_flight.discard(artifact_id)
        succeeded = content is not None
        if succeeded:
            self._store(artifact_id, content)
        followers = self._followers.pop(artifact_id, [])
        log.debug("Fetch ended", artifact_id=artifact_id, succeeded=succeeded, followers=len(followers))
        for listener in followers:
            try:
                listener(artifact_id, succeeded)
            except Exception as e:
                log.warning("Fetch listener raised", artifact_id=artifact_id, error=str(e), exc_info=True)

    def is_fetching(self, artifact_id: str) -> bool:
        return artifact_id in self._in_flight

    def follow(self, artifact_id: str, listener: FetchListener) -> bool:
        """
        Registers `listener` for the end of the in-flight fetch of `artifact_id`.

        Returns False (and registers nothing) when no fetch is in flight.
        """
        if artifact_id not in self._in_flight:
            return False
        self._followers.setdefault(artifact_id, []).append(listener)
        return True

    def has_content(self, artifact_id: str) -> bool:
        return artifact_id in self._contents

    def get_content(self, artifact_id: str) -> str | None:
        content = self._contents.pop(artifact_id, None)
        if content is not None:
            self._contents[artifact_id] = content
        return content

    def _store(self, artifact_id: str, content: str) -> None:
        # dicts keep insertion order: the first key is the least recently used.
        self._contents.pop(artifact_id, None)
        self._contents[artifact_id] = content
        while len(self._contents) > self.max_contents:
            evicted = next(iter(self._contents))
            del self._contents[evicted]
            log.debug("Evicted cached artifact", artifact_id=evicted)

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    def clear_contents(self) -> None:
        count = len(self._contents)
        self._contents.clear()
        log.debug("Cleared cached artifacts", count=count)

# 🔼⚙️
