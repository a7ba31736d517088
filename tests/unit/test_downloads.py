#
# tests/unit/test_downloads.py
#
"""
Tests for the artifact download coordinator.
"""

import asyncio

import pytest

from suiterun.runtime.downloads import DownloadCoordinator


@pytest.fixture
def downloads() -> DownloadCoordinator:
    return DownloadCoordinator()


class TestDownloadCoordinator:
    def test_begin_fetch_only_once_until_ended(self, downloads: DownloadCoordinator) -> None:
        assert downloads.begin_fetch("log123") is True
        assert downloads.begin_fetch("log123") is False
        assert downloads.is_fetching("log123")
        assert downloads.in_flight == frozenset({"log123"})

        downloads.end_fetch("log123")

        assert not downloads.is_fetching("log123")
        assert downloads.begin_fetch("log123") is True

    def test_ids_are_independent(self, downloads: DownloadCoordinator) -> None:
        assert downloads.begin_fetch("a") is True
        assert downloads.begin_fetch("b") is True

    def test_end_fetch_without_begin_is_harmless(self, downloads: DownloadCoordinator) -> None:
        downloads.end_fetch("never-started")
        assert downloads.in_flight == frozenset()

    def test_followers_learn_the_outcome(self, downloads: DownloadCoordinator) -> None:
        seen: list[tuple[str, bool]] = []
        downloads.begin_fetch("log123")
        assert downloads.follow("log123", lambda aid, ok: seen.append((aid, ok)))
        assert downloads.follow("log123", lambda aid, ok: seen.append((aid, ok)))

        downloads.end_fetch("log123", "content")

        assert seen == [("log123", True), ("log123", True)]
        assert downloads.get_content("log123") == "content"
        assert downloads.has_content("log123")

    def test_failed_fetch_reports_failure_and_caches_nothing(self, downloads: DownloadCoordinator) -> None:
        seen: list[bool] = []
        downloads.begin_fetch("log123")
        downloads.follow("log123", lambda aid, ok: seen.append(ok))

        downloads.end_fetch("log123", None)

        assert seen == [False]
        assert downloads.get_content("log123") is None
        assert downloads.begin_fetch("log123") is True

    def test_follow_requires_a_fetch_in_flight(self, downloads: DownloadCoordinator) -> None:
        assert downloads.follow("log123", lambda aid, ok: None) is False

    def test_listener_error_does_not_block_others(self, downloads: DownloadCoordinator) -> None:
        seen: list[bool] = []

        def broken(aid: str, ok: bool) -> None:
            raise RuntimeError("listener failed")

        downloads.begin_fetch("log123")
        downloads.follow("log123", broken)
        downloads.follow("log123", lambda aid, ok: seen.append(ok))
        downloads.end_fetch("log123", "x")

        assert seen == [True]
        assert not downloads.is_fetching("log123")

    def test_clear_contents(self, downloads: DownloadCoordinator) -> None:
        downloads.begin_fetch("log123")
        downloads.end_fetch("log123", "x")
        downloads.clear_contents()
        assert not downloads.has_content("log123")

    def test_least_recently_used_content_is_evicted(self) -> None:
        downloads = DownloadCoordinator(max_contents=2)
        for artifact_id in ("l1", "l2"):
            downloads.begin_fetch(artifact_id)
            downloads.end_fetch(artifact_id, f"log {artifact_id}")

        assert downloads.get_content("l1") == "log l1"
        downloads.begin_fetch("l3")
        downloads.end_fetch("l3", "log l3")

        assert not downloads.has_content("l2")
        assert downloads.get_content("l1") == "log l1"
        assert downloads.get_content("l3") == "log l3"

    def test_cache_size_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="max_contents"):
            DownloadCoordinator(max_contents=0)


@pytest.mark.asyncio
async def test_concurrent_begin_fetch_has_single_winner() -> None:
    downloads = DownloadCoordinator()

    async def contender() -> bool:
        await asyncio.sleep(0)
        return downloads.begin_fetch("log123")

    winners = await asyncio.gather(*(contender() for _ in range(25)))

    assert winners.count(True) == 1
