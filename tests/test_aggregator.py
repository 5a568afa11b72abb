"""
Tests for StatusAggregator.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from landmark_sync.models.probe import MirrorReport, ProbeResult
from landmark_sync.status.aggregator import StatusAggregator

from conftest import make_api_source, make_source


class StubResolver:
    """Resolver returning scripted reports per source."""

    timeout = 0.5

    def __init__(self, raises=None, hang=None, release=None, delay=0.0):
        self.raises = raises or set()
        self.delay = delay
        self.hang = hang or set()
        self.release = release
        self.resolved = []
        self._lock = threading.Lock()

    def resolve(self, source):
        with self._lock:
            self.resolved.append(source.name)
        if self.delay:
            time.sleep(self.delay)
        if source.name in self.hang:
            self.release.wait(timeout=5)
        if source.name in self.raises:
            raise RuntimeError("resolver exploded")
        urls = source.get_all_urls() if not source.is_api_mode else [source.api_health_url()]
        results = [
            ProbeResult.ok(url, 100 - 10 * i, version="1", is_primary=(i == 0))
            for i, url in enumerate(urls)
        ]
        return MirrorReport(source.name, results, recommended=min(results, key=lambda r: r.latency_ms))


def five_sources():
    return {
        "s1": make_source("s1", url="https://one.example/x.json"),
        "s2": make_source("s2", url="https://two.example/x.json", mirrors=["https://m.example/x.json"]),
        "s3": make_source("s3", url="https://three.example/x.json"),
        "s4": make_api_source("s4"),
        "s5": make_source("s5", url="https://five.example/x.json"),
    }


class TestCheckAll:
    """Tests for StatusAggregator.check_all."""

    def test_partial_failure(self, executor):
        """One failing source does not affect the other four."""
        resolver = StubResolver(raises={"s3"})

        summary = StatusAggregator(resolver, pool=executor, timeout=5).check_all(five_sources())

        assert summary.total == 5
        assert list(summary.reports) == ["s1", "s2", "s3", "s4", "s5"]
        failed = summary.reports["s3"]
        assert failed.available is False
        assert failed.best.error == "error: resolver exploded"
        assert summary.available_count == 4
        for name in ("s1", "s2", "s4", "s5"):
            assert summary.reports[name].available is True

    def test_disabled_sources_skip_network(self, executor):
        """Disabled sources are reported without being resolved."""
        sources = five_sources()
        sources["s1"] = make_source("s1", url="https://one.example/x.json", enabled=False)
        resolver = StubResolver()

        summary = StatusAggregator(resolver, pool=executor, timeout=5).check_all(sources)

        assert "s1" not in resolver.resolved
        report = summary.reports["s1"]
        assert report.available is False
        assert report.best.error == "disabled"
        assert report.enabled is False

    def test_progress_per_source(self, executor):
        """Each source produces one progress notification."""
        events = []

        StatusAggregator(StubResolver(), pool=executor, timeout=5).check_all(
            five_sources(), on_progress=events.append
        )

        assert sorted(e.name for e in events) == ["s1", "s2", "s3", "s4", "s5"]
        assert [e.completed for e in events] == [1, 2, 3, 4, 5]
        assert all(e.total == 5 for e in events)

    def test_raising_progress_sink(self, executor):
        """A failing progress callback is ignored."""
        def sink(progress):
            raise ValueError("ui gone")

        summary = StatusAggregator(StubResolver(), pool=executor, timeout=5).check_all(
            five_sources(), on_progress=sink
        )

        assert summary.available_count == 5

    def test_aggregate_timeout(self, executor):
        """A source still resolving at the deadline is reported as timed out."""
        release = threading.Event()
        resolver = StubResolver(hang={"s2"}, release=release)
        try:
            summary = StatusAggregator(resolver, pool=executor, timeout=0.3).check_all(five_sources())
        finally:
            release.set()

        assert summary.total == 5
        assert summary.reports["s2"].best.error == "timeout"
        assert summary.available_count == 4

    def test_mirror_breakdown(self, executor):
        """Only JSON sources with mirrors include the per-mirror list."""
        summary = StatusAggregator(StubResolver(), pool=executor, timeout=5).check_all(five_sources())

        with_mirrors = summary.reports["s2"]
        assert with_mirrors.mirrors is not None
        assert len(with_mirrors.mirrors) == 2
        assert with_mirrors.recommended.url == "https://m.example/x.json"
        assert summary.reports["s1"].mirrors is None
        assert summary.reports["s4"].mirrors is None
        assert summary.reports["s4"].mode == "API"

    def test_empty(self, executor):
        """No sources gives an empty summary."""
        summary = StatusAggregator(StubResolver(), pool=executor, timeout=1).check_all({})

        assert summary.total == 0
        assert summary.to_dict() == {"available": 0, "total": 0, "sources": {}}

    def test_default_timeout_covers_resolver(self):
        """The default aggregate timeout exceeds the resolver's."""
        aggregator = StatusAggregator(StubResolver())

        assert aggregator.timeout > StubResolver.timeout

    @pytest.mark.parametrize("workers", [1, 2])
    def test_small_pool(self, workers):
        """A pool smaller than the source count still finishes."""
        pool = ThreadPoolExecutor(max_workers=workers)
        try:
            summary = StatusAggregator(StubResolver(), pool=pool, timeout=5).check_all(five_sources())
        finally:
            pool.shutdown(wait=True)

        assert summary.available_count == 5


class TestDeadlines:
    """Tests for per-source deadlines and pool separation."""

    def test_queued_sources_are_not_timed_out(self):
        """Sources waiting for a worker only start their deadline when they run."""
        sources = {
            f"s{i}": make_source(f"s{i}", url=f"https://s{i}.example/x.json")
            for i in range(1, 8)
        }
        pool = ThreadPoolExecutor(max_workers=3)
        try:
            summary = StatusAggregator(
                StubResolver(delay=0.25), pool=pool, timeout=0.5
            ).check_all(sources)
        finally:
            pool.shutdown(wait=True)

        assert summary.total == 7
        assert summary.available_count == 7

    def test_status_runs_while_sync_is_blocked(self, tmp_path):
        """A background sync stuck on downloads does not delay status checks."""
        from landmark_sync.pool import get_status_pool, get_task_pool
        from landmark_sync.sync.cache import LocalCacheStore
        from landmark_sync.sync.engine import VersionSyncEngine

        release = threading.Event()

        class StuckProbe:
            def download(self, url):
                release.wait(timeout=10)
                return b'{"version":"1"}'

        assert get_status_pool() is not get_task_pool()

        slow = {
            f"slow{i}": make_source(f"slow{i}", url=f"https://slow{i}.example/x.json")
            for i in range(4)
        }
        engine = VersionSyncEngine(LocalCacheStore(tmp_path), StuckProbe())
        background = engine.start_background(slow)
        try:
            time.sleep(0.1)
            start = time.monotonic()
            summary = StatusAggregator(StubResolver(), timeout=0.5).check_all(
                {"fast": make_source("fast", url="https://fast.example/x.json")}
            )
            elapsed = time.monotonic() - start
        finally:
            release.set()

        assert summary.reports["fast"].available is True
        assert summary.reports["fast"].best.error is None
        assert elapsed < 0.5
        assert all(r.changed for r in background.result(timeout=10).values())
