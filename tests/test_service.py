"""
Tests for LandmarkSyncService and the CLI built on it.
"""

import json
from pathlib import Path

import httpx
import pytest
from click.testing import CliRunner

from landmark_sync.config.settings import SyncSettings
from landmark_sync.main import cli
from landmark_sync.service import LandmarkSyncService
from landmark_sync.sync.engine import SyncOutcome


def remote(request: httpx.Request) -> httpx.Response:
    """Every document is reachable and at version 8."""
    if request.method == "HEAD":
        return httpx.Response(200)
    if request.url.path == "/version":
        return httpx.Response(200, json={"version": "api-8"})
    return httpx.Response(200, content=b'{"version":"8","landmarks":[]}')


@pytest.fixture
def service(home: Path):
    client = httpx.Client(transport=httpx.MockTransport(remote))
    svc = LandmarkSyncService.from_settings(SyncSettings(home=home), client=client)
    yield svc
    svc.close()
    client.close()


class TestLandmarkSyncService:
    """Tests for the service facade."""

    def test_fresh_home(self, service, home):
        """A fresh home gets the default registry."""
        assert (home / "config.yml").exists()
        assert service.get_current_source().name == "fletime"
        assert len(service.get_all_sources()) == 3

    def test_sync_then_cache_path(self, service, home):
        """A blocking sync fills the cache for JSON sources."""
        results = service.sync()

        assert results["fletime"].outcome == SyncOutcome.CREATED
        assert results["lynn-json"].outcome == SyncOutcome.CREATED
        assert results["lynn-api"].outcome == SyncOutcome.SKIPPED
        assert service.get_local_cache_path("fletime") == home / "fletime.json"
        assert service.get_local_cache_path("lynn-api") is None
        assert service.get_local_cache_path("missing") is None

    def test_second_sync_unchanged(self, service):
        """A repeat sync finds nothing to do."""
        service.sync()

        results = service.sync()

        assert results["fletime"].outcome == SyncOutcome.UNCHANGED

    def test_background_sync(self, service):
        """A non-blocking sync returns a Future."""
        future = service.sync(blocking=False)

        assert future.result(timeout=10)["fletime"].changed is True

    def test_switch_source(self, service):
        """Switching goes through the registry."""
        assert service.switch_source("lynn-json") is True
        assert service.switch_source("nope") is False
        assert service.get_current_source().name == "lynn-json"

    def test_check_status(self, service):
        """Status covers every source with its version."""
        progress = []

        summary = service.check_status(on_progress=progress.append)

        assert summary.total == 3
        assert summary.available_count == 3
        assert len(progress) == 3
        assert summary.reports["lynn-json"].mirrors is not None
        assert summary.reports["lynn-json"].best.version == "8"
        assert summary.reports["lynn-api"].best.version == "api-8"


class TestCli:
    """Tests for the offline CLI commands."""

    def test_sources(self, home):
        """sources lists every configured source."""
        result = CliRunner().invoke(cli, ["--home", str(home), "sources"])

        assert result.exit_code == 0
        assert "fletime" in result.output
        assert "lynn-api" in result.output

    def test_use(self, home):
        """use switches the current source."""
        runner = CliRunner()

        ok = runner.invoke(cli, ["--home", str(home), "use", "lynn-json"])
        bad = runner.invoke(cli, ["--home", str(home), "use", "nope"])

        assert ok.exit_code == 0
        assert bad.exit_code == 1
        assert "does not exist" in bad.output

    def test_validate(self, home):
        """validate reports missing and valid registry files."""
        runner = CliRunner()

        missing = runner.invoke(cli, ["--home", str(home), "validate"])
        runner.invoke(cli, ["--home", str(home), "sources"])
        valid = runner.invoke(cli, ["--home", str(home), "validate"])

        assert missing.exit_code == 1
        assert valid.exit_code == 0

    def test_validate_other_file(self, tmp_path):
        """validate --file checks an arbitrary path."""
        path = tmp_path / "other.yml"
        path.write_text(json.dumps({"sources": {}, "version": 2}), encoding="utf-8")

        result = CliRunner().invoke(cli, ["validate", "--file", str(path)])

        assert result.exit_code == 1
