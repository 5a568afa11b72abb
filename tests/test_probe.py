"""
Tests for EndpointProbe against a mocked HTTP transport.
"""

import httpx
import pytest

from landmark_sync.probe.endpoint import DownloadError, describe_error

from conftest import make_api_source

URL = "https://primary.example/data.json"


class TestProbe:
    """Tests for EndpointProbe.probe."""

    def test_available_with_version(self, make_probe):
        """A reachable document reports latency and its version."""
        def handler(request):
            if request.method == "HEAD":
                return httpx.Response(200)
            return httpx.Response(206, content=b'{"version":"7","landmarks":[')

        result = make_probe(handler).probe(URL, is_primary=True)

        assert result.available is True
        assert result.version == "7"
        assert result.latency_ms >= 0
        assert result.is_primary is True
        assert result.error is None

    def test_http_error_status(self, make_probe):
        """A non-2xx HEAD marks the URL unavailable."""
        result = make_probe(lambda r: httpx.Response(404)).probe(URL)

        assert result.available is False
        assert result.error == "HTTP 404"

    def test_timeout(self, make_probe):
        """A timed out request reports 'timeout'."""
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        result = make_probe(handler).probe(URL)

        assert result.available is False
        assert result.error == "timeout"

    def test_connection_error(self, make_probe):
        """Transport errors become a short reason."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = make_probe(handler).probe(URL)

        assert result.available is False
        assert result.error.startswith("ConnectError")

    def test_missing_url(self, make_probe):
        """A missing URL is reported, not raised."""
        result = make_probe(lambda r: httpx.Response(200)).probe(None)

        assert result.available is False
        assert result.error == "no url configured"

    def test_version_unreadable_still_available(self, make_probe):
        """A failing version read does not make the URL unavailable."""
        def handler(request):
            if request.method == "HEAD":
                return httpx.Response(200)
            return httpx.Response(500)

        result = make_probe(handler).probe(URL)

        assert result.available is True
        assert result.version is None

    def test_deadline(self, make_probe):
        """The probe deadline covers both requests."""
        probe = make_probe(lambda r: httpx.Response(200), head_timeout=2.0, version_timeout=1.5)

        assert probe.deadline == pytest.approx(3.5)


class TestFetchVersion:
    """Tests for EndpointProbe.fetch_version."""

    def test_sends_range_and_reads_prefix(self, make_probe):
        """Only a bounded prefix is requested and read."""
        seen = {}

        def handler(request):
            seen["range"] = request.headers.get("Range")
            body = b'{"version":"2.1","items":[' + b"1," * 5000 + b"1]}"
            return httpx.Response(200, content=body)

        version = make_probe(handler, prefix_bytes=64).fetch_version(URL)

        assert seen["range"] == "bytes=0-63"
        assert version == "2.1"

    def test_complete_small_document(self, make_probe):
        """A document shorter than the prefix parses fully."""
        handler = lambda r: httpx.Response(206, content=b'{"a":{"version":"9"},"version":"3","b":1}')

        assert make_probe(handler).fetch_version(URL) == "3"

    def test_bad_status(self, make_probe):
        """Statuses other than 200/206 yield None."""
        assert make_probe(lambda r: httpx.Response(416)).fetch_version(URL) is None

    def test_transport_error(self, make_probe):
        """Transport failures yield None."""
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        assert make_probe(handler).fetch_version(URL) is None

    def test_not_json(self, make_probe):
        """A non-JSON body yields None."""
        handler = lambda r: httpx.Response(200, content=b"<html>rate limited</html>")

        assert make_probe(handler).fetch_version(URL) is None


class TestProbeApi:
    """Tests for EndpointProbe.probe_api."""

    def test_health_and_version(self, make_probe):
        """The health endpoint decides availability; /version supplies the version."""
        paths = []

        def handler(request):
            paths.append((request.url.path, request.url.params.get("source")))
            if request.url.path == "/version":
                assert "Range" not in request.headers
                return httpx.Response(200, json={"version": 5})
            return httpx.Response(200, json=[])

        result = make_probe(handler).probe_api(make_api_source(base="https://api.example"))

        assert result.available is True
        assert result.version == "5"
        assert result.is_primary is True
        assert ("/api/landmarks", "zth") in paths

    def test_health_failure(self, make_probe):
        """A failing health endpoint marks the source unavailable."""
        result = make_probe(lambda r: httpx.Response(503)).probe_api(make_api_source())

        assert result.available is False
        assert result.error == "HTTP 503"


class TestDownload:
    """Tests for EndpointProbe.download."""

    def test_returns_body(self, make_probe):
        """A successful download returns the full body."""
        body = b'{"version":"1","items":[]}'

        assert make_probe(lambda r: httpx.Response(200, content=body)).download(URL) == body

    def test_http_error(self, make_probe):
        """Non-2xx responses raise DownloadError."""
        with pytest.raises(DownloadError) as exc_info:
            make_probe(lambda r: httpx.Response(500)).download(URL)

        assert exc_info.value.reason == "HTTP 500"

    def test_empty_body(self, make_probe):
        """An empty body raises DownloadError."""
        with pytest.raises(DownloadError, match="empty"):
            make_probe(lambda r: httpx.Response(200, content=b"")).download(URL)

    def test_transport_error(self, make_probe):
        """Transport failures raise DownloadError."""
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(DownloadError):
            make_probe(handler).download(URL)


class TestDescribeError:
    """Tests for describe_error."""

    def test_timeout(self):
        """Any httpx timeout is 'timeout'."""
        assert describe_error(httpx.PoolTimeout("pool")) == "timeout"

    def test_truncated(self):
        """Long messages are cut short."""
        assert len(describe_error(ValueError("x" * 500))) == 120
