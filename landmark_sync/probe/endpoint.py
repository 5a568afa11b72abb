"""
Endpoint Probe — One bounded-time check against one URL.

A probe is a single attempt (no retries):

1. HEAD the URL to check existence and measure latency
2. only if that succeeds, GET a small Range-limited prefix of the body
   and extract the document's top-level version from it

The body is streamed and reading stops after `prefix_bytes`, so huge
remote documents cost no more than a small one. Every failure is
reported through ProbeResult.error; nothing here raises except
download(), whose DownloadError callers recover from by moving on to
the next mirror.

## Usage

    from landmark_sync.probe import EndpointProbe

    with EndpointProbe(head_timeout=2.0) as probe:
        result = probe.probe("https://example.org/data.json", is_primary=True)
        if result.available:
            print(result.latency_ms, result.version)
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Optional

import httpx

from .. import __version__
from ..models.probe import REASON_NO_URL, ProbeResult
from ..models.source import DataSource
from .version import decode_prefix, extract_version

if TYPE_CHECKING:
    from ..config.settings import SyncSettings

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = f"landmark-sync/{__version__}"

# Errors httpx raises for unusable URLs or failed exchanges
_REQUEST_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


class DownloadError(Exception):
    """Raised when a full document download fails."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}")


def describe_error(exc: BaseException) -> str:
    """Short human-readable reason for a transport failure."""
    if isinstance(exc, httpx.TimeoutException):
        return "timeout"
    message = str(exc).strip()
    name = type(exc).__name__
    text = f"{name}: {message}" if message else name
    return text[:120]


class EndpointProbe:
    """
    Availability, latency and version checks for single URLs.

    Owns an httpx.Client unless one is passed in. The client is safe to
    share across the worker pool's threads.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        head_timeout: float = 2.0,
        version_timeout: float = 1.5,
        download_timeout: float = 15.0,
        prefix_bytes: int = 2048,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.head_timeout = head_timeout
        self.version_timeout = version_timeout
        self.download_timeout = download_timeout
        self.prefix_bytes = max(1, prefix_bytes)

        self._owns_client = client is None
        self._client = client or httpx.Client(
            follow_redirects=True,
            headers={"User-Agent": user_agent},
        )

    @classmethod
    def from_settings(
        cls,
        settings: "SyncSettings",
        client: Optional[httpx.Client] = None,
    ) -> "EndpointProbe":
        return cls(
            client,
            head_timeout=settings.head_timeout,
            version_timeout=settings.version_timeout,
            download_timeout=settings.download_timeout,
            prefix_bytes=settings.prefix_bytes,
            user_agent=settings.user_agent,
        )

    @property
    def deadline(self) -> float:
        """Longest time (seconds) one probe() call is allowed to take."""
        return self.head_timeout + self.version_timeout

    # ─── Probing ────────────────────────────────────────────

    def probe(self, url: Optional[str], is_primary: bool = False) -> ProbeResult:
        """Check one document URL. Never raises."""
        if not url:
            return ProbeResult.failed(url, REASON_NO_URL, is_primary=is_primary)

        start = time.monotonic()
        try:
            response = self._client.head(url, timeout=self.head_timeout)
        except _REQUEST_ERRORS as e:
            logger.debug(f"[probe] HEAD {url} failed: {e!r}")
            return ProbeResult.failed(url, describe_error(e), is_primary=is_primary)
        latency_ms = int((time.monotonic() - start) * 1000)

        if not response.is_success:
            return ProbeResult.failed(
                url,
                f"HTTP {response.status_code}",
                is_primary=is_primary,
                latency_ms=latency_ms,
            )

        version = self.fetch_version(url)
        return ProbeResult.ok(url, latency_ms, version=version, is_primary=is_primary)

    def probe_api(self, source: DataSource) -> ProbeResult:
        """Check an API-mode source's query endpoint. Never raises."""
        url = source.api_health_url()
        if not url:
            return ProbeResult.failed(None, "no api base url", is_primary=True)

        start = time.monotonic()
        try:
            with self._client.stream(
                "GET",
                url,
                headers={"Accept": "application/json"},
                timeout=self.head_timeout,
            ) as response:
                status_code = response.status_code
                is_success = response.is_success
        except _REQUEST_ERRORS as e:
            logger.debug(f"[probe] GET {url} failed: {e!r}")
            return ProbeResult.failed(url, describe_error(e), is_primary=True)
        latency_ms = int((time.monotonic() - start) * 1000)

        if not is_success:
            return ProbeResult.failed(
                url, f"HTTP {status_code}", is_primary=True, latency_ms=latency_ms
            )

        version = self.fetch_version(source.api_version_url(), ranged=False)
        return ProbeResult.ok(url, latency_ms, version=version, is_primary=True)

    def fetch_version(self, url: Optional[str], ranged: bool = True) -> Optional[str]:
        """
        Read the head of a document and return its top-level version.

        At most `prefix_bytes` are read. Returns None on any failure.
        """
        if not url:
            return None

        headers = {"Accept": "application/json"}
        if ranged:
            headers["Range"] = f"bytes=0-{self.prefix_bytes - 1}"

        try:
            with self._client.stream(
                "GET", url, headers=headers, timeout=self.version_timeout
            ) as response:
                if response.status_code not in (200, 206):
                    logger.debug(f"[probe] Version read {url}: HTTP {response.status_code}")
                    return None
                prefix = self._read_prefix(response)
        except _REQUEST_ERRORS as e:
            logger.debug(f"[probe] Version read {url} failed: {e!r}")
            return None

        return extract_version(decode_prefix(prefix))

    def _read_prefix(self, response: httpx.Response) -> bytes:
        buffer = bytearray()
        for chunk in response.iter_bytes():
            buffer.extend(chunk)
            if len(buffer) >= self.prefix_bytes:
                break
        return bytes(buffer[:self.prefix_bytes])

    # ─── Downloading ────────────────────────────────────────

    def download(self, url: str) -> bytes:
        """
        Fetch a full document.

        Raises:
            DownloadError: On transport failure, non-2xx status or empty body.
        """
        try:
            response = self._client.get(url, timeout=self.download_timeout)
        except _REQUEST_ERRORS as e:
            raise DownloadError(url, describe_error(e)) from e

        if not response.is_success:
            raise DownloadError(url, f"HTTP {response.status_code}")
        if not response.content:
            raise DownloadError(url, "empty response")
        return response.content

    # ─── Lifecycle ──────────────────────────────────────────

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "EndpointProbe":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
