"""
Mirror Resolver — Probe every URL of one source and pick the best.

All probes for a source are submitted to the shared probe pool before any
is awaited, then collected against one deadline. A probe still running
at the deadline is reported as a synthetic "timeout" result; it is not
cancelled and finishes on its own (the probe enforces its own request
timeouts). Every URL therefore appears exactly once in the report, in
URL order.

The recommended mirror is the available result with the lowest latency;
on a tie the primary URL wins.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Iterable, List, Optional, Tuple

from ..models.probe import MirrorReport, ProbeResult
from ..models.source import DataSource
from ..pool import get_probe_pool
from ..probe.endpoint import EndpointProbe

logger = logging.getLogger(__name__)

# Added on top of the probe's own deadline when no timeout is given
SUPERVISION_SLACK_SECONDS = 1.0


def recommend(results: Iterable[ProbeResult]) -> Optional[ProbeResult]:
    """Lowest-latency available result, primary first on ties."""
    available = [r for r in results if r.available]
    if not available:
        return None
    return min(available, key=lambda r: (r.latency_ms, not r.is_primary))


class MirrorResolver:
    """
    Resolves one source's URLs into a MirrorReport.

    The supervision timeout may not be shorter than the probe's own
    deadline; it only bounds how long the caller waits.
    """

    def __init__(
        self,
        probe: EndpointProbe,
        pool: Optional[ThreadPoolExecutor] = None,
        timeout: Optional[float] = None,
    ):
        if timeout is None:
            timeout = probe.deadline + SUPERVISION_SLACK_SECONDS
        elif timeout < probe.deadline:
            raise ValueError(
                f"Resolver timeout {timeout}s is shorter than the probe deadline "
                f"{probe.deadline}s"
            )
        self.probe = probe
        self.timeout = timeout
        self._pool = pool

    @property
    def pool(self) -> ThreadPoolExecutor:
        return self._pool or get_probe_pool()

    def resolve(self, source: DataSource) -> MirrorReport:
        """Probe all of a source's URLs concurrently."""
        pending = self._submit(source)

        deadline = time.monotonic() + self.timeout
        results: List[ProbeResult] = []
        for url, is_primary, future in pending:
            results.append(self._collect(source, url, is_primary, future, deadline))

        report = MirrorReport(
            source_name=source.name,
            results=results,
            recommended=recommend(results),
        )
        logger.info(
            f"[mirror] {source.name}: {report.available_count}/{len(results)} available"
            + (f", recommended {report.recommended.host_label}" if report.recommended else "")
        )
        return report

    def _submit(
        self, source: DataSource
    ) -> List[Tuple[Optional[str], bool, Optional[Future]]]:
        pool = self.pool

        if source.is_api_mode:
            targets = [(source.api_health_url(), True)]
        else:
            targets = [(url, i == 0) for i, url in enumerate(source.get_all_urls())]

        pending = []
        for url, is_primary in targets:
            try:
                if source.is_api_mode:
                    future = pool.submit(self.probe.probe_api, source)
                else:
                    future = pool.submit(self.probe.probe, url, is_primary)
            except RuntimeError as e:
                # Pool already shut down (interpreter exit)
                logger.warning(f"[mirror] Cannot schedule probe for {url}: {e}")
                future = None
            pending.append((url, is_primary, future))
        return pending

    def _collect(
        self,
        source: DataSource,
        url: Optional[str],
        is_primary: bool,
        future: Optional[Future],
        deadline: float,
    ) -> ProbeResult:
        if future is None:
            return ProbeResult.failed(url, "probe pool unavailable", is_primary=is_primary)

        remaining = max(0.0, deadline - time.monotonic())
        try:
            return future.result(timeout=remaining)
        except FuturesTimeoutError:
            logger.info(
                f"[mirror] {source.name}: probe of {url} timed out",
                extra={"source": source.name, "url": url},
            )
            return ProbeResult.timed_out(url, is_primary=is_primary)
        except Exception as e:
            logger.warning(f"[mirror] {source.name}: probe of {url} raised {e!r}")
            return ProbeResult.failed(url, f"error: {e}", is_primary=is_primary)
