"""
Probe Models — Results produced by endpoint probes and status checks.

A ProbeResult describes one URL; a MirrorReport groups the results for
every URL of one source; a StatusSummary groups the reports of every
configured source.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

# Error reasons surfaced to users (diagnostic only, not codes)
REASON_TIMEOUT = "timeout"
REASON_DISABLED = "disabled"
REASON_NO_URL = "no url configured"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single availability/latency/version check."""

    url: Optional[str]
    available: bool
    latency_ms: int = 0
    version: Optional[str] = None
    error: Optional[str] = None
    is_primary: bool = False

    @classmethod
    def ok(
        cls,
        url: str,
        latency_ms: int,
        version: Optional[str] = None,
        is_primary: bool = False,
    ) -> "ProbeResult":
        return cls(
            url=url,
            available=True,
            latency_ms=max(0, int(latency_ms)),
            version=version,
            is_primary=is_primary,
        )

    @classmethod
    def failed(
        cls,
        url: Optional[str],
        reason: str,
        is_primary: bool = False,
        latency_ms: int = 0,
    ) -> "ProbeResult":
        return cls(
            url=url,
            available=False,
            latency_ms=max(0, int(latency_ms)),
            error=reason or "unknown error",
            is_primary=is_primary,
        )

    @classmethod
    def timed_out(cls, url: Optional[str], is_primary: bool = False) -> "ProbeResult":
        return cls.failed(url, REASON_TIMEOUT, is_primary=is_primary)

    @property
    def host_label(self) -> str:
        """Short name of the host serving this URL."""
        if not self.url:
            return "unknown"
        host = (urlparse(self.url).hostname or "").lower()
        if host.endswith("kkgithub.com"):
            return "KK mirror"
        if host.endswith("github.com") or host.endswith("githubusercontent.com"):
            return "GitHub"
        if "jsdelivr.net" in host:
            return "JSDelivr"
        if host.startswith("fastly."):
            return "Fastly"
        if host.startswith("www."):
            host = host[4:]
        return host or "mirror"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "host": self.host_label,
            "available": self.available,
            "latency_ms": self.latency_ms,
            "version": self.version,
            "error": self.error,
            "is_primary": self.is_primary,
        }


@dataclass
class MirrorReport:
    """Probe results for every URL of one source, in URL order."""

    source_name: str
    results: List[ProbeResult] = field(default_factory=list)
    recommended: Optional[ProbeResult] = None

    @property
    def best(self) -> ProbeResult:
        """The recommended result, else the primary's (first) result."""
        if self.recommended is not None:
            return self.recommended
        if self.results:
            return self.results[0]
        return ProbeResult.failed(None, REASON_NO_URL, is_primary=True)

    @property
    def available_count(self) -> int:
        return sum(1 for r in self.results if r.available)


@dataclass
class SourceStatusReport:
    """Status of one configured source."""

    name: str
    display_name: str
    mode: str
    enabled: bool
    best: ProbeResult
    mirrors: Optional[List[ProbeResult]] = None
    recommended: Optional[ProbeResult] = None

    @property
    def available(self) -> bool:
        return self.best.available

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "mode": self.mode,
            "enabled": self.enabled,
            "available": self.available,
            "best": self.best.to_dict(),
            "mirrors": [m.to_dict() for m in self.mirrors] if self.mirrors is not None else None,
            "recommended": self.recommended.url if self.recommended else None,
        }


@dataclass
class SourceProgress:
    """Progress notification emitted as each source finishes."""

    name: str
    report: SourceStatusReport
    completed: int
    total: int


@dataclass
class StatusSummary:
    """Final result of a status check across all sources."""

    reports: Dict[str, SourceStatusReport] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.reports)

    @property
    def available_count(self) -> int:
        return sum(1 for r in self.reports.values() if r.available)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "available": self.available_count,
            "total": self.total,
            "sources": {name: r.to_dict() for name, r in self.reports.items()},
        }
