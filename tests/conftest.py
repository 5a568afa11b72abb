"""
Shared fixtures for landmark_sync tests.

HTTP is faked with httpx.MockTransport so nothing touches the network;
concurrency tests get small dedicated executors that are torn down after
each test.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional

import httpx
import pytest

from landmark_sync.models.source import DataSource, SourceType
from landmark_sync.probe.endpoint import EndpointProbe


def make_source(
    name: str = "docs",
    url: Optional[str] = "https://primary.example/data.json",
    mirrors: Optional[List[Optional[str]]] = None,
    enabled: bool = True,
    **extra,
) -> DataSource:
    """Create a JSON-mode source for testing."""
    return DataSource(
        name=name,
        display_name=name.title(),
        url=url,
        mirror_urls=mirrors or [],
        enabled=enabled,
        **extra,
    )


def make_api_source(
    name: str = "live",
    base: str = "https://api.example",
    enabled: bool = True,
) -> DataSource:
    """Create an API-mode source for testing."""
    return DataSource(
        name=name,
        display_name=name.title(),
        type=SourceType.API,
        api_base_url=base,
        enabled=enabled,
    )


@pytest.fixture
def executor():
    """Dedicated thread pool, shut down after the test."""
    pool = ThreadPoolExecutor(max_workers=8, thread_name_prefix="test-pool")
    yield pool
    pool.shutdown(wait=False, cancel_futures=True)


@pytest.fixture
def make_probe():
    """Factory for an EndpointProbe backed by a MockTransport handler."""
    clients: List[httpx.Client] = []

    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> EndpointProbe:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return EndpointProbe(client, **kwargs)

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """Empty sync home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path
