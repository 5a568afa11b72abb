"""
Worker Pools — Bounded, process-wide executors for network work.

Three pools are kept apart so they can never starve each other:

- probe pool:  single-URL probes (leaf work, never waits on anything)
- task pool:   sync passes, which may spend a full download timeout
               per URL
- status pool: per-source mirror resolutions, which wait on probe-pool
               futures and must not queue behind slow downloads

All are created lazily, shared by every status check and sync pass,
and shut down at interpreter exit.

## Usage

    from landmark_sync.pool import get_probe_pool

    future = get_probe_pool().submit(probe.probe, url)
"""

from __future__ import annotations

import atexit
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_PROBE_WORKERS = 8
DEFAULT_TASK_WORKERS = 3
DEFAULT_STATUS_WORKERS = 3

_lock = threading.Lock()
_probe_pool: Optional[ThreadPoolExecutor] = None
_task_pool: Optional[ThreadPoolExecutor] = None
_status_pool: Optional[ThreadPoolExecutor] = None


def configure_pools(
    probe_workers: int,
    task_workers: int,
    status_workers: int = DEFAULT_STATUS_WORKERS,
) -> None:
    """
    Create the pools with explicit sizes.

    Has no effect on a pool that already exists.
    """
    global _probe_pool, _task_pool, _status_pool
    with _lock:
        if _probe_pool is None:
            _probe_pool = _new_pool(probe_workers, "landmark-probe")
        if _task_pool is None:
            _task_pool = _new_pool(task_workers, "landmark-task")
        if _status_pool is None:
            _status_pool = _new_pool(status_workers, "landmark-status")


def get_probe_pool() -> ThreadPoolExecutor:
    """Get the global probe pool."""
    global _probe_pool
    with _lock:
        if _probe_pool is None:
            _probe_pool = _new_pool(DEFAULT_PROBE_WORKERS, "landmark-probe")
        return _probe_pool


def get_task_pool() -> ThreadPoolExecutor:
    """Get the global sync task pool."""
    global _task_pool
    with _lock:
        if _task_pool is None:
            _task_pool = _new_pool(DEFAULT_TASK_WORKERS, "landmark-task")
        return _task_pool


def get_status_pool() -> ThreadPoolExecutor:
    """Get the global status-check pool."""
    global _status_pool
    with _lock:
        if _status_pool is None:
            _status_pool = _new_pool(DEFAULT_STATUS_WORKERS, "landmark-status")
        return _status_pool


def shutdown_pools(wait: bool = False) -> None:
    """Shut down every pool. Queued work that has not started is dropped."""
    global _probe_pool, _task_pool, _status_pool
    with _lock:
        pools = [p for p in (_status_pool, _task_pool, _probe_pool) if p is not None]
        _probe_pool = None
        _task_pool = None
        _status_pool = None
    for pool in pools:
        pool.shutdown(wait=wait, cancel_futures=True)
    if pools:
        logger.debug(f"Shut down {len(pools)} worker pool(s)")


def _new_pool(workers: int, prefix: str) -> ThreadPoolExecutor:
    workers = max(1, int(workers))
    logger.debug(f"Starting {prefix} pool with {workers} workers")
    return ThreadPoolExecutor(max_workers=workers, thread_name_prefix=prefix)


atexit.register(shutdown_pools)
