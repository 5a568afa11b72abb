"""
Synchronization — Local document cache and version-driven refresh.
"""

from .cache import LocalCacheEntry, LocalCacheStore
from .engine import SyncOutcome, SyncResult, VersionSyncEngine

__all__ = [
    "LocalCacheEntry",
    "LocalCacheStore",
    "SyncOutcome",
    "SyncResult",
    "VersionSyncEngine",
]
