"""
Runtime configuration — environment-driven settings.
"""

from .settings import SyncSettings

__all__ = ["SyncSettings"]
