"""
Status — Concurrent availability checks across all configured sources.
"""

from .aggregator import ProgressSink, StatusAggregator

__all__ = ["ProgressSink", "StatusAggregator"]
