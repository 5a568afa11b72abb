"""
Mirror Resolution — Concurrent probing of a source's mirrors and
selection of the fastest available one.
"""

from .resolver import MirrorResolver, recommend

__all__ = ["MirrorResolver", "recommend"]
