"""
Landmark Sync — keep a local copy of landmark reference data in sync
with one of several mirrored remote sources.
"""

__version__ = "0.3.0"
