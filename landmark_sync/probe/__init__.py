"""
Probes — Single-URL availability checks and version extraction.
"""

from .endpoint import DownloadError, EndpointProbe, describe_error
from .version import decode_prefix, extract_version, scan_top_level_version

__all__ = [
    "EndpointProbe",
    "DownloadError",
    "describe_error",
    "decode_prefix",
    "extract_version",
    "scan_top_level_version",
]
