"""Utility functions for container inventory analysis."""

from .digest import calculate_digest, calculate_file_digest
from .log import setup_logging
from .os_release import detect_os_release
from .snapshot import compare, directories_equal, snapshot

__all__ = [
    "calculate_digest",
    "calculate_file_digest",
    "compare",
    "detect_os_release",
    "directories_equal",
    "setup_logging",
    "snapshot",
]
