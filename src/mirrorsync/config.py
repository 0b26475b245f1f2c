from __future__ import annotations

import sys
from dataclasses import dataclass

HASH_CHUNK_SIZE = 1024 * 1024
MIN_INTERVAL_SECONDS = 1

LOGGER_NAME = "mirrorsync"
LOG_FILE_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_LOG_FORMAT = "%(message)s"
CONSOLE_DATE_FORMAT = "[%H:%M:%S]"

CASE_INSENSITIVE_PLATFORMS = ("win32", "cygwin", "darwin")


def default_case_sensitive(platform: str | None = None) -> bool:
    name = platform if platform is not None else sys.platform
    return not name.startswith(CASE_INSENSITIVE_PLATFORMS)


def coerce_interval(seconds: int) -> int:
    """Zero becomes the minimum interval, negative values their absolute value."""
    if seconds == 0:
        return MIN_INTERVAL_SECONDS
    return abs(seconds)


@dataclass(frozen=True)
class SyncSettings:
    case_sensitive: bool = True
    mtime_tolerance_ns: int = 0
    hash_chunk_size: int = HASH_CHUNK_SIZE

    @classmethod
    def for_platform(cls, platform: str | None = None, **overrides) -> SyncSettings:
        return cls(case_sensitive=default_case_sensitive(platform), **overrides)
