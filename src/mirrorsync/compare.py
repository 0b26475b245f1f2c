from __future__ import annotations

import logging
from datetime import UTC, datetime

from .models import CopyReason, DirectorySnapshot, FileRecord

logger = logging.getLogger(__name__)


def _format_mtime_ns(value: int) -> str:
    dt = datetime.fromtimestamp(value / 1_000_000_000, tz=UTC)
    return dt.strftime("%Y-%m-%d %H:%M:%S.%f UTC")


def metadata_differences(
    source: FileRecord, destination: FileRecord, mtime_tolerance_ns: int = 0
) -> tuple[str, ...]:
    details: list[str] = []
    if source.size != destination.size:
        details.append(f"size: source={source.size} destination={destination.size}")
    if abs(source.mtime_ns - destination.mtime_ns) > mtime_tolerance_ns:
        details.append(
            f"mtime: source={_format_mtime_ns(source.mtime_ns)} "
            f"destination={_format_mtime_ns(destination.mtime_ns)}"
        )
    return tuple(details)


def metadata_copy_reason(
    source: FileRecord,
    destination: FileRecord | None,
    mtime_tolerance_ns: int = 0,
) -> CopyReason | None:
    """Reason to copy decided from metadata alone; None means a digest check is needed."""
    if destination is None:
        return CopyReason.MISSING
    if metadata_differences(source, destination, mtime_tolerance_ns):
        return CopyReason.METADATA_DIFF
    return None


def directories_to_create(source: DirectorySnapshot) -> list[str]:
    """Source subdirectories, parents before children."""
    return sorted(source.subdirectories.values(), key=lambda relpath: (len(relpath), relpath))


def _keep_unreadable(source: DirectorySnapshot, relpath: str) -> bool:
    if source.is_incomplete(relpath):
        logger.warning("Source listing incomplete, keeping destination entry: %s", relpath)
        return True
    return False


def extra_files(source: DirectorySnapshot, destination: DirectorySnapshot) -> list[FileRecord]:
    """Destination files and special entries the source has nothing at.

    Entries sitting where the source has a directory are replaced during directory
    creation and are not repeated here. Entries under a source path the scan could
    not read are kept.
    """
    records = [
        record
        for record in (*destination.files.values(), *destination.special.values())
        if source.get_file(record.relpath) is None
        and not source.has_subdirectory(record.relpath)
        and not _keep_unreadable(source, record.relpath)
    ]
    return sorted(records, key=lambda record: record.relpath)


def extra_directories(source: DirectorySnapshot, destination: DirectorySnapshot) -> list[str]:
    """Destination-only subdirectories, deepest first."""
    extras = [
        relpath
        for relpath in destination.subdirectories.values()
        if not source.has_subdirectory(relpath)
        and source.get_file(relpath) is None
        and not _keep_unreadable(source, relpath)
    ]
    return sorted(extras, key=lambda relpath: (-len(relpath), relpath))
