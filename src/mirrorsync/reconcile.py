from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from .compare import (
    directories_to_create,
    extra_directories,
    extra_files,
    metadata_copy_reason,
    metadata_differences,
)
from .config import SyncSettings
from .filesystem import LocalFileSystem
from .hashing import ContentVerifier
from .models import (
    CopyReason,
    CycleResult,
    DirectorySnapshot,
    FileRecord,
    ItemAction,
    ItemOutcome,
    NodeType,
    Phase,
)
from .scanner_local import ScanOptions, TreeScanner

logger = logging.getLogger(__name__)


@dataclass
class _CycleContext:
    source: DirectorySnapshot
    destination: DirectorySnapshot
    fs: LocalFileSystem
    verifier: ContentVerifier
    settings: SyncSettings
    result: CycleResult

    def record(
        self,
        relpath: str,
        action: ItemAction,
        phase: Phase,
        *,
        reason: CopyReason | None = None,
        error: str | None = None,
    ) -> ItemOutcome:
        outcome = ItemOutcome(
            relpath=relpath, action=action, phase=phase, reason=reason, error=error
        )
        self.result.outcomes.append(outcome)
        return outcome

    def destination_path(self, relpath: str) -> Path:
        return self.fs.combine(self.destination.root, relpath)

    def existing_spelling(self, relpath: str) -> str:
        """relpath rewritten to the spelling of every ancestor the destination already has."""
        parts = relpath.split("/")
        resolved: list[str] = []
        for depth in range(1, len(parts) + 1):
            existing = self.destination.subdirectories.get(
                self.destination.key("/".join(parts[:depth]))
            )
            if existing is not None:
                resolved = existing.split("/")
            else:
                resolved.append(parts[depth - 1])
        return "/".join(resolved)

    def new_file_path(self, relpath: str) -> Path:
        """Target for a file the destination lacks, under the existing parent spelling."""
        parent, _, name = relpath.rpartition("/")
        if not parent:
            return self.destination_path(name)
        return self.destination_path(f"{self.existing_spelling(parent)}/{name}")


def _remove_entry(ctx: _CycleContext, record: FileRecord) -> None:
    if record.node_type == NodeType.FILE and ctx.fs.file_exists(record.absolute_path):
        ctx.fs.clear_readonly(record.absolute_path)
    ctx.fs.delete_file(record.absolute_path)


def create_directories(ctx: _CycleContext) -> None:
    for relpath in directories_to_create(ctx.source):
        target = ctx.destination_path(ctx.existing_spelling(relpath))
        try:
            if ctx.fs.directory_exists(target):
                ctx.record(relpath, ItemAction.SKIPPED, Phase.CREATE_DIRS)
                continue

            occupant = ctx.destination.get_file(relpath) or ctx.destination.get_special(
                relpath
            )
            if occupant is not None and ctx.fs.exists(occupant.absolute_path):
                _remove_entry(ctx, occupant)
                logger.info("Removed entry blocking directory: %s", relpath)

            ctx.fs.create_directory(target)
            logger.info("Created directory: %s", relpath)
            ctx.record(relpath, ItemAction.CREATED_DIR, Phase.CREATE_DIRS)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed creating directory: %s | Exception: %s", relpath, exc)
            ctx.record(relpath, ItemAction.FAILED, Phase.CREATE_DIRS, error=str(exc))


def _clear_path_for_copy(ctx: _CycleContext, relpath: str, target: Path) -> None:
    special = ctx.destination.get_special(relpath)
    if special is not None and ctx.fs.exists(special.absolute_path):
        ctx.fs.delete_file(special.absolute_path)
        logger.info("Removed unsupported entry in the way of file: %s", relpath)

    blocking_dir = ctx.destination.subdirectories.get(ctx.destination.key(relpath))
    if blocking_dir is not None:
        dir_path = ctx.destination_path(blocking_dir)
        if ctx.fs.directory_exists(dir_path):
            ctx.fs.delete_directory(dir_path, recursive=True)
            logger.info("Removed directory in the way of file: %s", relpath)

    if ctx.fs.is_symlink(target):
        ctx.fs.delete_file(target)


def _copy_and_verify(ctx: _CycleContext, record: FileRecord, target: Path) -> None:
    ctx.fs.copy_file(record.absolute_path, target, overwrite=True)
    ctx.fs.set_mtime_ns(target, record.mtime_ns)
    ctx.verifier.validate_copy(record.absolute_path, target, record.relpath)


def _process_file(ctx: _CycleContext, record: FileRecord) -> None:
    relpath = record.relpath
    existing = ctx.destination.get_file(relpath)
    reason = metadata_copy_reason(record, existing, ctx.settings.mtime_tolerance_ns)

    if reason is None:
        assert existing is not None
        if ctx.verifier.equal(record.absolute_path, existing.absolute_path):
            ctx.record(relpath, ItemAction.SKIPPED, Phase.COPY_FILES)
            return
        logger.warning("Metadata equal but content differs (MD5 mismatch): %s", relpath)
        reason = CopyReason.CONTENT_DIFF
    elif reason == CopyReason.METADATA_DIFF:
        assert existing is not None
        logger.debug(
            "Metadata differs for %s: %s",
            relpath,
            "; ".join(
                metadata_differences(record, existing, ctx.settings.mtime_tolerance_ns)
            ),
        )

    if existing is not None:
        target = existing.absolute_path
    else:
        target = ctx.new_file_path(relpath)
        _clear_path_for_copy(ctx, relpath, target)

    _copy_and_verify(ctx, record, target)
    logger.info("Copied file (MD5 OK): %s [%s]", relpath, reason.value)
    ctx.record(relpath, ItemAction.COPIED_FILE, Phase.COPY_FILES, reason=reason)


def copy_or_update_files(ctx: _CycleContext) -> None:
    for record in sorted(ctx.source.files.values(), key=lambda item: item.relpath):
        try:
            _process_file(ctx, record)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed processing file: %s | Exception: %s", record.relpath, exc)
            ctx.record(record.relpath, ItemAction.FAILED, Phase.COPY_FILES, error=str(exc))


def delete_extra_files(ctx: _CycleContext) -> None:
    for record in extra_files(ctx.source, ctx.destination):
        relpath = record.relpath
        try:
            if not ctx.fs.exists(record.absolute_path):
                continue
            _remove_entry(ctx, record)
            logger.info("Deleted extra file: %s", relpath)
            ctx.record(relpath, ItemAction.DELETED_FILE, Phase.DELETE_FILES)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to delete extra file: %s | Exception: %s", relpath, exc)
            ctx.record(relpath, ItemAction.FAILED, Phase.DELETE_FILES, error=str(exc))


def delete_extra_directories(ctx: _CycleContext) -> None:
    for relpath in extra_directories(ctx.source, ctx.destination):
        target = ctx.destination_path(relpath)
        try:
            if not ctx.fs.directory_exists(target):
                continue
            ctx.fs.delete_directory(target, recursive=True)
            logger.info("Deleted extra directory: %s", relpath)
            ctx.record(relpath, ItemAction.DELETED_DIR, Phase.DELETE_DIRS)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Failed to delete extra directory: %s | Exception: %s", relpath, exc
            )
            ctx.record(relpath, ItemAction.FAILED, Phase.DELETE_DIRS, error=str(exc))


def _log_summary(result: CycleResult) -> None:
    counts = result.counts()
    logger.info(
        "Synchronization round finished: created_dirs=%d copied=%d deleted_files=%d "
        "deleted_dirs=%d skipped=%d failed=%d time=%.2fs",
        counts[ItemAction.CREATED_DIR],
        counts[ItemAction.COPIED_FILE],
        counts[ItemAction.DELETED_FILE],
        counts[ItemAction.DELETED_DIR],
        counts[ItemAction.SKIPPED],
        counts[ItemAction.FAILED],
        result.duration_seconds,
    )


def run_once(
    source_root: Path | str,
    destination_root: Path | str,
    *,
    settings: SyncSettings | None = None,
    fs: LocalFileSystem | None = None,
    verifier: ContentVerifier | None = None,
    scanner: TreeScanner | None = None,
) -> CycleResult:
    """Scan both trees and make the destination mirror the source.

    Phases run in a fixed order: create directories, copy or update files, delete
    extra files, delete extra directories. Item failures are logged and recorded in
    the returned result; errors scanning either root propagate to the caller.
    """
    resolved_settings = settings or SyncSettings()
    resolved_fs = fs or LocalFileSystem()
    resolved_verifier = verifier or ContentVerifier(resolved_settings.hash_chunk_size)
    resolved_scanner = scanner or TreeScanner(resolved_fs)

    started = time.perf_counter()
    result = CycleResult(started_at=datetime.now(tz=UTC))
    logger.info("Starting new synchronization round: %s -> %s", source_root, destination_root)

    options = ScanOptions(case_sensitive=resolved_settings.case_sensitive)
    source = resolved_scanner.scan(Path(source_root), options)
    destination = resolved_scanner.scan(Path(destination_root), options)

    ctx = _CycleContext(
        source=source,
        destination=destination,
        fs=resolved_fs,
        verifier=resolved_verifier,
        settings=resolved_settings,
        result=result,
    )
    create_directories(ctx)
    copy_or_update_files(ctx)
    delete_extra_files(ctx)
    delete_extra_directories(ctx)

    result.duration_seconds = time.perf_counter() - started
    _log_summary(result)
    return result


class Reconciler:
    """A source/destination pair bound to its collaborators, runnable repeatedly."""

    def __init__(
        self,
        source_root: Path | str,
        destination_root: Path | str,
        *,
        settings: SyncSettings | None = None,
        fs: LocalFileSystem | None = None,
        verifier: ContentVerifier | None = None,
    ) -> None:
        self.source_root = Path(source_root)
        self.destination_root = Path(destination_root)
        self.settings = settings or SyncSettings()
        self.fs = fs or LocalFileSystem()
        self.verifier = verifier or ContentVerifier(self.settings.hash_chunk_size)
        self.scanner = TreeScanner(self.fs)

    def run_once(self) -> CycleResult:
        return run_once(
            self.source_root,
            self.destination_root,
            settings=self.settings,
            fs=self.fs,
            verifier=self.verifier,
            scanner=self.scanner,
        )
