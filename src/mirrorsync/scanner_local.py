from __future__ import annotations

import logging
import stat
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from .filesystem import LocalFileSystem
from .models import DirectorySnapshot, FileRecord, NodeType
from .text_utils import path_key

logger = logging.getLogger(__name__)


def _node_type(st_mode: int) -> NodeType:
    if stat.S_ISDIR(st_mode):
        return NodeType.DIR
    if stat.S_ISLNK(st_mode):
        return NodeType.SYMLINK
    if stat.S_ISREG(st_mode):
        return NodeType.FILE
    return NodeType.SPECIAL


@dataclass(frozen=True)
class ScanOptions:
    case_sensitive: bool = True
    recursive: bool = True
    ignore_inaccessible: bool = True


class TreeScanner:
    def __init__(self, fs: LocalFileSystem | None = None) -> None:
        self.fs = fs or LocalFileSystem()

    def scan(self, root: Path, options: ScanOptions | None = None) -> DirectorySnapshot:
        opts = options or ScanOptions()
        root = Path(root).expanduser().absolute()
        if not root.exists():
            raise FileNotFoundError(f"Root not found: {root}")
        if not root.is_dir():
            raise NotADirectoryError(f"Root is not a directory: {root}")
        # An unreadable root must fail the cycle instead of looking empty.
        self.fs.list_directory(root)

        subdirectories: dict[str, str] = {}
        files: dict[str, FileRecord] = {}
        special: dict[str, FileRecord] = {}
        incomplete: set[str] = set()

        def mark_incomplete(path: str | None) -> None:
            relpath = ""
            if path is not None:
                try:
                    relpath = self.fs.relative_to(root, Path(path))
                except ValueError:
                    relpath = ""
            incomplete.add(path_key(relpath, case_sensitive=opts.case_sensitive))

        def on_walk_error(exc: OSError) -> None:
            if not opts.ignore_inaccessible:
                raise exc
            logger.error(
                "Error during work with item: %s in directory %s | Exception: %s",
                exc.filename,
                root,
                exc,
            )
            mark_incomplete(exc.filename)

        def remember(target: dict, key: str, relpath: str, value) -> bool:
            existing = target.get(key)
            if existing is not None:
                logger.warning(
                    "Path collides with an existing entry, keeping the first: %s", relpath
                )
                return False
            target[key] = value
            return True

        for current_dir, dirs, names in self.fs.walk(root, onerror=on_walk_error):
            current_path = Path(current_dir)
            rel_dir = PurePosixPath(".")
            if current_path != root:
                rel_dir = PurePosixPath(self.fs.relative_to(root, current_path))

            kept_dirs: list[str] = []
            for name in [*dirs, *names]:
                child_rel = PurePosixPath(name) if rel_dir == PurePosixPath(".") else rel_dir / name
                relpath = child_rel.as_posix()
                full_path = current_path / name
                try:
                    st = self.fs.lstat(full_path)
                except OSError as exc:
                    if not opts.ignore_inaccessible:
                        raise
                    logger.error(
                        "Error during work with item: %s in directory %s | Exception: %s",
                        full_path,
                        root,
                        exc,
                    )
                    mark_incomplete(str(full_path))
                    continue

                key = path_key(relpath, case_sensitive=opts.case_sensitive)
                node_type = _node_type(st.st_mode)
                if node_type == NodeType.DIR:
                    if remember(subdirectories, key, relpath, relpath):
                        kept_dirs.append(name)
                    continue

                record = FileRecord(
                    relpath=relpath,
                    absolute_path=full_path,
                    size=st.st_size,
                    mtime_ns=st.st_mtime_ns,
                    node_type=node_type,
                )
                if node_type == NodeType.FILE:
                    remember(files, key, relpath, record)
                    continue

                logger.warning("Unsupported entry (%s), not mirrored: %s", node_type.value, relpath)
                remember(special, key, relpath, record)

            dirs[:] = kept_dirs if opts.recursive else []

        return DirectorySnapshot(
            root=root,
            case_sensitive=opts.case_sensitive,
            subdirectories=subdirectories,
            files=files,
            special=special,
            incomplete=incomplete,
        )
