from __future__ import annotations

import os
from datetime import UTC, datetime
from pathlib import Path

import pytest

from mirrorsync.filesystem import LocalFileSystem
from mirrorsync.hashing import ContentVerifier
from mirrorsync.log_setup import reset_logging
from mirrorsync.models import FileRecord, NodeType


def mk_file(
    relpath: str,
    *,
    root: Path = Path("/root"),
    size: int = 0,
    mtime_ns: int = 0,
    node_type: NodeType = NodeType.FILE,
) -> FileRecord:
    return FileRecord(
        relpath=relpath,
        absolute_path=root / relpath,
        size=size,
        mtime_ns=mtime_ns,
        node_type=node_type,
    )


def write_tree(root: Path, files: dict[str, bytes | str], dirs: tuple[str, ...] = ()) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    for relpath in dirs:
        (root / relpath).mkdir(parents=True, exist_ok=True)
    for relpath, content in files.items():
        path = root / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        data = content.encode("utf-8") if isinstance(content, str) else content
        path.write_bytes(data)
    return root


def set_mtime(path: Path, mtime_ns: int) -> None:
    os.utime(path, ns=(mtime_ns, mtime_ns))


def tree_listing(root: Path) -> tuple[set[str], set[str]]:
    dirs: set[str] = set()
    files: set[str] = set()
    for current, dirnames, filenames in os.walk(root):
        current_path = Path(current)
        for name in dirnames:
            dirs.add((current_path / name).relative_to(root).as_posix())
        for name in filenames:
            files.add((current_path / name).relative_to(root).as_posix())
    return dirs, files


class FaultyFileSystem(LocalFileSystem):
    """Local filesystem that raises configured errors for (method, path name) pairs."""

    def __init__(self) -> None:
        self.failures: dict[tuple[str, str], Exception] = {}
        self.calls: list[tuple[str, str]] = []

    def fail(self, method: str, path: Path, exc: Exception) -> None:
        self.failures[(method, str(path))] = exc

    def _check(self, method: str, path: Path) -> None:
        self.calls.append((method, str(path)))
        err = self.failures.get((method, str(path)))
        if err is not None:
            raise err

    def create_directory(self, path: Path) -> None:
        self._check("create_directory", path)
        super().create_directory(path)

    def delete_directory(self, path: Path, *, recursive: bool) -> None:
        self._check("delete_directory", path)
        super().delete_directory(path, recursive=recursive)

    def copy_file(self, source: Path, destination: Path, *, overwrite: bool) -> None:
        self._check("copy_file", source)
        super().copy_file(source, destination, overwrite=overwrite)

    def delete_file(self, path: Path) -> None:
        self._check("delete_file", path)
        super().delete_file(path)

    def lstat(self, path: Path) -> os.stat_result:
        self._check("lstat", path)
        return super().lstat(path)

    def walk(self, root: Path, onerror=None):
        """Directories registered under "walk" report their error and are not listed."""
        for current, dirs, names in super().walk(root, onerror=onerror):
            err = self.failures.get(("walk", current))
            if err is None:
                yield current, dirs, names
                continue
            dirs[:] = []
            if onerror is not None:
                onerror(err)


class CorruptingFileSystem(LocalFileSystem):
    """Appends a byte to every copied file so verification fails."""

    def __init__(self, corrupt: set[str]) -> None:
        self.corrupt = corrupt

    def copy_file(self, source: Path, destination: Path, *, overwrite: bool) -> None:
        super().copy_file(source, destination, overwrite=overwrite)
        if source.name in self.corrupt:
            with open(destination, "ab") as handle:
                handle.write(b"!")


class UnreadableVerifier(ContentVerifier):
    def __init__(self, unreadable: set[str]) -> None:
        super().__init__()
        self.unreadable = unreadable

    def digest(self, path: Path) -> str:
        if path.name in self.unreadable:
            raise PermissionError(13, "Permission denied", str(path))
        return super().digest(path)


@pytest.fixture
def t1_ns() -> int:
    return int(datetime(2026, 2, 19, 0, 0, tzinfo=UTC).timestamp() * 1_000_000_000)


@pytest.fixture
def trees(tmp_path):
    source = tmp_path / "source"
    destination = tmp_path / "destination"
    source.mkdir()
    destination.mkdir()
    return source, destination


@pytest.fixture(autouse=True)
def _reset_package_logging():
    yield
    reset_logging()
