from __future__ import annotations

import os
import shutil
import stat
from collections.abc import Callable, Iterator
from pathlib import Path, PurePosixPath

type WalkEntry = tuple[str, list[str], list[str]]


def _make_writable(path: str | os.PathLike[str]) -> None:
    mode = stat.S_IMODE(os.lstat(path).st_mode)
    os.chmod(path, mode | stat.S_IWUSR | stat.S_IRUSR)


def _retry_after_chmod(
    func: Callable[..., object], path: str, exc: BaseException
) -> None:
    if not isinstance(exc, PermissionError):
        raise exc
    _make_writable(path)
    parent = os.path.dirname(path)
    if parent:
        _make_writable(parent)
    func(path)


class LocalFileSystem:
    """Filesystem operations the reconciliation engine relies on."""

    def directory_exists(self, path: Path) -> bool:
        return path.is_dir() and not path.is_symlink()

    def create_directory(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def delete_directory(self, path: Path, *, recursive: bool) -> None:
        if not recursive:
            path.rmdir()
            return
        shutil.rmtree(path, onexc=_retry_after_chmod)

    def file_exists(self, path: Path) -> bool:
        return path.is_file() and not path.is_symlink()

    def exists(self, path: Path) -> bool:
        return os.path.lexists(path)

    def is_symlink(self, path: Path) -> bool:
        return path.is_symlink()

    def copy_file(self, source: Path, destination: Path, *, overwrite: bool) -> None:
        if destination.exists() or destination.is_symlink():
            if not overwrite:
                raise FileExistsError(f"Destination already exists: {destination}")
            if not destination.is_symlink() and not self.get_mode(destination) & stat.S_IWUSR:
                self.clear_readonly(destination)
        shutil.copyfile(source, destination)

    def delete_file(self, path: Path) -> None:
        path.unlink()

    def lstat(self, path: Path) -> os.stat_result:
        return path.lstat()

    def get_mtime_ns(self, path: Path) -> int:
        return path.stat().st_mtime_ns

    def set_mtime_ns(self, path: Path, mtime_ns: int) -> None:
        st = path.stat()
        os.utime(path, ns=(st.st_atime_ns, mtime_ns))

    def get_mode(self, path: Path) -> int:
        return stat.S_IMODE(path.lstat().st_mode)

    def clear_readonly(self, path: Path) -> None:
        _make_writable(path)

    def list_directory(self, path: Path) -> list[str]:
        with os.scandir(path) as entries:
            return [entry.name for entry in entries]

    def walk(
        self, root: Path, onerror: Callable[[OSError], None] | None = None
    ) -> Iterator[WalkEntry]:
        yield from os.walk(root, topdown=True, onerror=onerror, followlinks=False)

    def combine(self, root: Path, relpath: str) -> Path:
        return root.joinpath(*PurePosixPath(relpath).parts)

    def relative_to(self, root: Path, path: Path) -> str:
        return path.relative_to(root).as_posix()
