from __future__ import annotations

import hashlib
from pathlib import Path

from .config import HASH_CHUNK_SIZE


class IOUnavailable(OSError):
    """A file could not be opened or read for hashing."""


class CopyVerificationError(OSError):
    pass


class ContentVerifier:
    """MD5 change detection for copied and compared files."""

    def __init__(self, chunk_size: int = HASH_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size

    def digest(self, path: Path) -> str:
        h = hashlib.md5(usedforsecurity=False)
        try:
            with open(path, "rb", buffering=0) as handle:
                while True:
                    chunk = handle.read(self.chunk_size)
                    if not chunk:
                        break
                    h.update(chunk)
        except OSError as exc:
            raise IOUnavailable(f"Cannot read {path}: {exc}") from exc
        return h.hexdigest().upper()

    def equal(self, path_a: Path, path_b: Path) -> bool:
        return self.digest(path_a).casefold() == self.digest(path_b).casefold()

    def validate_copy(self, source: Path, destination: Path, relpath: str) -> None:
        if not self.equal(source, destination):
            raise CopyVerificationError(f"MD5 mismatch after copy: {relpath}")
