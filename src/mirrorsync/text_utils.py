from __future__ import annotations

import unicodedata
from pathlib import PurePath, PurePosixPath


def normalize_text(value: str) -> str:
    """Return UTF-8 safe text by collapsing surrogate-escaped bytes.

    Filesystem paths may contain undecodable bytes represented as lone surrogates.
    Log sinks and terminal rendering reject those, so normalize them to replacement
    characters while keeping valid UTF-8 data untouched.
    Also canonicalize to NFC so macOS/Linux path forms match for unicode names.
    """
    safe = value.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
    return unicodedata.normalize("NFC", safe)


def to_relpath(path: PurePath | str) -> str:
    text = path.as_posix() if isinstance(path, PurePath) else str(path)
    text = text.replace("\\", "/").strip("/")
    if text in {"", "."}:
        return ""
    return PurePosixPath(text).as_posix()


def path_key(relpath: str, *, case_sensitive: bool) -> str:
    """Comparison key for a relative path: NFC always, case-folded when insensitive."""
    key = normalize_text(to_relpath(relpath))
    if case_sensitive:
        return key
    return key.casefold()
