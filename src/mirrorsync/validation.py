from __future__ import annotations

import logging
import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .config import coerce_interval

logger = logging.getLogger(__name__)


class ValidationError(ValueError):
    pass


@dataclass(frozen=True)
class UserInput:
    source: Path
    destination: Path
    interval_seconds: int
    log_file: Path


def normalize_path(value: str | Path) -> Path:
    text = str(value).strip()
    if not text:
        raise ValidationError("Whitespace/empty value used instead of a valid path")
    return Path(os.path.abspath(os.path.expanduser(text)))


def directories_are_nested(first: Path, second: Path, *, case_sensitive: bool | None = None) -> bool:
    if case_sensitive is None:
        case_sensitive = not sys.platform.startswith("win")
    left = str(first).rstrip(os.sep)
    right = str(second).rstrip(os.sep)
    if not case_sensitive:
        left, right = left.casefold(), right.casefold()
    if left == right:
        return True
    return left.startswith(right + os.sep) or right.startswith(left + os.sep)


def ensure_log_file(path: Path) -> Path:
    resolved = normalize_path(path)
    if resolved.exists() and resolved.is_dir():
        raise ValidationError(f"Log file path is a directory: {resolved}")
    try:
        resolved.parent.mkdir(parents=True, exist_ok=True)
        with open(resolved, "a", encoding="utf-8"):
            pass
    except OSError as exc:
        raise ValidationError(f"Cannot create or open log file {resolved}: {exc}") from exc
    return resolved


def _check_readable(path: Path, label: str) -> None:
    try:
        with os.scandir(path) as entries:
            next(entries, None)
    except OSError as exc:
        raise ValidationError(f"{label} directory is not readable: {path} ({exc})") from exc
    logger.info("Directory %s accessible for reading", path)


def _check_writable(path: Path) -> None:
    try:
        with tempfile.NamedTemporaryFile(dir=path, prefix=".mirrorsync-write-check-"):
            pass
    except OSError as exc:
        raise ValidationError(
            f"No permission for writing in destination directory {path} ({exc})"
        ) from exc
    logger.info("Directory %s Write/Delete permission OK", path)


def validate_inputs(
    source: str | Path,
    destination: str | Path,
    interval_seconds: int,
    log_file: str | Path,
) -> UserInput:
    source_path = normalize_path(source)
    destination_path = normalize_path(destination)

    if directories_are_nested(source_path, destination_path):
        raise ValidationError(
            f"Source and destination must not be the same or nested: "
            f"{source_path} / {destination_path}"
        )

    if not source_path.is_dir():
        raise ValidationError(f"Source directory doesn't exist or inaccessible: {source_path}")
    _check_readable(source_path, "Source")

    if not destination_path.exists():
        logger.warning("Destination directory doesn't exist, trying to create one")
        try:
            destination_path.mkdir(parents=True)
        except OSError as exc:
            raise ValidationError(
                f"Cannot create destination directory {destination_path}: {exc}"
            ) from exc
    if not destination_path.is_dir():
        raise ValidationError(
            f"Destination directory doesn't exist or inaccessible: {destination_path}"
        )
    _check_readable(destination_path, "Destination")
    _check_writable(destination_path)

    return UserInput(
        source=source_path,
        destination=destination_path,
        interval_seconds=coerce_interval(interval_seconds),
        log_file=ensure_log_file(log_file),
    )
