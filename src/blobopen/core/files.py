from __future__ import annotations

import os
import uuid
from pathlib import Path

PARTIAL_SUFFIX = ".partial"


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def make_read_only(path: Path) -> None:
    current_mode = path.stat().st_mode
    # Strip write permissions for user/group/other.
    path.chmod(current_mode & ~0o222)


def new_partial_path(directory: Path) -> Path:
    """Return an unused sibling path for an in-progress write.

    Partial names start with a dot and end with ``.partial`` so a directory
    scan can tell them apart from finalized files.
    """
    return directory / f".{uuid.uuid4().hex}{PARTIAL_SUFFIX}"


def is_partial_path(path: Path) -> bool:
    return path.name.startswith(".") and path.name.endswith(PARTIAL_SUFFIX)


def publish_atomic(temp_path: Path, dst: Path) -> None:
    """Move a fully written temp file into place in a single rename."""
    ensure_directory(dst.parent)
    os.replace(temp_path, dst)


def fsync_file(handle) -> None:
    handle.flush()
    os.fsync(handle.fileno())


def remove_if_exists(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
