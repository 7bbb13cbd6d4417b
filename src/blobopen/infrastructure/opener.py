from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path

from blobopen.core.errors import OpenerError

logger = logging.getLogger(__name__)


def open_path(path: Path, mime_hint: str | None = None) -> None:
    """Hand a downloaded file to the host's default program."""
    if not path.is_file():
        raise OpenerError(f"Cannot open {path}: file does not exist.")
    logger.info("Opening %s (%s)", path, mime_hint or "unknown type")

    if sys.platform == "win32":
        try:
            os.startfile(path)  # type: ignore[attr-defined]
        except OSError as exc:
            raise OpenerError(f"Unable to open {path}: {exc}") from exc
        return

    cmd = ["open", str(path)] if sys.platform == "darwin" else ["xdg-open", str(path)]
    try:
        result = _run(cmd, check=False)
    except FileNotFoundError as exc:
        raise OpenerError(f"Unable to open {path}: '{cmd[0]}' is not available on this system.") from exc
    if result.returncode != 0:
        details = (result.stderr or result.stdout or "").strip()
        raise OpenerError(f"Unable to open {path} with {cmd[0]}. {details}".strip())


def _run(cmd: list[str], *, check: bool) -> subprocess.CompletedProcess[str]:
    return subprocess.run(cmd, check=check, text=True, capture_output=True)
