from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from blobopen.core.errors import ConfigurationError


DEFAULT_CACHE_DIRNAME = "blobs"
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True)
class Settings:
    storage_account: str | None
    storage_account_key: str | None
    container: str | None
    cache_dir: Path
    max_attempts: int
    timeout_seconds: float

    def require_remote(self) -> tuple[str, str]:
        """Return (account, container), failing when either is missing."""
        if not self.storage_account:
            raise ConfigurationError(
                "Storage account is not set. Pass --storage-account or set STORAGE_ACCOUNT."
            )
        if not self.container:
            raise ConfigurationError(
                "Container is not set. Pass --container-name or set STORAGE_CONTAINER."
            )
        return self.storage_account, self.container


def default_cache_dir() -> Path:
    # The cache sits next to the installed entry point, not the caller's cwd.
    launcher = Path(sys.argv[0] or ".").expanduser().resolve()
    base = launcher if launcher.is_dir() else launcher.parent
    return base / DEFAULT_CACHE_DIRNAME


def load_settings(
    *,
    storage_account: str | None = None,
    storage_account_key: str | None = None,
    container: str | None = None,
    cache_dir: Path | None = None,
) -> Settings:
    home_raw = os.getenv("BLOBOPEN_HOME")
    if cache_dir is not None:
        resolved_cache_dir = cache_dir.expanduser().resolve()
    elif home_raw:
        resolved_cache_dir = Path(home_raw).expanduser().resolve()
    else:
        resolved_cache_dir = default_cache_dir()

    return Settings(
        storage_account=storage_account or _read_str_env("STORAGE_ACCOUNT"),
        storage_account_key=storage_account_key or _read_str_env("STORAGE_ACCOUNT_KEY"),
        container=container or _read_str_env("STORAGE_CONTAINER"),
        cache_dir=resolved_cache_dir,
        max_attempts=_read_int_env("BLOBOPEN_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
        timeout_seconds=_read_float_env("BLOBOPEN_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
    )


def _read_str_env(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _read_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default
