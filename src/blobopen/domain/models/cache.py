from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class CacheEntry:
    container: str
    blob_name: str
    cache_key: str
    local_path: Path
    size_bytes: int
