from __future__ import annotations

import logging
import time
from collections import defaultdict
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from blobopen.core.errors import CacheError, IntegrityError, ValidationError
from blobopen.core.files import (
    ensure_directory,
    fsync_file,
    is_partial_path,
    make_read_only,
    new_partial_path,
    publish_atomic,
    remove_if_exists,
)
from blobopen.domain.models.blob import BlobRef
from blobopen.domain.models.cache import CacheEntry
from blobopen.infrastructure.cache.naming import decode_entry_name, encode_entry_name
from blobopen.infrastructure.storage.catalog import RemoteCatalog

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def cache_key_for(blob: BlobRef) -> str:
    """Version identifier for a blob: its etag, else last-modified plus size."""
    if blob.etag:
        return blob.etag
    micros = int(blob.last_modified.timestamp() * 1_000_000)
    return f"lm{micros}-s{blob.size}"


@contextmanager
def _cache_io(action: str, path: Path) -> Iterator[None]:
    try:
        yield
    except OSError as exc:
        raise CacheError(f"Cannot {action} {path}: {exc.strerror or exc}") from exc


@dataclass(slots=True)
class PruneReport:
    removed: list[CacheEntry]
    kept: int
    bytes_freed: int
    dry_run: bool


class CacheStore:
    """Flat directory of downloaded blob versions.

    Each finalized file is named from (container, blob name, cache key), so
    the directory listing alone describes the cache. Downloads land in a
    hidden ``.partial`` sibling and are renamed into place once complete.
    Filesystem failures surface as ``CacheError``.
    """

    def __init__(self, base_dir: Path, *, chunk_size: int = 4 * 1024 * 1024) -> None:
        self.base_dir = base_dir
        self.chunk_size = chunk_size

    def ensure_layout(self) -> None:
        with _cache_io("create cache directory", self.base_dir):
            ensure_directory(self.base_dir)

    def path_for(self, blob: BlobRef) -> Path:
        return self.base_dir / encode_entry_name(blob.container, blob.name, cache_key_for(blob))

    def lookup(self, blob: BlobRef) -> CacheEntry | None:
        path = self.path_for(blob)
        with _cache_io("read cached file", path):
            try:
                size = path.stat().st_size
            except (FileNotFoundError, NotADirectoryError):
                return None
        if size != blob.size:
            logger.warning("Ignoring cached %s: size %d does not match %d", path.name, size, blob.size)
            return None
        return CacheEntry(
            container=blob.container,
            blob_name=blob.name,
            cache_key=cache_key_for(blob),
            local_path=path,
            size_bytes=size,
        )

    def get_or_fetch(
        self,
        blob: BlobRef,
        catalog: RemoteCatalog,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> CacheEntry:
        existing = self.lookup(blob)
        if existing is not None:
            logger.info("Reusing cached copy of %s", blob.name)
            return existing

        self.ensure_layout()
        temp_path = new_partial_path(self.base_dir)
        try:
            with _cache_io("write download to", temp_path):
                with catalog.fetch(blob) as download:
                    fetched = download.blob
                    received = 0
                    with temp_path.open("wb") as handle:
                        for chunk in download.chunks():
                            handle.write(chunk)
                            received += len(chunk)
                            if on_progress is not None:
                                on_progress(received, fetched.size)
                        fsync_file(handle)
            if received != fetched.size:
                raise IntegrityError(fetched.name, fetched.size, received)
            return self._finalize(temp_path, fetched)
        except BaseException:
            # Covers KeyboardInterrupt too: a partial file never survives the call.
            remove_if_exists(temp_path)
            raise

    def _finalize(self, temp_path: Path, blob: BlobRef) -> CacheEntry:
        final_path = self.path_for(blob)
        existing = self.lookup(blob)
        if existing is not None:
            # Another invocation finished the same version first.
            remove_if_exists(temp_path)
            return existing
        with _cache_io("finalize", final_path):
            make_read_only(temp_path)
            publish_atomic(temp_path, final_path)
        logger.info("Cached %s as %s", blob.name, final_path.name)
        return CacheEntry(
            container=blob.container,
            blob_name=blob.name,
            cache_key=cache_key_for(blob),
            local_path=final_path,
            size_bytes=blob.size,
        )

    def entries(self) -> list[CacheEntry]:
        if not self.base_dir.is_dir():
            return []
        found: list[CacheEntry] = []
        with _cache_io("list cache directory", self.base_dir):
            for path in self.base_dir.iterdir():
                decoded = decode_entry_name(path.name)
                if decoded is None or not path.is_file():
                    continue
                container, blob_name, cache_key = decoded
                found.append(
                    CacheEntry(
                        container=container,
                        blob_name=blob_name,
                        cache_key=cache_key,
                        local_path=path,
                        size_bytes=path.stat().st_size,
                    )
                )
        return sorted(found, key=lambda e: (e.container, e.blob_name, e.cache_key))

    def remove(self, entry: CacheEntry) -> bool:
        path = entry.local_path
        if path.parent != self.base_dir or decode_entry_name(path.name) is None:
            raise ValidationError(f"{path} is not an entry of cache {self.base_dir}")
        with _cache_io("remove", path):
            if path.exists():
                # Finalized files are read-only; Windows refuses to unlink them otherwise.
                path.chmod(path.stat().st_mode | 0o200)
            return remove_if_exists(path)

    def partial_files(self) -> list[Path]:
        if not self.base_dir.is_dir():
            return []
        with _cache_io("list cache directory", self.base_dir):
            return sorted(p for p in self.base_dir.iterdir() if is_partial_path(p))

    def sweep_partials(self, *, older_than_seconds: float = 3600.0, dry_run: bool = False) -> list[Path]:
        """Delete orphaned downloads left behind by killed processes.

        Recent partial files may belong to a download still in progress and are left alone.
        """
        cutoff = time.time() - older_than_seconds
        swept: list[Path] = []
        for path in self.partial_files():
            try:
                if path.stat().st_mtime > cutoff:
                    continue
            except FileNotFoundError:
                continue
            if not dry_run:
                with _cache_io("remove", path):
                    remove_if_exists(path)
            swept.append(path)
        return swept

    def prune(self, *, keep_latest: int = 1, dry_run: bool = False) -> PruneReport:
        """Keep only the ``keep_latest`` most recently written versions of each blob."""
        if keep_latest < 0:
            raise ValidationError("keep_latest must be >= 0.")

        groups: dict[tuple[str, str], list[CacheEntry]] = defaultdict(list)
        for entry in self.entries():
            groups[(entry.container, entry.blob_name)].append(entry)

        removed: list[CacheEntry] = []
        kept = 0
        with _cache_io("inspect", self.base_dir):
            for versions in groups.values():
                ordered = sorted(
                    versions,
                    key=lambda e: (e.local_path.stat().st_mtime, e.cache_key),
                    reverse=True,
                )
                kept += len(ordered[:keep_latest])
                removed.extend(ordered[keep_latest:])

        if not dry_run:
            for entry in removed:
                self.remove(entry)

        return PruneReport(
            removed=removed,
            kept=kept,
            bytes_freed=sum(e.size_bytes for e in removed),
            dry_run=dry_run,
        )
