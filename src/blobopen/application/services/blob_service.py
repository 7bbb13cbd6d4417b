from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from blobopen.core.errors import ConflictError, NotFoundError, TransientError, ValidationError
from blobopen.core.resolution import resolve
from blobopen.domain.models.blob import BlobRef, ResolutionQuery
from blobopen.domain.models.cache import CacheEntry
from blobopen.domain.models.resolution import Many, NotFound, ResolutionResult, Single
from blobopen.infrastructure.cache.store import CacheStore, ProgressCallback
from blobopen.infrastructure.storage.catalog import RemoteCatalog

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class MaterializedBlob:
    blob: BlobRef
    entry: CacheEntry

    @property
    def mime_hint(self) -> str | None:
        return self.blob.content_type


class BlobService:
    def __init__(
        self,
        catalog: RemoteCatalog,
        cache: CacheStore,
        *,
        max_attempts: int = 3,
        retry_delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1.")
        self.catalog = catalog
        self.cache = cache
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds
        self._sleep = sleep

    def list_blobs(self, prefix: str) -> list[BlobRef]:
        return self._with_retries(lambda: list(self.catalog.list_blobs(prefix)), f"listing {prefix!r}")

    def resolve(self, query: ResolutionQuery) -> ResolutionResult:
        return resolve(self.list_blobs(query.prefix), query)

    def materialize(self, blob: BlobRef, *, on_progress: ProgressCallback | None = None) -> CacheEntry:
        """Return a finalized local copy of *blob*, downloading it if needed.

        A blob that changes mid-download is re-resolved by name once; a second
        change is reported as ``ConflictError``.
        """
        return self._materialize(blob, on_progress).entry

    def open_query(
        self,
        query: ResolutionQuery,
        *,
        on_progress: ProgressCallback | None = None,
        on_selected: Callable[[BlobRef], None] | None = None,
    ) -> MaterializedBlob:
        if query.list_mode:
            raise ValidationError("List mode selects several blobs; nothing to open.")
        result = self.resolve(query)
        if isinstance(result, NotFound):
            raise NotFoundError(_describe_not_found(query, self.catalog.container))
        if isinstance(result, Many):
            raise ValidationError("Query resolved to several blobs; nothing to open.")
        assert isinstance(result, Single)
        logger.info("Selected %s (modified %s)", result.blob.name, result.blob.last_modified.isoformat())
        if on_selected is not None:
            on_selected(result.blob)
        return self._materialize(result.blob, on_progress)

    def _materialize(self, blob: BlobRef, on_progress: ProgressCallback | None) -> MaterializedBlob:
        # The returned blob is the version that was actually downloaded.
        try:
            return MaterializedBlob(blob=blob, entry=self._fetch(blob, on_progress))
        except ConflictError:
            logger.warning("%s changed remotely during download; re-resolving", blob.name)
            refreshed = self._refresh(blob)
            return MaterializedBlob(blob=refreshed, entry=self._fetch(refreshed, on_progress))

    def enumerate_cache_entries(self) -> list[CacheEntry]:
        return self.cache.entries()

    def _fetch(self, blob: BlobRef, on_progress: ProgressCallback | None) -> CacheEntry:
        return self._with_retries(
            lambda: self.cache.get_or_fetch(blob, self.catalog, on_progress=on_progress),
            f"downloading {blob.name}",
        )

    def _refresh(self, blob: BlobRef) -> BlobRef:
        for candidate in self.list_blobs(blob.name):
            if candidate.name == blob.name:
                return candidate
        raise NotFoundError(f"Blob {blob.name!r} no longer exists in container {blob.container!r}.")

    def _with_retries(self, action: Callable[[], T], description: str) -> T:
        attempt = 1
        while True:
            try:
                return action()
            except TransientError as exc:
                if attempt >= self.max_attempts:
                    raise
                delay = self.retry_delay_seconds * attempt
                logger.warning(
                    "Attempt %d/%d %s failed: %s; retrying in %.1fs",
                    attempt,
                    self.max_attempts,
                    description,
                    exc,
                    delay,
                )
                self._sleep(delay)
                attempt += 1


def _describe_not_found(query: ResolutionQuery, container: str) -> str:
    if query.exact_name is not None:
        return f"No blob named {query.exact_name!r} under prefix {query.prefix!r} in container {container!r}."
    return f"No blobs match prefix {query.prefix!r} in container {container!r}."
