from __future__ import annotations

from collections.abc import Iterable

from blobopen.domain.models.blob import BlobRef, ResolutionQuery
from blobopen.domain.models.resolution import Many, NotFound, ResolutionResult, Single


def join_blob_name(prefix: str, exact_name: str) -> str:
    """Join a listing prefix and a relative name with a single ``/``."""
    head = prefix.rstrip("/")
    tail = exact_name.lstrip("/")
    if not head:
        return tail
    return f"{head}/{tail}"


def _latest_key(blob: BlobRef) -> tuple:
    return (blob.last_modified, blob.name)


def resolve(listing: Iterable[BlobRef], query: ResolutionQuery) -> ResolutionResult:
    """Pick the blob(s) a query refers to.

    - exact name: the blob whose name equals ``join_blob_name(prefix, exact_name)``
    - list mode: every blob, sorted by name
    - otherwise: the newest blob, ties going to the greatest name

    The outcome depends only on the listing's contents, never on its order.
    An empty selection is returned as ``NotFound`` rather than raised.
    """
    if query.exact_name is not None:
        target = join_blob_name(query.prefix, query.exact_name)
        for blob in listing:
            if blob.name == target:
                return Single(blob)
        return NotFound(query)

    blobs = list(listing)
    if not blobs:
        return NotFound(query)

    if query.list_mode:
        return Many(tuple(sorted(blobs, key=lambda blob: (blob.name, blob.last_modified))))

    return Single(max(blobs, key=_latest_key))
