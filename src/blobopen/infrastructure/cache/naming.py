"""Filename encoding for cache entries.

A finalized cache file is named::

    <container>@<blob name>@<cache key><extension>

with each component percent-encoded so that ``/``, ``@``, ``%`` and other
reserved characters never appear raw. The extension is the encoded suffix of
the blob's basename; it is redundant with the blob name and exists so the
host's default program can be picked from the filename.
"""

from __future__ import annotations

import posixpath
from urllib.parse import quote, unquote

from blobopen.core.errors import ValidationError

SEPARATOR = "@"
MAX_FILENAME_BYTES = 255


def _q(value: str) -> str:
    encoded = quote(value, safe="")
    # Windows drops a trailing dot from filenames.
    if encoded.endswith("."):
        encoded = encoded[:-1] + "%2E"
    return encoded


def _suffix_of(blob_name: str) -> str:
    basename = blob_name.rsplit("/", 1)[-1]
    return _q(posixpath.splitext(basename)[1])


def encode_entry_name(container: str, blob_name: str, cache_key: str) -> str:
    if not container or not blob_name or not cache_key:
        raise ValidationError("Cache entry names need a container, a blob name and a cache key.")
    name = SEPARATOR.join((_q(container), _q(blob_name), _q(cache_key))) + _suffix_of(blob_name)
    if len(name.encode("utf-8")) > MAX_FILENAME_BYTES:
        raise ValidationError(
            f"Blob name {blob_name!r} is too long to cache: encoded filename exceeds {MAX_FILENAME_BYTES} bytes."
        )
    return name


def decode_entry_name(filename: str) -> tuple[str, str, str] | None:
    """Inverse of ``encode_entry_name``; ``None`` for files outside the scheme."""
    if filename.startswith("."):
        return None
    parts = filename.split(SEPARATOR)
    if len(parts) != 3 or not all(parts):
        return None

    raw_container, raw_name, raw_tail = parts
    container = unquote(raw_container)
    blob_name = unquote(raw_name)
    if _q(container) != raw_container or _q(blob_name) != raw_name:
        return None

    suffix = _suffix_of(blob_name)
    if suffix:
        if not raw_tail.endswith(suffix) or len(raw_tail) == len(suffix):
            return None
        raw_tail = raw_tail[: -len(suffix)]
    cache_key = unquote(raw_tail)
    if _q(cache_key) != raw_tail:
        return None
    return container, blob_name, cache_key
