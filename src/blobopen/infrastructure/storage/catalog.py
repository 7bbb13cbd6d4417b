"""Read-only catalog abstraction over a blob container."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator

from blobopen.domain.models.blob import BlobRef


class BlobDownload(ABC):
    """An open read stream for one blob version.

    ``blob`` is the version the service actually returned, re-validated
    against the one the caller asked for.
    """

    blob: BlobRef

    @abstractmethod
    def chunks(self) -> Iterator[bytes]:
        """Yield the blob content in order."""

    def close(self) -> None:
        return None

    def __enter__(self) -> BlobDownload:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class RemoteCatalog(ABC):
    """Minimal read-only interface to one container of an object store."""

    @property
    @abstractmethod
    def container(self) -> str:
        """Name of the container this catalog reads."""

    @abstractmethod
    def list_blobs(self, prefix: str) -> Iterator[BlobRef]:
        """Lazily list every blob whose name starts with *prefix*.

        Order is whatever the service returns. Each call starts a new listing.
        """

    @abstractmethod
    def fetch(self, blob: BlobRef) -> BlobDownload:
        """Open a read stream for *blob*.

        Raises ``ConflictError`` when the remote version no longer matches
        ``blob.etag``.
        """
