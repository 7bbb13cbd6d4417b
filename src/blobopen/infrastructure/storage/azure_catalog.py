"""Azure Blob Storage catalog."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import timezone
from typing import Any

from azure.core import MatchConditions
from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    HttpResponseError,
    ResourceModifiedError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.storage.blob import ContainerClient

from blobopen.core.errors import (
    AccessError,
    BlobOpenError,
    ConflictError,
    NotFoundError,
    TransientError,
)
from blobopen.domain.models.blob import BlobRef
from blobopen.infrastructure.storage.auth import StorageAuth, account_url_for
from blobopen.infrastructure.storage.catalog import BlobDownload, RemoteCatalog

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {408, 429, 500, 502, 503, 504}


def translate_storage_error(exc: AzureError, *, container: str, blob_name: str | None = None) -> BlobOpenError:
    """Map an Azure SDK exception onto the blobopen error taxonomy."""
    target = f"{container}/{blob_name}" if blob_name else container
    detail = _detail(exc)

    if isinstance(exc, ResourceModifiedError):
        return ConflictError(f"Blob {target} changed while it was being fetched.")
    if isinstance(exc, ClientAuthenticationError):
        return AccessError(f"Authentication failed for {target}: {detail}")
    if isinstance(exc, ResourceNotFoundError):
        return _not_found(exc, container=container, blob_name=blob_name)
    if isinstance(exc, HttpResponseError):
        status = exc.status_code or 0
        if status in (401, 403):
            return AccessError(f"Access denied to {target}: {detail}")
        if status == 404:
            return _not_found(exc, container=container, blob_name=blob_name)
        if status == 412:
            return ConflictError(f"Blob {target} changed while it was being fetched.")
        if status in _RETRYABLE_STATUS or status >= 500:
            return TransientError(f"Storage service error ({status}) for {target}: {detail}")
        if status:
            return BlobOpenError(f"Storage request for {target} failed ({status}): {detail}")
    if isinstance(exc, (ServiceRequestError, ServiceResponseError)):
        return TransientError(f"Network error talking to storage for {target}: {detail}")
    return TransientError(f"Storage error for {target}: {detail}")


def _detail(exc: AzureError) -> str:
    text = str(getattr(exc, "message", None) or exc).strip()
    return text.splitlines()[0] if text else type(exc).__name__


def _not_found(exc: AzureError, *, container: str, blob_name: str | None) -> NotFoundError:
    error_code = str(getattr(exc, "error_code", "") or "")
    if blob_name is None or error_code == "ContainerNotFound":
        return NotFoundError(f"Container {container!r} does not exist.")
    return NotFoundError(f"Blob {blob_name!r} does not exist in container {container!r}.")


def _normalize_etag(etag: str | None) -> str | None:
    if not etag:
        return None
    return etag.strip('"') or None


def blob_ref_from_properties(container: str, props: Any, *, name: str | None = None) -> BlobRef:
    last_modified = props.last_modified
    if last_modified.tzinfo is None:
        last_modified = last_modified.replace(tzinfo=timezone.utc)
    content_settings = getattr(props, "content_settings", None)
    return BlobRef(
        container=container,
        name=name or props.name,
        last_modified=last_modified,
        etag=_normalize_etag(props.etag),
        size=int(props.size or 0),
        content_type=getattr(content_settings, "content_type", None) or None,
    )


class AzureBlobDownload(BlobDownload):
    def __init__(self, blob: BlobRef, downloader: Any) -> None:
        self.blob = blob
        self._downloader = downloader

    def chunks(self) -> Iterator[bytes]:
        try:
            yield from self._downloader.chunks()
        except AzureError as exc:
            raise translate_storage_error(exc, container=self.blob.container, blob_name=self.blob.name) from exc


class AzureBlobCatalog(RemoteCatalog):
    """Read-only Azure Blob container catalog."""

    def __init__(
        self,
        storage_account: str,
        container_name: str,
        auth: StorageAuth,
        *,
        timeout_seconds: float = 60.0,
        client: ContainerClient | None = None,
    ) -> None:
        self._container_name = container_name
        if client is None:
            client = ContainerClient(
                account_url_for(storage_account),
                container_name=container_name,
                credential=auth.credential(),
                connection_timeout=timeout_seconds,
                read_timeout=timeout_seconds,
            )
        self._client = client
        logger.debug(
            "Using container %s on account %s with %s", container_name, storage_account, auth.description
        )

    @property
    def container(self) -> str:
        return self._container_name

    def list_blobs(self, prefix: str) -> Iterator[BlobRef]:
        try:
            for props in self._client.list_blobs(name_starts_with=prefix or None):
                # Hierarchical-namespace accounts report directories as empty "name/" blobs.
                if props.name.endswith("/") and not props.size:
                    continue
                yield blob_ref_from_properties(self._container_name, props)
        except AzureError as exc:
            raise translate_storage_error(exc, container=self._container_name) from exc

    def fetch(self, blob: BlobRef) -> AzureBlobDownload:
        kwargs: dict[str, Any] = {}
        if blob.etag:
            kwargs["etag"] = f'"{blob.etag}"'
            kwargs["match_condition"] = MatchConditions.IfNotModified
        try:
            downloader = self._client.download_blob(blob.name, **kwargs)
        except AzureError as exc:
            raise translate_storage_error(exc, container=self._container_name, blob_name=blob.name) from exc

        current = blob_ref_from_properties(self._container_name, downloader.properties, name=blob.name)
        if _has_changed(blob, current):
            raise ConflictError(f"Blob {self._container_name}/{blob.name} changed since it was listed.")
        logger.debug("Opened download stream for %s (%d bytes)", blob.name, current.size)
        return AzureBlobDownload(current, downloader)


def _has_changed(expected: BlobRef, current: BlobRef) -> bool:
    if expected.etag and current.etag:
        return expected.etag != current.etag
    return expected.last_modified != current.last_modified or expected.size != current.size
