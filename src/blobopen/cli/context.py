from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console

from blobopen.application.services.blob_service import BlobService
from blobopen.core.config import Settings
from blobopen.infrastructure.cache.store import CacheStore
from blobopen.infrastructure.storage.auth import select_auth
from blobopen.infrastructure.storage.azure_catalog import AzureBlobCatalog


@dataclass(slots=True)
class CLIContext:
    settings: Settings
    console: Console

    def cache_store(self) -> CacheStore:
        return CacheStore(self.settings.cache_dir)

    def blob_service(self) -> BlobService:
        account, container = self.settings.require_remote()
        catalog = AzureBlobCatalog(
            account,
            container,
            select_auth(account, self.settings.storage_account_key),
            timeout_seconds=self.settings.timeout_seconds,
        )
        return BlobService(catalog, self.cache_store(), max_attempts=self.settings.max_attempts)
