from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from azure.core.credentials import AzureNamedKeyCredential


def account_url_for(storage_account: str) -> str:
    return f"https://{storage_account}.blob.core.windows.net"


class StorageAuth(ABC):
    """Selects how the storage client authenticates."""

    @abstractmethod
    def credential(self) -> Any:
        """Return a credential object accepted by the Azure storage clients."""

    @property
    @abstractmethod
    def description(self) -> str:
        ...


class AmbientTokenAuth(StorageAuth):
    """Token auth from the ambient identity (CLI login, managed identity, env vars)."""

    def __init__(self, *, exclude_interactive_browser: bool = True) -> None:
        self.exclude_interactive_browser = exclude_interactive_browser

    def credential(self) -> Any:
        from azure.identity import DefaultAzureCredential

        return DefaultAzureCredential(
            exclude_interactive_browser_credential=self.exclude_interactive_browser
        )

    @property
    def description(self) -> str:
        return "ambient identity token"


class AccountKeyAuth(StorageAuth):
    """Shared-key auth with an explicit storage account key."""

    def __init__(self, storage_account: str, account_key: str) -> None:
        self.storage_account = storage_account
        self.account_key = account_key

    def credential(self) -> Any:
        return AzureNamedKeyCredential(self.storage_account, self.account_key)

    @property
    def description(self) -> str:
        return "storage account key"

    def __repr__(self) -> str:
        return f"AccountKeyAuth(storage_account={self.storage_account!r}, account_key='***')"


def select_auth(storage_account: str, account_key: str | None) -> StorageAuth:
    if account_key:
        return AccountKeyAuth(storage_account, account_key)
    return AmbientTokenAuth()
