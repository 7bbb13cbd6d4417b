from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from azure.core import MatchConditions
from azure.core.exceptions import (
    ClientAuthenticationError,
    HttpResponseError,
    ResourceModifiedError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)

from blobopen.core.errors import (
    AccessError,
    BlobOpenError,
    ConflictError,
    NotFoundError,
    TransientError,
)
from blobopen.infrastructure.storage.auth import AccountKeyAuth
from blobopen.infrastructure.storage.azure_catalog import AzureBlobCatalog, translate_storage_error

from fakes import make_blob

MODIFIED = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _props(name: str, *, etag: str | None = '"0x1"', size: int = 3, content_type: str | None = "text/plain"):
    return SimpleNamespace(
        name=name,
        last_modified=MODIFIED,
        etag=etag,
        size=size,
        content_settings=SimpleNamespace(content_type=content_type),
    )


class FakeContainerClient:
    def __init__(self, *, items=(), downloader=None, error: Exception | None = None) -> None:
        self.items = list(items)
        self.downloader = downloader
        self.error = error
        self.list_kwargs: list[dict] = []
        self.download_calls: list[tuple[str, dict]] = []

    def list_blobs(self, **kwargs):
        self.list_kwargs.append(kwargs)
        if self.error is not None:
            raise self.error
        return iter(self.items)

    def download_blob(self, blob: str, **kwargs):
        self.download_calls.append((blob, kwargs))
        if self.error is not None:
            raise self.error
        return self.downloader


def _catalog(client: FakeContainerClient) -> AzureBlobCatalog:
    return AzureBlobCatalog("acct", "reports", AccountKeyAuth("acct", "secret"), client=client)


def _http_error(status: int, cls=HttpResponseError):
    exc = cls(message=f"status {status}")
    exc.status_code = status
    return exc


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (ClientAuthenticationError(message="token expired"), AccessError),
        (_http_error(401), AccessError),
        (_http_error(403), AccessError),
        (_http_error(404), NotFoundError),
        (_http_error(412), ConflictError),
        (ResourceModifiedError(message="condition not met"), ConflictError),
        (_http_error(408), TransientError),
        (_http_error(429), TransientError),
        (_http_error(500), TransientError),
        (_http_error(503), TransientError),
        (ServiceRequestError("connection timed out"), TransientError),
        (ServiceResponseError("connection reset"), TransientError),
    ],
)
def test_translate_storage_error_maps_taxonomy(exc: Exception, expected: type[Exception]) -> None:
    assert isinstance(translate_storage_error(exc, container="reports", blob_name="a.txt"), expected)


def test_translate_storage_error_keeps_other_client_errors_fatal() -> None:
    translated = translate_storage_error(_http_error(400), container="reports")
    assert type(translated) is BlobOpenError
    assert "400" in str(translated)


def test_translate_not_found_distinguishes_container_and_blob() -> None:
    missing_container = ResourceNotFoundError(message="gone")
    missing_container.error_code = "ContainerNotFound"
    missing_blob = ResourceNotFoundError(message="gone")
    missing_blob.error_code = "BlobNotFound"

    assert "Container 'reports'" in str(
        translate_storage_error(missing_container, container="reports", blob_name="a.txt")
    )
    assert "Blob 'a.txt'" in str(translate_storage_error(missing_blob, container="reports", blob_name="a.txt"))
    assert "Container 'reports'" in str(translate_storage_error(missing_blob, container="reports"))


def test_list_blobs_normalizes_properties_and_skips_directory_markers() -> None:
    client = FakeContainerClient(
        items=[
            _props("daily/", etag='"0x0"', size=0),
            _props("daily/a.txt", etag='"0x8DC"'),
            _props("daily/b.bin", etag=None, size=7, content_type=None),
        ]
    )
    blobs = list(_catalog(client).list_blobs("daily/"))

    assert client.list_kwargs == [{"name_starts_with": "daily/"}]
    assert [b.name for b in blobs] == ["daily/a.txt", "daily/b.bin"]
    assert blobs[0].etag == "0x8DC"
    assert blobs[0].content_type == "text/plain"
    assert blobs[0].container == "reports"
    assert blobs[1].etag is None
    assert blobs[1].content_type is None


def test_list_blobs_is_lazy_and_translates_errors() -> None:
    error = ResourceNotFoundError(message="The specified container does not exist.")
    client = FakeContainerClient(error=error)
    listing = _catalog(client).list_blobs("")

    assert client.list_kwargs == []
    with pytest.raises(NotFoundError, match="Container 'reports' does not exist"):
        list(listing)
    assert client.list_kwargs == [{"name_starts_with": None}]


def test_fetch_is_conditional_on_the_listed_etag() -> None:
    downloader = SimpleNamespace(properties=_props("a.txt", etag='"0x1"'), chunks=lambda: iter([b"ab", b"c"]))
    client = FakeContainerClient(downloader=downloader)
    blob = make_blob("a.txt", etag="0x1", size=3, minutes=0)

    with _catalog(client).fetch(blob) as download:
        data = b"".join(download.chunks())

    assert data == b"abc"
    assert download.blob.etag == "0x1"
    assert download.blob.content_type == "text/plain"
    assert client.download_calls == [
        ("a.txt", {"etag": '"0x1"', "match_condition": MatchConditions.IfNotModified})
    ]


def test_fetch_detects_changed_blob_without_etag() -> None:
    downloader = SimpleNamespace(properties=_props("a.txt", etag=None, size=9), chunks=lambda: iter([]))
    client = FakeContainerClient(downloader=downloader)

    with pytest.raises(ConflictError):
        _catalog(client).fetch(make_blob("a.txt", size=3))
    assert client.download_calls == [("a.txt", {})]


def test_fetch_translates_precondition_failure() -> None:
    client = FakeContainerClient(error=ResourceModifiedError(message="ConditionNotMet"))
    with pytest.raises(ConflictError):
        _catalog(client).fetch(make_blob("a.txt", etag="0x1", size=3))


def test_stream_errors_are_translated() -> None:
    def broken_chunks():
        yield b"ab"
        raise ServiceResponseError("connection reset")

    downloader = SimpleNamespace(properties=_props("a.txt"), chunks=broken_chunks)
    download = _catalog(FakeContainerClient(downloader=downloader)).fetch(make_blob("a.txt", etag="0x1", size=3))

    with pytest.raises(TransientError):
        list(download.chunks())
