class BlobOpenError(Exception):
    """Base error for all user-facing blobopen exceptions."""


class ConfigurationError(BlobOpenError):
    """Raised when configuration is invalid or incomplete."""


class ValidationError(BlobOpenError):
    """Raised when model invariants fail."""


class AccessError(BlobOpenError):
    """Raised when the storage service rejects the credentials or permissions."""


class NotFoundError(BlobOpenError):
    """Raised when a container or blob does not exist."""


class TransientError(BlobOpenError):
    """Raised on network or service hiccups that may succeed when retried."""


class ConflictError(BlobOpenError):
    """Raised when a blob changed remotely between listing and fetch."""


class IntegrityError(BlobOpenError):
    """Raised when a downloaded blob does not match its reported size."""

    def __init__(self, blob_name: str, expected: int, actual: int) -> None:
        self.blob_name = blob_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Download of {blob_name} is incomplete: expected {expected} bytes, received {actual}"
        )


class OpenerError(BlobOpenError):
    """Raised when the host cannot open a downloaded file."""


class CacheError(BlobOpenError):
    """Raised when the local cache directory cannot be read or written."""
