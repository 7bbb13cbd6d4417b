from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from blobopen.core.errors import ValidationError


@dataclass(frozen=True, slots=True)
class BlobRef:
    """One version of a remote blob as reported by a listing or a fetch."""

    container: str
    name: str
    last_modified: datetime
    etag: str | None
    size: int
    content_type: str | None = None

    def __post_init__(self) -> None:
        if not self.container:
            raise ValidationError("BlobRef requires a container name.")
        if not self.name:
            raise ValidationError("BlobRef requires a blob name.")
        if self.size < 0:
            raise ValidationError(f"BlobRef size must be >= 0, got {self.size} for {self.name}.")
        if self.last_modified.tzinfo is None:
            raise ValidationError(f"BlobRef last_modified must be timezone-aware for {self.name}.")

    @property
    def basename(self) -> str:
        return self.name.rsplit("/", 1)[-1]


@dataclass(frozen=True, slots=True)
class ResolutionQuery:
    prefix: str
    exact_name: str | None = None
    list_mode: bool = False

    def __post_init__(self) -> None:
        if self.exact_name is not None and self.list_mode:
            raise ValidationError("An exact blob name cannot be combined with list mode.")
        if self.exact_name is not None and not self.exact_name.strip("/"):
            raise ValidationError("Exact blob name must not be empty.")
