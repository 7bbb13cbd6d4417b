from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from blobopen.domain.models.blob import BlobRef, ResolutionQuery


@dataclass(frozen=True, slots=True)
class Single:
    blob: BlobRef


@dataclass(frozen=True, slots=True)
class Many:
    blobs: tuple[BlobRef, ...]


@dataclass(frozen=True, slots=True)
class NotFound:
    query: ResolutionQuery


ResolutionResult = Union[Single, Many, NotFound]
