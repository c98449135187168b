"""Result types: WriteResult, ReadResult, ListResult, etc.

Every storage operation reports through one of these.  ``success=False``
covers both "not found / wrong type / expired" and failed statements;
``message`` says which.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime
    from typing import BinaryIO


@dataclass
class FileMetadata:
    """Normalized metadata for a file or directory entry.

    ``path_id`` is ``None`` only for directories synthesized by a
    recursive listing.  ``mimetype``, ``size``, ``visibility`` and
    ``expiry`` are populated for files only.
    """

    path: str
    type: str
    path_id: int | None = None
    timestamp: datetime | None = None
    mimetype: str | None = None
    size: int | None = None
    visibility: str | None = None
    expiry: datetime | None = None
    meta: dict[str, Any] | None = None

    @property
    def is_directory(self) -> bool:
        return self.type == "dir"


@dataclass
class WriteResult:
    """Result of a write, update, copy or create_dir operation."""

    success: bool
    message: str
    metadata: FileMetadata | None = None


@dataclass
class ReadResult:
    """Result of a whole-buffer read."""

    success: bool
    message: str
    metadata: FileMetadata | None = None
    content: bytes | None = None


@dataclass
class ReadStreamResult:
    """Result of a streaming read. The caller must close ``stream``."""

    success: bool
    message: str
    metadata: FileMetadata | None = None
    stream: BinaryIO | None = None


@dataclass
class MetadataResult:
    """Result of a metadata lookup or visibility change."""

    success: bool
    message: str
    metadata: FileMetadata | None = None


@dataclass
class AttributeResult:
    """Result of a single-attribute lookup (size, mimetype, ...)."""

    success: bool
    message: str
    attribute: str = ""
    value: Any = None


@dataclass
class MoveResult:
    """Result of a rename operation."""

    success: bool
    message: str
    old_path: str | None = None
    new_path: str | None = None
    total_moved: int = 0


@dataclass
class DeleteResult:
    """Result of a delete, delete_dir or delete_expired operation."""

    success: bool
    message: str
    path: str | None = None
    total_deleted: int = 0


@dataclass
class ListResult:
    """Result of a list_contents operation."""

    success: bool
    message: str
    entries: list[FileMetadata] = field(default_factory=list)
    path: str = "/"
