"""PathEntry model — one row per file or directory.

Provides ``PathEntryBase`` (non-table base) and ``PathEntry`` (concrete
table).  Subclass ``PathEntryBase`` with ``table=True`` and a custom
``__tablename__`` to use a different table name per store, or call
:func:`chunkfs.models.table_models` with a prefix.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime
from sqlmodel import Field, SQLModel

TYPE_FILE = "file"
TYPE_DIRECTORY = "dir"

VISIBILITY_PUBLIC = "public"
VISIBILITY_PRIVATE = "private"


class PathEntryBase(SQLModel):
    """Base fields for a path entry. Subclass with ``table=True`` for a concrete table."""

    path_id: int | None = Field(default=None, primary_key=True)
    path: str = Field(index=True)
    type: str = Field(default=TYPE_FILE)
    visibility: str | None = Field(default=None)
    mimetype: str | None = Field(default=None)
    size: int | None = Field(default=None)
    is_compressed: bool = Field(default=True)
    expiry: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )
    meta: dict[str, Any] | None = Field(default=None, sa_type=JSON)
    update_ts: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )

    @property
    def is_directory(self) -> bool:
        return self.type == TYPE_DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.type == TYPE_FILE


class PathEntry(PathEntryBase, table=True):
    """Default path table — ``flysystem_path``."""

    __tablename__ = "flysystem_path"
