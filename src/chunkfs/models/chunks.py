"""Chunk model — DB-backed content chunks.

Provides ``ChunkBase`` (non-table base) and ``Chunk`` (concrete table).
Rows are keyed by ``(path_id, chunk_no)``; ``content`` holds the stored
(possibly compressed) bytes of one slice of a file.
"""

from __future__ import annotations

from sqlalchemy import LargeBinary
from sqlalchemy.dialects.mysql import LONGBLOB
from sqlmodel import Field, SQLModel

# MySQL's plain BLOB tops out at 64 KiB, well below the default chunk size.
ChunkContent = LargeBinary().with_variant(LONGBLOB(), "mysql")


class ChunkBase(SQLModel):
    """Base fields for a content chunk. Subclass with ``table=True`` for a concrete table."""

    path_id: int = Field(primary_key=True, index=True)
    chunk_no: int = Field(primary_key=True)
    content: bytes = Field(
        default=b"",
        sa_type=ChunkContent,  # type: ignore[invalid-argument-type]
    )


class Chunk(ChunkBase, table=True):
    """Default chunk table — ``flysystem_chunk``."""

    __tablename__ = "flysystem_chunk"
