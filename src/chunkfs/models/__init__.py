"""SQLModel database models for chunkfs."""

from chunkfs.models.chunks import Chunk, ChunkBase
from chunkfs.models.paths import (
    TYPE_DIRECTORY,
    TYPE_FILE,
    VISIBILITY_PRIVATE,
    VISIBILITY_PUBLIC,
    PathEntry,
    PathEntryBase,
)
from chunkfs.models.tables import DEFAULT_TABLE_PREFIX, table_models

__all__ = [
    "DEFAULT_TABLE_PREFIX",
    "TYPE_DIRECTORY",
    "TYPE_FILE",
    "VISIBILITY_PRIVATE",
    "VISIBILITY_PUBLIC",
    "Chunk",
    "ChunkBase",
    "PathEntry",
    "PathEntryBase",
    "table_models",
]
