"""chunkfs: a file system in two database tables.

Paths and metadata live in one table; chunked, optionally compressed
content lives in the other and is streamed in and out with bounded memory.
"""

__version__ = "0.1.0"

from chunkfs.fs.config import StoreConfig, WriteOptions
from chunkfs.fs.database_fs import ChunkedFileSystem
from chunkfs.fs.exceptions import (
    ChunkFSError,
    ConfigurationError,
    CorruptChunkError,
)
from chunkfs.fs.types import (
    AttributeResult,
    DeleteResult,
    FileMetadata,
    ListResult,
    MetadataResult,
    MoveResult,
    ReadResult,
    ReadStreamResult,
    WriteResult,
)
from chunkfs.models import (
    TYPE_DIRECTORY,
    TYPE_FILE,
    VISIBILITY_PRIVATE,
    VISIBILITY_PUBLIC,
    Chunk,
    PathEntry,
    table_models,
)

__all__ = [
    "TYPE_DIRECTORY",
    "TYPE_FILE",
    "VISIBILITY_PRIVATE",
    "VISIBILITY_PUBLIC",
    "AttributeResult",
    "Chunk",
    "ChunkFSError",
    "ChunkedFileSystem",
    "ConfigurationError",
    "CorruptChunkError",
    "DeleteResult",
    "FileMetadata",
    "ListResult",
    "MetadataResult",
    "MoveResult",
    "PathEntry",
    "ReadResult",
    "ReadStreamResult",
    "StoreConfig",
    "WriteOptions",
    "WriteResult",
    "__version__",
    "table_models",
]
