"""Storage layer — chunk codec, staging, path/chunk stores, the file system facade."""

from chunkfs.fs.chunks import ChunkService
from chunkfs.fs.codec import ChunkStream, decode_chunks, encode_chunks
from chunkfs.fs.config import StoreConfig, WriteOptions
from chunkfs.fs.database_fs import ChunkedFileSystem
from chunkfs.fs.exceptions import (
    ChunkFSError,
    ConfigurationError,
    CorruptChunkError,
)
from chunkfs.fs.paths import PathService
from chunkfs.fs.staging import StagedContent, stage
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

__all__ = [
    "AttributeResult",
    "ChunkFSError",
    "ChunkService",
    "ChunkStream",
    "ChunkedFileSystem",
    "ConfigurationError",
    "CorruptChunkError",
    "DeleteResult",
    "FileMetadata",
    "ListResult",
    "MetadataResult",
    "MoveResult",
    "PathService",
    "ReadResult",
    "ReadStreamResult",
    "StagedContent",
    "StoreConfig",
    "WriteOptions",
    "WriteResult",
    "decode_chunks",
    "encode_chunks",
    "stage",
]
