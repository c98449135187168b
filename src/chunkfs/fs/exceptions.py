"""Custom exception hierarchy for the chunkfs storage layer."""


class ChunkFSError(Exception):
    """Base exception for all chunkfs errors."""


class CorruptChunkError(ChunkFSError):
    """Raised when stored chunk data cannot be decoded (truncated or corrupt)."""


class ConfigurationError(ChunkFSError):
    """Raised when a store is configured with invalid values."""
