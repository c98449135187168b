"""Store configuration and per-call write options."""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from chunkfs.models.paths import VISIBILITY_PRIVATE, VISIBILITY_PUBLIC
from chunkfs.models.tables import DEFAULT_TABLE_PREFIX

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_CHUNK_SIZE = 1_048_576
"""Upper bound on the size of each stored chunk, in bytes (1 MiB)."""

DEFAULT_TRANSFER_SIZE = 8192
"""Buffer size used when copying content into and out of staging files."""

VISIBILITIES = (VISIBILITY_PUBLIC, VISIBILITY_PRIVATE)

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off"})


@dataclass
class StoreConfig:
    """Configuration for a :class:`~chunkfs.fs.database_fs.ChunkedFileSystem`.

    ``table_prefix`` selects the ``{prefix}_path`` / ``{prefix}_chunk``
    table pair; a blank prefix falls back to ``flysystem``.
    ``stream_results`` asks the driver for a server-side cursor when
    fetching chunks, which keeps reads of large files memory-bounded on
    drivers that buffer whole result sets by default (e.g. MySQL).
    """

    table_prefix: str = DEFAULT_TABLE_PREFIX
    enable_compression: bool = True
    chunk_size: int = DEFAULT_CHUNK_SIZE
    temp_dir: str | None = None
    stream_results: bool = True
    transfer_size: int = DEFAULT_TRANSFER_SIZE

    def __post_init__(self) -> None:
        prefix = (self.table_prefix or "").strip()
        self.table_prefix = prefix or DEFAULT_TABLE_PREFIX
        if self.chunk_size <= 0:
            raise ConfigurationError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.transfer_size <= 0:
            raise ConfigurationError(
                f"transfer_size must be positive, got {self.transfer_size}"
            )


def to_utc(value: datetime | str | None) -> datetime | None:
    """Coerce *value* to an aware UTC datetime.

    Naive datetimes and ISO-8601 strings without an offset are taken to
    be UTC already.  SQLite returns naive values for timezone-aware
    columns, so everything read back from the store goes through here too.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip())
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_bool(value: bool | int | str) -> bool:
    """Coerce a flag given as a bool, 0/1 or a word like "false" or "on".

    Anything else raises ``ValueError``.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_STRINGS:
            return True
        if word in _FALSE_STRINGS:
            return False
    raise ValueError(f"expected a boolean flag, got {value!r}")


@dataclass
class WriteOptions:
    """Per-call options for write, update and create_dir.

    Fields left as ``None`` are "not supplied": update keeps the stored
    value and write falls back to the store default.
    """

    visibility: str | None = None
    expiry: datetime | str | None = None
    meta: dict[str, Any] | None = None
    enable_compression: bool | None = None

    def __post_init__(self) -> None:
        if self.visibility is not None and self.visibility not in VISIBILITIES:
            raise ValueError(
                f"visibility must be one of {VISIBILITIES}, got {self.visibility!r}"
            )
        self.expiry = to_utc(self.expiry)
        if self.enable_compression is not None:
            self.enable_compression = to_bool(self.enable_compression)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None) -> WriteOptions:
        """Build options from a plain mapping, ignoring unknown keys."""
        if not options:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in options.items() if k in known})
