"""Per-prefix table classes.

Every store instance works against a ``{prefix}_path`` / ``{prefix}_chunk``
pair.  SQLAlchemy allows a table name to be declared only once per
``MetaData``, so concrete classes are built once per prefix and reused.
"""

from __future__ import annotations

import functools
import types

from .chunks import Chunk, ChunkBase
from .paths import PathEntry, PathEntryBase

DEFAULT_TABLE_PREFIX = "flysystem"


def _class_prefix(prefix: str) -> str:
    return "".join(part.capitalize() for part in prefix.replace("-", "_").split("_") if part)


def _build(name: str, base: type, tablename: str) -> type:
    def body(ns: dict) -> None:
        ns["__tablename__"] = tablename
        ns["__module__"] = __name__

    return types.new_class(name, (base,), {"table": True}, body)


@functools.cache
def table_models(
    prefix: str = DEFAULT_TABLE_PREFIX,
) -> tuple[type[PathEntryBase], type[ChunkBase]]:
    """Return the ``(path_model, chunk_model)`` pair for *prefix*."""
    if prefix == DEFAULT_TABLE_PREFIX:
        return PathEntry, Chunk

    camel = _class_prefix(prefix)
    path_model = _build(f"{camel}PathEntry", PathEntryBase, f"{prefix}_path")
    chunk_model = _build(f"{camel}Chunk", ChunkBase, f"{prefix}_chunk")
    return path_model, chunk_model  # type: ignore[return-value]
