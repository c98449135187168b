"""ChunkedFileSystem — files and directories stored as rows, content as chunks."""

from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlmodel import Session, SQLModel

from chunkfs.models.paths import (
    TYPE_DIRECTORY,
    TYPE_FILE,
    VISIBILITY_PUBLIC,
)
from chunkfs.models.tables import table_models

from .chunks import ChunkService
from .codec import ChunkStream, decode_chunks, encode_chunks
from .config import VISIBILITIES, StoreConfig, WriteOptions
from .paths import PathService, is_expired
from .staging import stage
from .types import (
    AttributeResult,
    DeleteResult,
    ListResult,
    MetadataResult,
    MoveResult,
    ReadResult,
    ReadStreamResult,
    WriteResult,
)
from .utils import (
    emulate_directories,
    guess_mime_type,
    normalize_path,
    replace_prefix,
    validate_path,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping
    from datetime import datetime
    from typing import BinaryIO

    from sqlalchemy import Engine

    from chunkfs.models.paths import PathEntryBase

    from .staging import Content, StagedContent

    MimeDetector = Callable[[str, bytes | None], str]
    Options = WriteOptions | Mapping[str, Any] | None

logger = logging.getLogger(__name__)


def _coerce_options(options: Options) -> WriteOptions:
    if isinstance(options, WriteOptions):
        return options
    return WriteOptions.from_mapping(options)


class ChunkedFileSystem:
    """Database-backed file store with chunked, optionally compressed content.

    Paths live in ``{prefix}_path``; file content is split into
    ``chunk_size`` slices in ``{prefix}_chunk``.  Every operation opens
    its own session, commits when it finishes and returns a result
    object: a missing path, wrong entry type or failed statement gives
    ``success=False`` rather than an exception.  Temp-file I/O errors
    and corrupt chunk data do raise.

    There is no locking between operations and no guarantee that a
    crash between the path insert and the chunk inserts leaves a
    complete file.

    Usage::

        engine = create_engine("sqlite:///files.db")
        fs = ChunkedFileSystem(engine, StoreConfig(chunk_size=256 * 1024))
        fs.create_tables()
        fs.write("/docs/readme.txt", b"hello")
        fs.read("/docs/readme.txt").content  # b"hello"
    """

    def __init__(
        self,
        engine: Engine,
        config: StoreConfig | None = None,
        *,
        mime_detector: MimeDetector | None = None,
    ) -> None:
        self.config = config or StoreConfig()
        self.engine = engine

        path_model, chunk_model = table_models(self.config.table_prefix)
        self._session_factory = sessionmaker(
            bind=engine,
            class_=Session,
            expire_on_commit=False,
        )
        self._guess_mime_type: MimeDetector = mime_detector or guess_mime_type

        # Composed services
        self.paths = PathService(path_model)
        self.chunks = ChunkService(chunk_model, stream_results=self.config.stream_results)

    @property
    def path_model(self) -> type[PathEntryBase]:
        return self.paths.path_model

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _tables(self) -> list[Any]:
        return [
            self.paths.path_model.__table__,  # type: ignore[attr-defined]
            self.chunks.chunk_model.__table__,  # type: ignore[attr-defined]
        ]

    def create_tables(self) -> None:
        """Create the path and chunk tables if they do not exist."""
        SQLModel.metadata.create_all(self.engine, tables=self._tables())

    def drop_tables(self) -> None:
        """Drop the path and chunk tables."""
        SQLModel.metadata.drop_all(self.engine, tables=self._tables())

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Yield a session that commits on success and rolls back on error."""
        with self._session_factory() as session:
            try:
                yield session
                session.commit()
            except BaseException:
                session.rollback()
                raise

    @staticmethod
    def _storage_failure(operation: str, path: str, error: SQLAlchemyError) -> str:
        logger.warning("%s failed for %s: %s", operation, path, error, exc_info=True)
        return f"Storage failure during {operation}: {path}"

    # ------------------------------------------------------------------
    # Content helpers
    # ------------------------------------------------------------------

    def _stage(self, content: Content | BinaryIO) -> StagedContent:
        return stage(content, self.config.temp_dir, self.config.transfer_size)

    def _encode(self, staged: StagedContent, compress: bool) -> Iterator[bytes]:
        return encode_chunks(
            staged.rewind(),
            self.config.chunk_size,
            compress,
            read_size=self.config.transfer_size,
        )

    def _decode(self, session: Session, entry: PathEntryBase) -> Iterator[bytes]:
        return decode_chunks(
            self.chunks.fetch_ordered(session, entry.path_id),  # type: ignore[arg-type]
            entry.is_compressed,
            piece_size=self.config.chunk_size,
        )

    def _written(self, entry: PathEntryBase, message: str) -> WriteResult:
        if is_expired(entry):
            return WriteResult(success=False, message=f"Entry has already expired: {entry.path}")
        return WriteResult(
            success=True,
            message=message,
            metadata=PathService.to_metadata(entry),
        )

    # ------------------------------------------------------------------
    # Write / Update
    # ------------------------------------------------------------------

    def write(self, path: str, content: Content, options: Options = None) -> WriteResult:
        """Create a file at *path* from in-memory content.

        Recognized options: ``enable_compression``, ``visibility``,
        ``expiry`` and ``meta``.
        """
        return self._write(path, content, options)

    def write_stream(self, path: str, stream: BinaryIO, options: Options = None) -> WriteResult:
        """Create a file at *path* from a readable binary stream.

        The mimetype comes from the path extension only; streamed content
        is never sniffed, since that would mean buffering it.
        """
        return self._write(path, stream, options)

    def _write(self, path: str, content: Content | BinaryIO, options: Options) -> WriteResult:
        valid, error = validate_path(path)
        if not valid:
            return WriteResult(success=False, message=error)

        path = normalize_path(path)
        opts = _coerce_options(options)
        compress = (
            self.config.enable_compression
            if opts.enable_compression is None
            else opts.enable_compression
        )

        with self._stage(content) as staged:
            entry = self.path_model(
                path=path,
                type=TYPE_FILE,
                visibility=opts.visibility or VISIBILITY_PUBLIC,
                mimetype=self._guess_mime_type(path, staged.sample),
                size=staged.size,
                is_compressed=compress,
                expiry=opts.expiry,
                meta=opts.meta,
            )
            try:
                with self._session() as session:
                    path_id = self.paths.insert(session, entry)
                    count = self.chunks.insert_chunks(
                        session, path_id, self._encode(staged, compress)
                    )
            except SQLAlchemyError as e:
                return WriteResult(success=False, message=self._storage_failure("write", path, e))

        logger.debug("Wrote %s: %d bytes in %d chunk(s)", path, entry.size, count)
        return self._written(entry, f"Wrote {entry.size} bytes to {path}")

    def update(self, path: str, content: Content, options: Options = None) -> WriteResult:
        """Replace the content of the existing file at *path*.

        Size and mimetype are recomputed; ``expiry`` and ``meta`` change
        only when supplied.  The compression mode chosen at creation is
        kept.  All chunks are deleted and written afresh.
        """
        return self._update(path, content, options)

    def update_stream(self, path: str, stream: BinaryIO, options: Options = None) -> WriteResult:
        """Replace the content of the file at *path* from a binary stream."""
        return self._update(path, stream, options)

    def _update(self, path: str, content: Content | BinaryIO, options: Options) -> WriteResult:
        path = normalize_path(path)
        opts = _coerce_options(options)

        with self._stage(content) as staged:
            try:
                with self._session() as session:
                    entry = self.paths.find_by_path(session, path)
                    if entry is None:
                        return WriteResult(success=False, message=f"File not found: {path}")
                    if entry.is_directory:
                        return WriteResult(
                            success=False,
                            message=f"Path is a directory, not a file: {path}",
                        )

                    fields: dict[str, Any] = {
                        "size": staged.size,
                        "mimetype": self._guess_mime_type(entry.path, staged.sample),
                    }
                    if opts.expiry is not None:
                        fields["expiry"] = opts.expiry
                    if opts.meta is not None:
                        fields["meta"] = opts.meta

                    path_id: int = entry.path_id  # type: ignore[assignment]
                    self.paths.update_fields(session, path_id, fields)
                    self.chunks.delete_all(session, path_id)
                    count = self.chunks.insert_chunks(
                        session, path_id, self._encode(staged, entry.is_compressed)
                    )
                    session.refresh(entry)
            except SQLAlchemyError as e:
                return WriteResult(success=False, message=self._storage_failure("update", path, e))

        logger.debug("Updated %s: %d bytes in %d chunk(s)", path, staged.size, count)
        return self._written(entry, f"Updated {path} with {staged.size} bytes")

    # ------------------------------------------------------------------
    # Rename / Copy / Delete
    # ------------------------------------------------------------------

    def rename(self, path: str, new_path: str) -> MoveResult:
        """Move *path* to *new_path*.

        A file or directory entry at *path* is renamed first.  When there
        is no such entry, or it is a directory, every entry below *path*
        is moved too, so a directory that only exists implicitly (files
        with no directory row) can still be renamed.
        """
        for candidate in (path, new_path):
            valid, error = validate_path(candidate)
            if not valid:
                return MoveResult(success=False, message=f"{error}: {candidate!r}")

        path = normalize_path(path)
        new_path = normalize_path(new_path)
        if new_path == path or new_path.startswith(path + "/"):
            return MoveResult(
                success=False,
                message=f"Cannot move {path} to itself or below itself: {new_path}",
            )

        try:
            with self._session() as session:
                entry = self.paths.find_by_path(session, path)
                moved = 0
                if entry is not None:
                    self.paths.update_fields(session, entry.path_id, {"path": new_path})  # type: ignore[arg-type]
                    moved += 1

                if entry is None or entry.is_directory:
                    children = self.paths.list_by_prefix(session, path)
                    if entry is None and not children:
                        return MoveResult(success=False, message=f"Path not found: {path}")
                    for child in children:
                        if entry is not None and child.path_id == entry.path_id:
                            continue
                        self.paths.update_fields(
                            session,
                            child.path_id,  # type: ignore[arg-type]
                            {"path": replace_prefix(child.path, path, new_path)},
                        )
                        moved += 1
        except SQLAlchemyError as e:
            return MoveResult(success=False, message=self._storage_failure("rename", path, e))

        logger.debug("Renamed %s -> %s (%d entries)", path, new_path, moved)
        return MoveResult(
            success=True,
            message=f"Moved {path} to {new_path}",
            old_path=path,
            new_path=new_path,
            total_moved=moved,
        )

    def copy(self, path: str, new_path: str) -> WriteResult:
        """Copy the entry at *path* to *new_path*.

        The new entry keeps every attribute except its id, path and
        timestamp.  File chunks are copied as stored rows, so no content
        is decompressed or recompressed.  Directory descendants are not
        copied.
        """
        valid, error = validate_path(new_path)
        if not valid:
            return WriteResult(success=False, message=error)

        path = normalize_path(path)
        new_path = normalize_path(new_path)

        try:
            with self._session() as session:
                entry = self.paths.find_by_path(session, path)
                if entry is None:
                    return WriteResult(success=False, message=f"Path not found: {path}")

                clone = self.path_model(
                    path=new_path,
                    type=entry.type,
                    visibility=entry.visibility,
                    mimetype=entry.mimetype,
                    size=entry.size,
                    is_compressed=entry.is_compressed,
                    expiry=entry.expiry,
                    meta=copy.deepcopy(entry.meta),
                )
                new_id = self.paths.insert(session, clone)
                if entry.is_file:
                    self.chunks.copy_chunks(session, entry.path_id, new_id)  # type: ignore[arg-type]
        except SQLAlchemyError as e:
            return WriteResult(success=False, message=self._storage_failure("copy", path, e))

        return WriteResult(
            success=True,
            message=f"Copied {path} to {new_path}",
            metadata=PathService.to_metadata(clone),
        )

    def delete(self, path: str) -> DeleteResult:
        """Delete the file at *path* and its chunks."""
        path = normalize_path(path)
        try:
            with self._session() as session:
                entry = self.paths.find_by_path(session, path)
                if entry is None:
                    return DeleteResult(success=False, message=f"File not found: {path}")
                if entry.is_directory:
                    return DeleteResult(
                        success=False,
                        message=f"Path is a directory, use delete_dir: {path}",
                    )
                path_id: int = entry.path_id  # type: ignore[assignment]
                if not self.paths.delete(session, path_id):
                    return DeleteResult(success=False, message=f"Could not delete: {path}")
                self.chunks.delete_all(session, path_id)
        except SQLAlchemyError as e:
            return DeleteResult(success=False, message=self._storage_failure("delete", path, e))

        return DeleteResult(success=True, message=f"Deleted {path}", path=path, total_deleted=1)

    def delete_dir(self, path: str) -> DeleteResult:
        """Delete the directory at *path* with everything below it."""
        path = normalize_path(path)
        try:
            with self._session() as session:
                entry = self.paths.find_by_path(session, path)
                if entry is None:
                    return DeleteResult(success=False, message=f"Directory not found: {path}")
                if not entry.is_directory:
                    return DeleteResult(success=False, message=f"Not a directory: {path}")

                total = 0
                for child in self.paths.list_by_prefix(session, path):
                    if child.path_id == entry.path_id:
                        continue
                    self.paths.delete(session, child.path_id)  # type: ignore[arg-type]
                    if child.is_file:
                        self.chunks.delete_all(session, child.path_id)  # type: ignore[arg-type]
                    total += 1

                if not self.paths.delete(session, entry.path_id):  # type: ignore[arg-type]
                    return DeleteResult(success=False, message=f"Could not delete: {path}")
                total += 1
        except SQLAlchemyError as e:
            return DeleteResult(success=False, message=self._storage_failure("delete_dir", path, e))

        logger.debug("Deleted directory %s (%d entries)", path, total)
        return DeleteResult(
            success=True,
            message=f"Deleted {path} and {total - 1} entries below it",
            path=path,
            total_deleted=total,
        )

    def delete_expired(self, as_of: datetime | str | None = None) -> DeleteResult:
        """Remove every entry whose expiry is at or before *as_of* (default now).

        Chunks belonging to removed files are deleted as well.
        """
        try:
            with self._session() as session:
                path_ids = self.paths.delete_expired(session, as_of)  # type: ignore[arg-type]
                for path_id in path_ids:
                    self.chunks.delete_all(session, path_id)
        except SQLAlchemyError as e:
            return DeleteResult(
                success=False,
                message=self._storage_failure("delete_expired", "*", e),
            )

        count = len(path_ids)
        return DeleteResult(
            success=True,
            message=f"Deleted {count} expired entr{'y' if count == 1 else 'ies'}",
            total_deleted=count,
        )

    # ------------------------------------------------------------------
    # Directories / Visibility
    # ------------------------------------------------------------------

    def create_dir(self, path: str, options: Options = None) -> WriteResult:
        """Create a directory entry at *path*. Only the ``meta`` option applies."""
        valid, error = validate_path(path)
        if not valid:
            return WriteResult(success=False, message=error)

        path = normalize_path(path)
        opts = _coerce_options(options)
        entry = self.path_model(path=path, type=TYPE_DIRECTORY, meta=opts.meta)
        try:
            with self._session() as session:
                self.paths.insert(session, entry)
        except SQLAlchemyError as e:
            return WriteResult(success=False, message=self._storage_failure("create_dir", path, e))

        return WriteResult(
            success=True,
            message=f"Created directory: {path}",
            metadata=PathService.to_metadata(entry),
        )

    def set_visibility(self, path: str, visibility: str) -> MetadataResult:
        """Set the visibility of *path* and return its refreshed metadata."""
        if visibility not in VISIBILITIES:
            raise ValueError(f"visibility must be one of {VISIBILITIES}, got {visibility!r}")

        path = normalize_path(path)
        try:
            with self._session() as session:
                self.paths.update_by_path(session, path, {"visibility": visibility})
        except SQLAlchemyError as e:
            return MetadataResult(
                success=False,
                message=self._storage_failure("set_visibility", path, e),
            )
        return self.get_metadata(path)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def has(self, path: str) -> bool:
        """Check whether a live (non-expired) entry exists at *path*."""
        path = normalize_path(path)
        try:
            with self._session() as session:
                return self.paths.exists(session, path)
        except SQLAlchemyError as e:
            self._storage_failure("has", path, e)
            return False

    def read(self, path: str) -> ReadResult:
        """Read the entry at *path*; files come back with their full content."""
        path = normalize_path(path)
        try:
            with self._session() as session:
                entry = self.paths.find_by_path(session, path)
                if entry is None:
                    return ReadResult(success=False, message=f"File not found: {path}")
                metadata = PathService.to_metadata(entry)
                content = None
                if entry.is_file:
                    content = b"".join(self._decode(session, entry))
        except SQLAlchemyError as e:
            return ReadResult(success=False, message=self._storage_failure("read", path, e))

        return ReadResult(success=True, message="OK", metadata=metadata, content=content)

    def read_stream(self, path: str) -> ReadStreamResult:
        """Open the file at *path* for streaming.

        The returned ``stream`` holds a database session until it is
        closed; use it as a context manager.  Directories come back with
        ``stream=None``.
        """
        path = normalize_path(path)
        session = self._session_factory()
        try:
            entry = self.paths.find_by_path(session, path)
            if entry is None:
                session.close()
                return ReadStreamResult(success=False, message=f"File not found: {path}")
            metadata = PathService.to_metadata(entry)
            if not entry.is_file:
                session.close()
                return ReadStreamResult(success=True, message="OK", metadata=metadata)
            stream = ChunkStream(self._decode(session, entry), on_close=session.close)
        except SQLAlchemyError as e:
            session.close()
            return ReadStreamResult(
                success=False,
                message=self._storage_failure("read_stream", path, e),
            )
        except BaseException:
            session.close()
            raise

        return ReadStreamResult(
            success=True,
            message="OK",
            metadata=metadata,
            stream=stream,  # type: ignore[arg-type]
        )

    def list_contents(self, directory: str = "", recursive: bool = False) -> ListResult:
        """List *directory* and every entry below it.

        Recursive listings also include directories that are implied by
        deeper paths but have no row of their own.
        """
        directory = normalize_path(directory)
        try:
            with self._session() as session:
                entries = [
                    PathService.to_metadata(e)
                    for e in self.paths.list_by_prefix(session, directory)
                ]
        except SQLAlchemyError as e:
            return ListResult(
                success=False,
                message=self._storage_failure("list_contents", directory, e),
                path=directory,
            )

        if recursive:
            entries = emulate_directories(entries, directory)
        return ListResult(
            success=True,
            message=f"Found {len(entries)} entries",
            entries=entries,
            path=directory,
        )

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def get_metadata(self, path: str) -> MetadataResult:
        """Get normalized metadata for the entry at *path*."""
        path = normalize_path(path)
        try:
            with self._session() as session:
                entry = self.paths.find_by_path(session, path)
        except SQLAlchemyError as e:
            return MetadataResult(
                success=False,
                message=self._storage_failure("get_metadata", path, e),
            )
        if entry is None:
            return MetadataResult(success=False, message=f"Path not found: {path}")
        return MetadataResult(success=True, message="OK", metadata=PathService.to_metadata(entry))

    def _get_attribute(self, path: str, attribute: str) -> AttributeResult:
        result = self.get_metadata(path)
        if not result.success or result.metadata is None:
            return AttributeResult(success=False, message=result.message, attribute=attribute)
        metadata = result.metadata
        if metadata.is_directory:
            return AttributeResult(
                success=False,
                message=f"Path is a directory, not a file: {metadata.path}",
                attribute=attribute,
            )
        value = getattr(metadata, attribute)
        if value is None:
            return AttributeResult(
                success=False,
                message=f"No {attribute} recorded for {metadata.path}",
                attribute=attribute,
            )
        return AttributeResult(success=True, message="OK", attribute=attribute, value=value)

    def get_size(self, path: str) -> AttributeResult:
        return self._get_attribute(path, "size")

    def get_mimetype(self, path: str) -> AttributeResult:
        return self._get_attribute(path, "mimetype")

    def get_timestamp(self, path: str) -> AttributeResult:
        return self._get_attribute(path, "timestamp")

    def get_visibility(self, path: str) -> AttributeResult:
        return self._get_attribute(path, "visibility")
