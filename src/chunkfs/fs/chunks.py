"""ChunkService — stateless chunk CRUD for DB-backed content storage."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, insert, literal, select

from .dialect import streaming_options

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from sqlalchemy import Result
    from sqlmodel import Session

    from chunkfs.models.chunks import ChunkBase

logger = logging.getLogger(__name__)


class ChunkService:
    """Stateless helpers for chunk row CRUD.

    Receives the concrete chunk model at construction so callers can
    use custom SQLModel subclasses.  Works on the Core table rather than
    ORM instances, so chunk content never lands in the session's
    identity map.  Never creates, commits, or closes sessions.
    """

    def __init__(self, chunk_model: type[ChunkBase], *, stream_results: bool = True) -> None:
        self._chunk_model = chunk_model
        self._table = chunk_model.__table__  # type: ignore[attr-defined]
        self.stream_results = stream_results

    @property
    def chunk_model(self) -> type[ChunkBase]:
        return self._chunk_model

    def insert_chunks(self, session: Session, path_id: int, chunks: Iterable[bytes]) -> int:
        """Insert *chunks* for *path_id* numbered from 0. Returns count inserted.

        Each row is written as soon as its chunk is produced; empty
        chunks are skipped without consuming a number.
        """
        stmt = insert(self._table)
        count = 0
        for content in chunks:
            if not content:
                continue
            session.execute(
                stmt,
                {"path_id": path_id, "chunk_no": count, "content": content},
            )
            count += 1
        logger.debug("Inserted %d chunk(s) for path_id=%s", count, path_id)
        return count

    def fetch_ordered(self, session: Session, path_id: int) -> Iterator[bytes]:
        """Return an iterator over chunk contents for *path_id* in ``chunk_no`` order.

        The query runs immediately; rows are then pulled from the cursor
        one at a time (server-side when ``stream_results`` is on) rather
        than fetched up front.
        """
        table = self._table
        result = session.execute(
            select(table.c.content)
            .where(table.c.path_id == path_id)
            .order_by(table.c.chunk_no),
            execution_options=streaming_options(self.stream_results),
        )
        return self._iter_contents(result)

    @staticmethod
    def _iter_contents(result: Result) -> Iterator[bytes]:
        try:
            yield from result.scalars()
        finally:
            result.close()

    def delete_all(self, session: Session, path_id: int) -> int:
        """Delete every chunk for *path_id*. Returns count deleted."""
        table = self._table
        result = session.execute(delete(table).where(table.c.path_id == path_id))
        count = result.rowcount
        logger.debug("Deleted %d chunk(s) for path_id=%s", count, path_id)
        return count

    def copy_chunks(self, session: Session, src_path_id: int, dest_path_id: int) -> int:
        """Copy stored chunk rows from one path to another, byte for byte.

        Runs as a single ``INSERT ... SELECT`` so no content passes
        through the client.
        """
        table = self._table
        rows = select(
            literal(dest_path_id).label("path_id"),
            table.c.chunk_no,
            table.c.content,
        ).where(table.c.path_id == src_path_id)
        result = session.execute(
            insert(table).from_select(["path_id", "chunk_no", "content"], rows)
        )
        return result.rowcount

    def count(self, session: Session, path_id: int) -> int:
        """Number of stored chunks for *path_id*."""
        table = self._table
        return session.execute(
            select(func.count()).select_from(table).where(table.c.path_id == path_id)
        ).scalar_one()
