"""PathService — path row CRUD, prefix listing, expiry filtering."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, or_, update
from sqlmodel import select

from chunkfs.models.paths import TYPE_FILE

from .config import to_utc
from .types import FileMetadata
from .utils import escape_like, normalize_path

if TYPE_CHECKING:
    from sqlmodel import Session

    from chunkfs.models.paths import PathEntryBase

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


def is_expired(entry: PathEntryBase, now: datetime | None = None) -> bool:
    """True if *entry* has an expiry at or before *now*."""
    expiry = to_utc(entry.expiry)
    if expiry is None:
        return False
    return expiry <= (now or utc_now())


class PathService:
    """Stateless helpers for path record CRUD.

    Receives the concrete path model at construction so callers can use
    custom SQLModel subclasses (or per-prefix tables).  Never creates,
    commits, or closes sessions. Callers own the session lifecycle and
    statement failures propagate to them.
    """

    def __init__(self, path_model: type[PathEntryBase]) -> None:
        self._path_model = path_model

    @property
    def path_model(self) -> type[PathEntryBase]:
        return self._path_model

    def _live(self, now: datetime | None):
        """WHERE clause keeping entries that have not expired by *now*."""
        model = self._path_model
        return or_(
            model.expiry.is_(None),  # type: ignore[union-attr]
            model.expiry > (now or utc_now()),  # type: ignore[operator]
        )

    # ------------------------------------------------------------------
    # Single-row operations
    # ------------------------------------------------------------------

    def insert(self, session: Session, entry: PathEntryBase) -> int:
        """Insert *entry* and return its new ``path_id``.

        No uniqueness check is made; callers must not create a second
        live entry for the same path.
        """
        entry.update_ts = utc_now()
        session.add(entry)
        session.flush()
        logger.debug("Inserted %s entry %s as path_id=%s", entry.type, entry.path, entry.path_id)
        return entry.path_id  # type: ignore[return-value]

    def find_by_path(
        self,
        session: Session,
        path: str,
        now: datetime | None = None,
    ) -> PathEntryBase | None:
        """Get the live entry at *path*; expired entries count as absent."""
        path = normalize_path(path)
        model = self._path_model
        query = (
            select(model)
            .where(model.path == path, self._live(now))
            .order_by(model.path_id)  # type: ignore[arg-type]
            .limit(1)
        )
        return session.exec(query).first()

    def exists(self, session: Session, path: str, now: datetime | None = None) -> bool:
        """Check whether a live entry exists at *path*."""
        path = normalize_path(path)
        model = self._path_model
        query = select(model.path_id).where(model.path == path, self._live(now)).limit(1)
        return session.exec(query).first() is not None

    def update_fields(self, session: Session, path_id: int, fields: dict[str, Any]) -> bool:
        """Update a subset of columns on one entry; ``update_ts`` is always refreshed."""
        model = self._path_model
        result = session.execute(
            update(model)
            .where(model.path_id == path_id)  # type: ignore[arg-type]
            .values(**fields, update_ts=utc_now())
        )
        return result.rowcount > 0  # type: ignore[attr-defined]

    def update_by_path(self, session: Session, path: str, fields: dict[str, Any]) -> bool:
        """Update columns on every row stored at *path*."""
        path = normalize_path(path)
        model = self._path_model
        result = session.execute(
            update(model)
            .where(model.path == path)  # type: ignore[arg-type]
            .values(**fields, update_ts=utc_now())
        )
        return result.rowcount > 0  # type: ignore[attr-defined]

    def delete(self, session: Session, path_id: int) -> bool:
        """Delete one entry by id. Chunks are not touched."""
        model = self._path_model
        result = session.execute(
            delete(model).where(model.path_id == path_id)  # type: ignore[arg-type]
        )
        return result.rowcount > 0  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    # Multi-row operations
    # ------------------------------------------------------------------

    def list_by_prefix(
        self,
        session: Session,
        directory: str,
        now: datetime | None = None,
    ) -> list[PathEntryBase]:
        """List *directory* itself plus every live entry below it.

        An empty or root *directory* lists every live entry.
        """
        model = self._path_model
        query = select(model).where(self._live(now))

        directory = normalize_path(directory)
        if directory != "/":
            query = query.where(
                or_(
                    model.path == directory,
                    model.path.like(escape_like(directory) + "/%", escape="\\"),  # type: ignore[attr-defined]
                )
            )

        query = query.order_by(model.path, model.path_id)  # type: ignore[arg-type]
        return list(session.exec(query).all())

    def delete_expired(self, session: Session, as_of: datetime | None = None) -> list[int]:
        """Delete every entry whose expiry is at or before *as_of*.

        Returns the deleted ids so the caller can remove their chunks.
        """
        as_of = to_utc(as_of) or utc_now()
        model = self._path_model
        ids = list(
            session.exec(
                select(model.path_id).where(
                    model.expiry.is_not(None),  # type: ignore[union-attr]
                    model.expiry <= as_of,  # type: ignore[operator]
                )
            ).all()
        )
        if ids:
            session.execute(
                delete(model).where(model.path_id.in_(ids))  # type: ignore[union-attr]
            )
        logger.debug("Deleted %d expired entries as of %s", len(ids), as_of.isoformat())
        return ids  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    @staticmethod
    def to_metadata(entry: PathEntryBase) -> FileMetadata:
        """Convert a path record to normalized FileMetadata.

        File-only attributes are left unset for directories; ``meta`` is
        carried for both.
        """
        info = FileMetadata(
            path_id=entry.path_id,
            type=entry.type,
            path=entry.path,
            timestamp=to_utc(entry.update_ts),
            meta=entry.meta,
        )
        if entry.type == TYPE_FILE:
            info.mimetype = entry.mimetype
            info.size = entry.size
            info.visibility = entry.visibility
            info.expiry = to_utc(entry.expiry)
        return info
