"""Shared fixtures for chunkfs tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import text
from sqlmodel import Session, SQLModel, create_engine

from chunkfs.fs.config import StoreConfig
from chunkfs.fs.database_fs import ChunkedFileSystem

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from sqlalchemy import Engine


@pytest.fixture
def engine() -> Iterator[Engine]:
    """In-memory SQLite engine with all tables created."""
    eng = create_engine("sqlite://", echo=False)
    SQLModel.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine: Engine) -> Iterator[Session]:
    """SQLModel session bound to the in-memory engine, rolled back after each test."""
    with Session(engine) as s:
        s.begin()
        yield s
        s.rollback()


@pytest.fixture
def fs(engine: Engine, tmp_path) -> ChunkedFileSystem:
    """Store with default settings, staging into a per-test temp dir."""
    return ChunkedFileSystem(engine, StoreConfig(temp_dir=str(tmp_path)))


@pytest.fixture
def small_fs(engine: Engine, tmp_path) -> ChunkedFileSystem:
    """Store with a 1 KiB chunk size so small payloads span several chunks."""
    return ChunkedFileSystem(engine, StoreConfig(chunk_size=1024, temp_dir=str(tmp_path)))


@pytest.fixture
def row_count(engine: Engine) -> Callable[[str], int]:
    """Count rows in a table by name."""

    def _count(table: str) -> int:
        with engine.connect() as conn:
            return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar_one()

    return _count


@pytest.fixture
def chunk_numbers(engine: Engine) -> Callable[[int], list[int]]:
    """Stored chunk numbers for a path_id, ascending."""

    def _numbers(path_id: int) -> list[int]:
        with engine.connect() as conn:
            rows = conn.execute(
                text("SELECT chunk_no FROM flysystem_chunk WHERE path_id = :id ORDER BY chunk_no"),
                {"id": path_id},
            )
            return [r[0] for r in rows]

    return _numbers
