"""Dialect-aware SQL helpers: streaming execution options."""

from __future__ import annotations

from typing import Any

# Rows fetched per round trip when streaming chunk content
STREAM_YIELD_PER = 1


def streaming_options(enabled: bool) -> dict[str, Any]:
    """Execution options for fetching large result sets row by row.

    ``yield_per`` implies ``stream_results`` in SQLAlchemy 2.x: on MySQL
    and PostgreSQL this switches to a server-side cursor so the driver
    does not buffer every chunk before returning the first one.  SQLite
    cursors already fetch lazily and ignore the option.
    """
    if not enabled:
        return {}
    return {"stream_results": True, "yield_per": STREAM_YIELD_PER}
