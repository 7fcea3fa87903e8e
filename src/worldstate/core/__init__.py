"""Worldstate Core -- shared primitives for the minute pipeline.

Architecture::

    Layer 1 -- Type System & Errors
        errors.py          Typed error taxonomy (WorldStateError and kinds)
        result.py          Result[T] envelope (Ok / Err / collect_results)
        protocols.py       Connection protocol
        timestamps.py      Minute buckets, UTC helpers, clocks

    Layer 2 -- Database
        dialect.py         SQLite / PostgreSQL placeholder and upsert SQL
        repository.py      BaseRepository with dialect-aware helpers
        sqlite_conn.py     sqlite3 adapter
        schema.py          archive_items DDL + apply_schema()

    Layer 3 -- Determinism
        numeric.py         JavaScript-compatible rounding and number text
        hashing.py         Stable serialization, content hashes, filenames

    Layer 4 -- Process
        logging.py         structlog configuration
        settings.py        pydantic-settings configuration
"""

from worldstate.core.errors import (
    ErrorCategory,
    ExternalApiError,
    InternalError,
    StateConflictError,
    StorageError,
    ValidationError,
    WorldStateError,
)
from worldstate.core.result import Err, Ok, Result

__all__ = [
    "ErrorCategory",
    "WorldStateError",
    "ValidationError",
    "ExternalApiError",
    "StorageError",
    "StateConflictError",
    "InternalError",
    "Result",
    "Ok",
    "Err",
]
