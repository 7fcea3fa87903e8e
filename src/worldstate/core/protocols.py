"""
Database connection contract for the archive index.

The index only needs three things from a connection: run a statement and
hand back something with ``fetchall()`` / ``rowcount`` / ``description``,
commit, and roll back. ``sqlite3`` (through :class:`SqliteConnection`) and
psycopg-style connections both fit.

Tags:
    protocol, connection, database
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """Synchronous DB-API subset used by :class:`~worldstate.core.repository.BaseRepository`."""

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Run one statement; returns a cursor."""
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


__all__ = ["Connection"]
