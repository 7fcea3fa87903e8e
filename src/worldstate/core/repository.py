"""
Repository base for the archive index.

A repository owns one :class:`~worldstate.core.protocols.Connection` and a
:class:`~worldstate.core.dialect.Dialect`; subclasses write SQL with
``self.dialect`` and read rows back as plain dicts. Transactions are the
caller's business: nothing here commits implicitly.
"""

from __future__ import annotations

from typing import Any

from worldstate.core.dialect import Dialect, SQLiteDialect
from worldstate.core.protocols import Connection


class BaseRepository:
    def __init__(self, conn: Connection, dialect: Dialect | None = None) -> None:
        self.conn = conn
        self.dialect: Dialect = dialect or SQLiteDialect()

    def query(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Rows as dicts, keyed by ``cursor.description`` column names."""
        cursor = self.conn.execute(sql, params)
        columns = [column[0] for column in cursor.description or ()]
        return [dict(zip(columns, row, strict=True)) for row in cursor.fetchall()]

    def query_one(self, sql: str, params: tuple = ()) -> dict[str, Any] | None:
        rows = self.query(sql, params)
        return rows[0] if rows else None

    def insert_or_ignore(self, table: str, row: dict[str, Any]) -> int:
        """1 if the row was written, 0 if its key already existed."""
        cursor = self.conn.execute(self.dialect.insert_or_ignore(table, list(row)), tuple(row.values()))
        return cursor.rowcount

    def commit(self) -> None:
        self.conn.commit()

    def rollback(self) -> None:
        self.conn.rollback()


__all__ = ["BaseRepository"]
