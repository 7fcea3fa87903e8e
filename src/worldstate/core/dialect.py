"""
SQL fragments that differ between index backends.

Only two things vary for the archive index: how bind parameters are
spelled, and how an insert skips a row whose key already exists.

    ============  ============  ===================================
    backend       placeholder   insert-or-ignore
    ============  ============  ===================================
    sqlite        ``?``         ``INSERT OR IGNORE INTO ...``
    postgresql    ``%s``        ``INSERT ... ON CONFLICT DO NOTHING``
    ============  ============  ===================================

    >>> get_dialect("postgres").insert_or_ignore("t", ["a"])
    'INSERT INTO t (a) VALUES (%s) ON CONFLICT DO NOTHING'
"""

from __future__ import annotations

from typing import Protocol


class Dialect(Protocol):
    name: str
    param: str

    def placeholder(self, index: int) -> str:
        ...

    def placeholders(self, count: int) -> str:
        ...

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        ...

    def table_exists_query(self) -> str:
        ...


class _BaseDialect:
    name = ""
    param = "?"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        """Bind marker for the ``index``-th parameter (positional styles ignore it)."""
        return self.param

    def placeholders(self, count: int) -> str:
        return ", ".join([self.param] * count)

    def _insert(self, table: str, columns: list[str]) -> str:
        return f"INTO {table} ({', '.join(columns)}) VALUES ({self.placeholders(len(columns))})"


class SQLiteDialect(_BaseDialect):
    name = "sqlite"
    param = "?"

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        return f"INSERT OR IGNORE {self._insert(table, columns)}"

    def table_exists_query(self) -> str:
        return "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?"


class PostgreSQLDialect(_BaseDialect):
    name = "postgresql"
    param = "%s"

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        return f"INSERT {self._insert(table, columns)} ON CONFLICT DO NOTHING"

    def table_exists_query(self) -> str:
        return "SELECT table_name FROM information_schema.tables WHERE table_name = %s"


_ALIASES: dict[str, type[_BaseDialect]] = {
    "sqlite": SQLiteDialect,
    "postgresql": PostgreSQLDialect,
    "postgres": PostgreSQLDialect,
}


def get_dialect(db_type: str) -> Dialect:
    """
    Raises:
        ValueError: For backends the index does not support
    """
    try:
        return _ALIASES[db_type.lower()]()
    except KeyError:
        raise ValueError(f"Unknown dialect '{db_type}' (supported: sqlite, postgresql)") from None


__all__ = ["Dialect", "SQLiteDialect", "PostgreSQLDialect", "get_dialect"]
