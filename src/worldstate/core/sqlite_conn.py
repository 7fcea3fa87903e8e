"""
sqlite3 behind the :class:`~worldstate.core.protocols.Connection` contract.

File databases get their parent directory created, so ``--data-dir`` can
point at a fresh location.

    conn = SqliteConnection(settings.resolved_database_path)
    ArchiveIndex(conn).ensure_schema()
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

MEMORY = ":memory:"


class SqliteConnection:
    def __init__(self, path: str | Path = MEMORY) -> None:
        self.path = str(path)
        if self.path != MEMORY:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        return self._conn.execute(sql, params)

    def executemany(self, sql: str, params: list[tuple]) -> sqlite3.Cursor:
        return self._conn.executemany(sql, params)

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    def __repr__(self) -> str:
        return f"SqliteConnection({self.path!r})"


__all__ = ["SqliteConnection"]
