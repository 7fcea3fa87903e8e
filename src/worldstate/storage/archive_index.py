"""
Queryable archive index with keyset pagination.

A relational index over stored artifacts so the archive can be browsed
without listing the object store. Inserts are idempotent (a duplicate id
is ignored, never overwritten), which makes orchestrator retries and the
backfill job safe to repeat.

Architecture:
    ::

        list_items(limit=3)                  ORDER BY ts DESC, id DESC
        ┌──────────────────────────────┐
        │ ts=120 id=c                  │
        │ ts=120 id=b                  │
        │ ts=100 id=z   ◄── cursor {ts:100, id:z}
        └──────────────────────────────┘
        list_items(limit=3, cursor=...)
            WHERE ts < 100 OR (ts = 100 AND id < 'z')

    Date filters bound ``ts`` to ``[start 00:00Z, end 00:00Z + 1 day)``.

Guardrails:
    ❌ DON'T: Build cursors by hand
    ✅ DO: Pass back the opaque ``ArchivePage.cursor`` unchanged

Tags:
    archive, index, pagination, keyset, repository
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field, fields
from datetime import UTC, date, datetime, timedelta
from typing import Any

from worldstate.core.dialect import Dialect
from worldstate.core.errors import StorageError, ValidationError
from worldstate.core.hashing import stable_serialize
from worldstate.core.logging import get_logger
from worldstate.core.protocols import Connection
from worldstate.core.repository import BaseRepository
from worldstate.core.result import Err, Ok, Result
from worldstate.core.schema import ARCHIVE_COLUMNS, ARCHIVE_TABLE, apply_schema
from worldstate.core.timestamps import iso_to_epoch
from worldstate.domain.archive import ArchiveCursor, ArchiveMetadata

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20

_DB_ERRORS: tuple[type[Exception], ...] = (sqlite3.Error, OSError)


@dataclass(frozen=True, slots=True)
class ArchiveItem:
    """One index row as returned by ``list_items``."""

    id: str
    ts: int
    timestamp: str
    minute_bucket: str
    params_hash: str
    seed: str
    image_url: str
    file_size: int
    mc_rounded_json: str
    visual_params_json: str
    prompt: str
    negative: str

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ArchiveItem:
        return cls(**{name: row[name] for name in ITEM_COLUMNS})

    def to_metadata(self) -> ArchiveMetadata:
        """
        Raises:
            ValidationError: If the stored JSON columns no longer validate
        """
        try:
            mc_rounded = json.loads(self.mc_rounded_json)
            visual_params = json.loads(self.visual_params_json)
        except ValueError as e:
            raise ValidationError(f"Corrupt index row {self.id}", field="id", value=self.id, cause=e) from e
        return ArchiveMetadata.parse(
            {
                "id": self.id,
                "timestamp": self.timestamp,
                "minuteBucket": self.minute_bucket,
                "paramsHash": self.params_hash,
                "seed": self.seed,
                "mcRounded": mc_rounded,
                "visualParams": visual_params,
                "imageUrl": self.image_url,
                "fileSize": self.file_size,
                "prompt": self.prompt,
                "negative": self.negative,
            }
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ts": self.ts,
            "timestamp": self.timestamp,
            "minuteBucket": self.minute_bucket,
            "paramsHash": self.params_hash,
            "seed": self.seed,
            "imageUrl": self.image_url,
            "fileSize": self.file_size,
            "mcRoundedJson": self.mc_rounded_json,
            "visualParamsJson": self.visual_params_json,
            "prompt": self.prompt,
            "negative": self.negative,
        }


ITEM_COLUMNS: tuple[str, ...] = tuple(f.name for f in fields(ArchiveItem))


@dataclass(frozen=True, slots=True)
class ArchivePage:
    items: list[ArchiveItem] = field(default_factory=list)
    cursor: str | None = None
    has_more: bool = False


def date_range_to_ts(start_date: str | None, end_date: str | None) -> tuple[int | None, int | None]:
    """
    ``(start 00:00Z, end 00:00Z + 1 day)`` as epoch seconds; end is exclusive.

    Raises:
        ValidationError: If a date is not ``YYYY-MM-DD``
    """

    def _day_start(value: str, name: str) -> datetime:
        try:
            day = date.fromisoformat(value)
        except ValueError as e:
            raise ValidationError(
                f"Invalid {name}: {value}", field=name, value=value, constraint="YYYY-MM-DD", cause=e
            ) from e
        return datetime(day.year, day.month, day.day, tzinfo=UTC)

    start_ts = int(_day_start(start_date, "start_date").timestamp()) if start_date else None
    end_ts = (
        int((_day_start(end_date, "end_date") + timedelta(days=1)).timestamp()) if end_date else None
    )
    return start_ts, end_ts


class ArchiveIndex(BaseRepository):
    """``archive_items`` repository."""

    def __init__(self, conn: Connection, dialect: Dialect | None = None) -> None:
        super().__init__(conn, dialect)

    def ensure_schema(self) -> None:
        apply_schema(self.conn)

    # -- writes -------------------------------------------------------------

    def insert(self, metadata: ArchiveMetadata, object_key: str) -> Result[bool]:
        """
        Insert one artifact; ``Ok(False)`` when the id already exists.

        Existing rows are never overwritten.
        """
        try:
            row = {
                "id": metadata.id,
                "ts": iso_to_epoch(metadata.timestamp),
                "timestamp": metadata.timestamp,
                "minute_bucket": metadata.minute_bucket,
                "params_hash": metadata.params_hash,
                "seed": metadata.seed,
                "r2_key": object_key,
                "image_url": metadata.image_url,
                "file_size": metadata.file_size,
                "mc_rounded_json": stable_serialize(metadata.mc_rounded, sort_keys=False),
                "visual_params_json": stable_serialize(metadata.visual_params, sort_keys=False),
                "prompt": metadata.prompt,
                "negative": metadata.negative,
            }
        except ValueError as e:
            return Err(
                ValidationError(
                    f"Invalid timestamp: {metadata.timestamp}", field="timestamp", value=metadata.timestamp, cause=e
                )
            )

        try:
            inserted = self.insert_or_ignore(ARCHIVE_TABLE, {c: row[c] for c in ARCHIVE_COLUMNS}) > 0
            self.commit()
        except _DB_ERRORS as e:
            self.rollback()
            logger.error("archive_index.insert.error", id=metadata.id, error=str(e))
            return Err(StorageError(f"Index insert failed: {e}", op="put", key=metadata.id, cause=e))

        logger.debug("archive_index.insert", id=metadata.id, key=object_key, inserted=inserted)
        return Ok(inserted)

    # -- reads --------------------------------------------------------------

    def list_items(
        self,
        *,
        limit: int = DEFAULT_PAGE_SIZE,
        cursor: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> Result[ArchivePage]:
        """Up to ``limit`` rows ordered by ``(ts DESC, id DESC)``."""
        if not 1 <= limit <= MAX_PAGE_SIZE:
            return Err(
                ValidationError(
                    f"limit must be between 1 and {MAX_PAGE_SIZE}",
                    field="limit",
                    value=limit,
                    constraint=f"1..{MAX_PAGE_SIZE}",
                )
            )
        try:
            start_ts, end_ts = date_range_to_ts(start_date, end_date)
            after = ArchiveCursor.decode(cursor) if cursor else None
        except ValidationError as e:
            return Err(e)

        p = self.dialect.placeholder
        where: list[str] = []
        params: list[Any] = []
        if start_ts is not None:
            where.append(f"ts >= {p(len(params))}")
            params.append(start_ts)
        if end_ts is not None:
            where.append(f"ts < {p(len(params))}")
            params.append(end_ts)
        if after is not None:
            where.append(
                f"(ts < {p(len(params))} OR (ts = {p(len(params) + 1)} AND id < {p(len(params) + 2)}))"
            )
            params.extend([after.ts, after.ts, after.id])

        columns = ", ".join(ITEM_COLUMNS)
        sql = f"SELECT {columns} FROM {ARCHIVE_TABLE}"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += f" ORDER BY ts DESC, id DESC LIMIT {p(len(params))}"
        params.append(limit)

        try:
            rows = self.query(sql, tuple(params))
        except _DB_ERRORS as e:
            logger.error("archive_index.list.error", error=str(e))
            return Err(StorageError(f"Index list failed: {e}", op="list", key=ARCHIVE_TABLE, cause=e))

        items = [ArchiveItem.from_row(row) for row in rows]
        next_cursor = ArchiveCursor(ts=items[-1].ts, id=items[-1].id).encode() if items else None
        has_more = next_cursor is not None and len(items) == limit

        logger.debug(
            "archive_index.list",
            limit=limit,
            cursor=cursor or "none",
            start_date=start_date or "none",
            end_date=end_date or "none",
            items=len(items),
            has_more=has_more,
        )
        return Ok(ArchivePage(items=items, cursor=next_cursor, has_more=has_more))

    def get_by_id(self, item_id: str) -> Result[ArchiveMetadata | None]:
        columns = ", ".join(ITEM_COLUMNS)
        try:
            row = self.query_one(
                f"SELECT {columns} FROM {ARCHIVE_TABLE} WHERE id = {self.dialect.placeholder(0)}",
                (item_id,),
            )
        except _DB_ERRORS as e:
            logger.error("archive_index.get.error", id=item_id, error=str(e))
            return Err(StorageError(f"Index get failed: {e}", op="get", key=item_id, cause=e))

        logger.debug("archive_index.get", id=item_id, found=row is not None)
        if row is None:
            return Ok(None)
        try:
            return Ok(ArchiveItem.from_row(row).to_metadata())
        except ValidationError as e:
            return Err(e)

    def count(self) -> int:
        row = self.query_one(f"SELECT COUNT(*) AS n FROM {ARCHIVE_TABLE}")
        return int(row["n"]) if row else 0


__all__ = [
    "MAX_PAGE_SIZE",
    "DEFAULT_PAGE_SIZE",
    "ArchiveItem",
    "ArchivePage",
    "ArchiveIndex",
    "date_range_to_ts",
]
