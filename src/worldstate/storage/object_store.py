"""
Key/value blob store used for artifacts and state.

Two implementations share the async :class:`ObjectStore` protocol:

- :class:`InMemoryObjectStore` for tests and dry runs
- :class:`LocalObjectStore` backed by a directory tree

Store methods raise on failure (``OSError`` or :class:`StorageError`).
The ``*_json`` / ``put_bytes`` helpers wrap them and return ``Result`` so
the pipeline can inspect the error kind instead of catching.

Listing follows the usual cloud object-store contract: keys come back in
lexicographic order, at most ``limit`` per page, with ``truncated`` set and
an opaque ``cursor`` to resume from when more remain.

Examples:
    >>> store = InMemoryObjectStore()
    >>> await store.put("state/global.json", b"{}", "application/json")
    >>> page = await store.list("state/")
    >>> [o.key for o in page.objects]
    ['state/global.json']

Tags:
    storage, object-store, async
"""

from __future__ import annotations

import asyncio
import json
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from worldstate.core.errors import StorageError, WorldStateError
from worldstate.core.logging import get_logger
from worldstate.core.result import Err, Ok, Result

logger = get_logger(__name__)

DEFAULT_LIST_LIMIT = 1000
JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True, slots=True)
class StoredObject:
    key: str
    body: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.body)

    def text(self) -> str:
        return self.body.decode("utf-8")


@dataclass(frozen=True, slots=True)
class ObjectInfo:
    key: str
    size: int


@dataclass(frozen=True, slots=True)
class ObjectListing:
    objects: list[ObjectInfo] = field(default_factory=list)
    truncated: bool = False
    cursor: str | None = None


@runtime_checkable
class ObjectStore(Protocol):
    async def put(self, key: str, data: bytes | str, content_type: str | None = None) -> None:
        ...

    async def get(self, key: str) -> StoredObject | None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def list(
        self, prefix: str = "", cursor: str | None = None, limit: int = DEFAULT_LIST_LIMIT
    ) -> ObjectListing:
        ...


def _to_bytes(data: bytes | str) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


def _page(
    keys_and_sizes: list[tuple[str, int]], prefix: str, cursor: str | None, limit: int
) -> ObjectListing:
    if limit < 1:
        raise StorageError(f"List limit must be positive, got {limit}", op="list", key=prefix)
    matching = sorted(
        (key, size)
        for key, size in keys_and_sizes
        if key.startswith(prefix) and (cursor is None or key > cursor)
    )
    page = matching[:limit]
    truncated = len(matching) > limit
    return ObjectListing(
        objects=[ObjectInfo(key, size) for key, size in page],
        truncated=truncated,
        cursor=page[-1][0] if truncated else None,
    )


class InMemoryObjectStore:
    """Dict-backed store."""

    def __init__(self) -> None:
        self._objects: dict[str, StoredObject] = {}

    async def put(self, key: str, data: bytes | str, content_type: str | None = None) -> None:
        self._objects[key] = StoredObject(key, _to_bytes(data), content_type)

    async def get(self, key: str) -> StoredObject | None:
        return self._objects.get(key)

    async def delete(self, key: str) -> None:
        self._objects.pop(key, None)

    async def list(
        self, prefix: str = "", cursor: str | None = None, limit: int = DEFAULT_LIST_LIMIT
    ) -> ObjectListing:
        return _page([(k, o.size) for k, o in self._objects.items()], prefix, cursor, limit)

    def keys(self) -> list[str]:
        return sorted(self._objects)

    def __contains__(self, key: str) -> bool:
        return key in self._objects

    def __len__(self) -> int:
        return len(self._objects)


class LocalObjectStore:
    """Directory-backed store; keys are relative POSIX paths under ``root``."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path(self, key: str, op: str) -> Path:
        parts = key.split("/")
        if not key or key.startswith("/") or any(part in ("", ".", "..") for part in parts):
            raise StorageError(f"Invalid object key: {key!r}", op=op, key=key)
        return self.root.joinpath(*parts)

    async def put(self, key: str, data: bytes | str, content_type: str | None = None) -> None:
        path = self._path(key, "put")
        body = _to_bytes(data)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_name(path.name + ".tmp")
            tmp.write_bytes(body)
            tmp.replace(path)

        await asyncio.to_thread(_write)

    async def get(self, key: str) -> StoredObject | None:
        path = self._path(key, "get")

        def _read() -> bytes | None:
            try:
                return path.read_bytes()
            except FileNotFoundError:
                return None

        body = await asyncio.to_thread(_read)
        if body is None:
            return None
        return StoredObject(key, body, mimetypes.guess_type(path.name)[0])

    async def delete(self, key: str) -> None:
        path = self._path(key, "delete")
        await asyncio.to_thread(path.unlink, missing_ok=True)

    async def list(
        self, prefix: str = "", cursor: str | None = None, limit: int = DEFAULT_LIST_LIMIT
    ) -> ObjectListing:
        def _scan() -> list[tuple[str, int]]:
            if not self.root.exists():
                return []
            return [
                (path.relative_to(self.root).as_posix(), path.stat().st_size)
                for path in self.root.rglob("*")
                if path.is_file() and not path.name.endswith(".tmp")
            ]

        return _page(await asyncio.to_thread(_scan), prefix, cursor, limit)


# =============================================================================
# RESULT HELPERS
# =============================================================================


def _storage_error(message: str, *, op: str, key: str, cause: Exception) -> StorageError:
    if isinstance(cause, StorageError):
        return cause
    return StorageError(f"{message}: {cause}", op=op, key=key, cause=cause)


async def put_bytes(
    store: ObjectStore, key: str, data: bytes, content_type: str | None = None
) -> Result[None]:
    try:
        await store.put(key, data, content_type)
    except (OSError, WorldStateError) as e:
        return Err(_storage_error("Object put failed", op="put", key=key, cause=e))
    return Ok(None)


async def put_json(store: ObjectStore, key: str, data: Any) -> Result[None]:
    try:
        body = json.dumps(data, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        return Err(StorageError(f"JSON encode failed: {e}", op="put", key=key, cause=e))
    try:
        await store.put(key, body, JSON_CONTENT_TYPE)
    except (OSError, WorldStateError) as e:
        return Err(_storage_error("JSON put failed", op="put", key=key, cause=e))
    return Ok(None)


async def get_json(store: ObjectStore, key: str) -> Result[Any | None]:
    """``Ok(None)`` when the key does not exist."""
    try:
        obj = await store.get(key)
        if obj is None:
            return Ok(None)
        return Ok(json.loads(obj.text()))
    except (OSError, WorldStateError, ValueError) as e:
        return Err(_storage_error("JSON get failed", op="get", key=key, cause=e))


__all__ = [
    "DEFAULT_LIST_LIMIT",
    "StoredObject",
    "ObjectInfo",
    "ObjectListing",
    "ObjectStore",
    "InMemoryObjectStore",
    "LocalObjectStore",
    "put_bytes",
    "put_json",
    "get_json",
]
