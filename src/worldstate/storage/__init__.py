"""
Storage layer.

- object_store: async key/value blob stores
- archive_storage: atomic image + metadata writes
- archive_index: relational index with keyset pagination
- state: published GlobalState (compare-and-swap) and per-symbol state
"""

from worldstate.storage.archive_index import ArchiveIndex, ArchiveItem, ArchivePage
from worldstate.storage.archive_storage import ArchiveStorage, StoredArtifact
from worldstate.storage.object_store import InMemoryObjectStore, LocalObjectStore, ObjectStore
from worldstate.storage.state import GlobalState, StateStore, TokenState

__all__ = [
    "ObjectStore",
    "InMemoryObjectStore",
    "LocalObjectStore",
    "ArchiveStorage",
    "StoredArtifact",
    "ArchiveIndex",
    "ArchiveItem",
    "ArchivePage",
    "GlobalState",
    "TokenState",
    "StateStore",
]
