"""
Rebuild the archive index from the object store.

The object store is the source of truth for artifacts; the index can fall
behind (a failed insert during a tick is only logged). Backfill walks
``images/`` page by page, loads the metadata next to every valid image and
inserts it. Inserts ignore existing ids, so running it twice is harmless.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from worldstate.core.errors import ValidationError, WorldStateError
from worldstate.core.logging import get_logger
from worldstate.domain.archive import (
    IMAGE_EXTENSION,
    IMAGES_PREFIX,
    ArchiveMetadata,
    is_valid_archive_filename,
    metadata_key_for,
)
from worldstate.storage.archive_index import ArchiveIndex
from worldstate.storage.object_store import ObjectStore, get_json

logger = get_logger(__name__)

BACKFILL_BATCH_SIZE = 100


@dataclass(slots=True)
class BackfillReport:
    processed: int = 0
    inserted: int = 0
    skipped: int = 0
    errors: int = 0
    complete: bool = True

    def to_dict(self) -> dict:
        return asdict(self)


async def backfill_archive_index(
    store: ObjectStore,
    index: ArchiveIndex,
    *,
    batch_size: int = BACKFILL_BATCH_SIZE,
) -> BackfillReport:
    """
    Index every stored artifact that has valid metadata.

    ``skipped`` counts artifacts already in the index. A listing failure
    stops the walk and marks the report incomplete.
    """
    report = BackfillReport()
    cursor: str | None = None
    logger.info("backfill.start", batch_size=batch_size)

    while True:
        logger.debug("backfill.batch", cursor=cursor or "start")
        try:
            listing = await store.list(IMAGES_PREFIX, cursor=cursor, limit=batch_size)
        except (OSError, WorldStateError) as e:
            logger.error("backfill.list.error", cursor=cursor or "start", error=str(e))
            report.complete = False
            break

        image_keys = [
            obj.key
            for obj in listing.objects
            if obj.key.endswith(IMAGE_EXTENSION) and is_valid_archive_filename(obj.key.rsplit("/", 1)[-1])
        ]
        for image_key in image_keys:
            report.processed += 1
            await _index_one(store, index, image_key, report)

        if not listing.truncated:
            break
        cursor = listing.cursor

    logger.info("backfill.complete", **report.to_dict())
    return report


async def _index_one(store: ObjectStore, index: ArchiveIndex, image_key: str, report: BackfillReport) -> None:
    metadata_key = metadata_key_for(image_key)
    loaded = await get_json(store, metadata_key)
    if loaded.is_err():
        logger.warning("backfill.metadata.load_failed", image_key=image_key, error=str(loaded.error))
        report.errors += 1
        return
    if loaded.value is None:
        logger.warning("backfill.metadata.missing", image_key=image_key, metadata_key=metadata_key)
        report.errors += 1
        return

    try:
        metadata = ArchiveMetadata.parse(loaded.value)
    except ValidationError as e:
        logger.warning("backfill.metadata.invalid", image_key=image_key, field=e.field, error=str(e))
        report.errors += 1
        return

    inserted = index.insert(metadata, image_key)
    if inserted.is_err():
        logger.error("backfill.insert.error", id=metadata.id, error=str(inserted.error))
        report.errors += 1
    elif inserted.value:
        report.inserted += 1
    else:
        report.skipped += 1


__all__ = ["BACKFILL_BATCH_SIZE", "BackfillReport", "backfill_archive_index"]
