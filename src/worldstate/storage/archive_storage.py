"""
Atomic two-object artifact writes.

Stores an image and its JSON metadata side by side. The pair is written
image first, metadata second; if the metadata write fails the image is
deleted again, so a failed call leaves no durable change behind.

Architecture:
    ::

        store_artifact(bucket, filename, bytes, metadata)
            │ 1. validate metadata (schema), id == filename stem,
            │    image key and metadata key agree except extension
            │ 2. patch imageUrl / fileSize
            ▼
        put images/Y/M/D/{id}.webp ──Err──► StorageError (nothing written)
            │
            ▼
        put images/Y/M/D/{id}.json ──Err──► delete image (best effort)
            │                               └─► StorageError
            ▼
        Ok(StoredArtifact)

Guardrails:
    ❌ DON'T: Write metadata before the image
    ✅ DO: Treat any Err from store_artifact as "nothing was stored"

Tags:
    storage, atomicity, rollback, archive
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from worldstate.core.errors import StorageError, ValidationError
from worldstate.core.logging import get_logger
from worldstate.core.result import Err, Ok, Result
from worldstate.domain.archive import (
    DEFAULT_PUBLIC_PREFIX,
    IMAGE_EXTENSION,
    METADATA_EXTENSION,
    ArchiveMetadata,
    build_archive_key,
    build_public_path,
    extract_id_from_filename,
    metadata_key_for,
)
from worldstate.storage.object_store import ObjectStore, put_bytes, put_json

logger = get_logger(__name__)

IMAGE_CONTENT_TYPE = "image/webp"


@dataclass(frozen=True, slots=True)
class StoredArtifact:
    image_key: str
    metadata_key: str
    image_url: str
    metadata_url: str
    metadata: ArchiveMetadata


class ArchiveStorage:
    def __init__(self, store: ObjectStore, *, public_prefix: str = DEFAULT_PUBLIC_PREFIX):
        self.store = store
        self.public_prefix = public_prefix

    async def store_artifact(
        self,
        minute_bucket: str,
        filename: str,
        image_bytes: bytes,
        metadata: ArchiveMetadata | dict[str, Any],
    ) -> Result[StoredArtifact]:
        try:
            parsed = ArchiveMetadata.parse(metadata)
        except ValidationError as e:
            return Err(e.with_context(stage="archive_storage"))

        expected_id = extract_id_from_filename(filename)
        if parsed.id != expected_id:
            return Err(
                ValidationError(
                    f"Metadata ID ({parsed.id}) does not match filename ({expected_id})",
                    field="id",
                    value=parsed.id,
                )
            )

        try:
            image_key = build_archive_key(minute_bucket, filename)
        except ValidationError as e:
            return Err(e)
        metadata_key = metadata_key_for(image_key)
        if image_key.removesuffix(IMAGE_EXTENSION) != metadata_key.removesuffix(METADATA_EXTENSION):
            return Err(ValidationError("Image and metadata keys do not match", field="filename", value=filename))

        image_url = build_public_path(image_key, self.public_prefix)
        patched = parsed.model_copy(update={"image_url": image_url, "file_size": len(image_bytes)})

        image_put = await put_bytes(self.store, image_key, image_bytes, IMAGE_CONTENT_TYPE)
        if image_put.is_err():
            logger.error("archive_storage.image_put.error", key=image_key, error=str(image_put.error))
            return Err(image_put.error)

        metadata_put = await put_json(self.store, metadata_key, patched.to_json_dict())
        if metadata_put.is_err():
            await self._rollback(image_key)
            return Err(
                StorageError(
                    f"Metadata save failed after image save: {metadata_put.error}. "
                    "Image has been rolled back.",
                    op="put",
                    key=metadata_key,
                    cause=metadata_put.error,
                )
            )

        logger.info("archive_storage.stored", image_key=image_key, file_size=len(image_bytes))
        return Ok(
            StoredArtifact(
                image_key=image_key,
                metadata_key=metadata_key,
                image_url=image_url,
                metadata_url=build_public_path(metadata_key, self.public_prefix),
                metadata=patched,
            )
        )

    async def _rollback(self, image_key: str) -> None:
        try:
            await self.store.delete(image_key)
        except Exception as e:  # noqa: BLE001
            # Reported error stays the metadata failure
            logger.error("archive_storage.rollback.error", key=image_key, error=str(e))
        else:
            logger.warning("archive_storage.rollback", key=image_key)


__all__ = ["ArchiveStorage", "StoredArtifact"]
