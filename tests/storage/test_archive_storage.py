"""Tests for the atomic image + metadata writer."""

import json

import pytest

from worldstate.core.errors import StorageError, ValidationError
from worldstate.storage.archive_storage import ArchiveStorage

IMAGE = b"RIFF\x00\x00\x00\x00WEBPVP8 fake"


def _filename(record: dict) -> str:
    return f"{record['id']}.webp"


class TestStoreArtifact:
    @pytest.mark.asyncio
    async def test_writes_image_and_sibling_metadata(self, store, metadata_factory, bucket):
        record = metadata_factory()
        result = await ArchiveStorage(store).store_artifact(bucket, _filename(record), IMAGE, record)

        stored = result.unwrap()
        assert stored.image_key == f"images/2025/11/14/{record['id']}.webp"
        assert stored.metadata_key == f"images/2025/11/14/{record['id']}.json"
        assert stored.image_url == f"/api/r2/{stored.image_key}"
        assert stored.metadata_url == f"/api/r2/{stored.metadata_key}"
        assert store.keys() == sorted([stored.image_key, stored.metadata_key])

    @pytest.mark.asyncio
    async def test_metadata_is_patched(self, store, metadata_factory, bucket):
        record = metadata_factory()
        stored = (await ArchiveStorage(store).store_artifact(bucket, _filename(record), IMAGE, record)).unwrap()

        saved = json.loads((await store.get(stored.metadata_key)).text())
        assert saved["imageUrl"] == stored.image_url
        assert saved["fileSize"] == len(IMAGE)
        assert stored.metadata.file_size == len(IMAGE)
        assert saved["paramsHash"] == record["paramsHash"]

    @pytest.mark.asyncio
    async def test_custom_public_prefix(self, store, metadata_factory, bucket):
        record = metadata_factory()
        storage = ArchiveStorage(store, public_prefix="/cdn")
        stored = (await storage.store_artifact(bucket, _filename(record), IMAGE, record)).unwrap()
        assert stored.image_url.startswith("/cdn/images/")

    @pytest.mark.asyncio
    async def test_id_mismatch_rejected(self, store, metadata_factory, bucket):
        record = metadata_factory(id="DOOM_202511141234_00000000_000000000000")
        other = metadata_factory()
        result = await ArchiveStorage(store).store_artifact(bucket, _filename(other), IMAGE, record)

        assert isinstance(result.error, ValidationError)
        assert result.error.field == "id"
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_invalid_metadata_rejected(self, store, metadata_factory, bucket):
        record = metadata_factory(seed="short")
        result = await ArchiveStorage(store).store_artifact(bucket, _filename(record), IMAGE, record)
        assert isinstance(result.error, ValidationError)
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_invalid_bucket_rejected(self, store, metadata_factory):
        record = metadata_factory()
        result = await ArchiveStorage(store).store_artifact("yesterday", _filename(record), IMAGE, record)
        assert isinstance(result.error, ValidationError)
        assert len(store) == 0


class TestAtomicity:
    @pytest.mark.asyncio
    async def test_image_failure_writes_nothing(self, failing_store_factory, metadata_factory, bucket):
        failing = failing_store_factory(fail_put=lambda key: key.endswith(".webp"))
        record = metadata_factory()
        result = await ArchiveStorage(failing).store_artifact(bucket, _filename(record), IMAGE, record)

        assert isinstance(result.error, StorageError)
        assert len(failing) == 0
        assert all(key.endswith(".webp") for key in failing.put_calls)

    @pytest.mark.asyncio
    async def test_metadata_failure_rolls_back_image(self, failing_store_factory, metadata_factory, bucket):
        failing = failing_store_factory(fail_put=lambda key: key.endswith(".json"))
        record = metadata_factory()
        result = await ArchiveStorage(failing).store_artifact(bucket, _filename(record), IMAGE, record)

        assert isinstance(result.error, StorageError)
        assert "rolled back" in result.error.message
        assert len(failing) == 0
        assert failing.delete_calls == [f"images/2025/11/14/{record['id']}.webp"]

    @pytest.mark.asyncio
    async def test_failed_rollback_still_reports_metadata_error(
        self, failing_store_factory, metadata_factory, bucket
    ):
        failing = failing_store_factory(
            fail_put=lambda key: key.endswith(".json"),
            fail_delete=lambda key: True,
        )
        record = metadata_factory()
        result = await ArchiveStorage(failing).store_artifact(bucket, _filename(record), IMAGE, record)

        assert isinstance(result.error, StorageError)
        assert result.error.key.endswith(".json")
