"""Tests for URL record stores."""

import json
from datetime import UTC, datetime, timedelta

import pytest

from imgcache.cache.storage.filesystem import FileSystemRecordStore
from imgcache.cache.storage.memory import MemoryRecordStore

URL = "http://example.com/a.png"
RELATIVE_PATH = "example_com_abc/def.png"


@pytest.fixture
async def filesystem_store(tmp_path):
    """Create a FileSystemRecordStore instance with temp directory."""
    return FileSystemRecordStore(records_dir=tmp_path / "records")


@pytest.fixture
async def memory_store():
    """Create an empty MemoryRecordStore."""
    return MemoryRecordStore()


@pytest.fixture(params=["memory", "filesystem"])
async def store(request, tmp_path):
    """Each record store implementation."""
    if request.param == "memory":
        return MemoryRecordStore()
    return FileSystemRecordStore(records_dir=tmp_path / "records")


class DescribeRecordStore:
    """Behaviour shared by every record store."""

    @pytest.mark.asyncio
    async def it_stores_and_retrieves_records(self, store):
        assert await store.set(URL, RELATIVE_PATH, ttl=60)
        assert await store.get(URL) == RELATIVE_PATH

    @pytest.mark.asyncio
    async def it_returns_none_for_unknown_keys(self, store):
        assert await store.get("http://example.com/unknown.png") is None

    @pytest.mark.asyncio
    async def it_replaces_records(self, store):
        await store.set(URL, RELATIVE_PATH, ttl=60)
        await store.set(URL, "other/path.png", ttl=60)
        assert await store.get(URL) == "other/path.png"

    @pytest.mark.asyncio
    async def it_removes_records(self, store):
        await store.set(URL, RELATIVE_PATH, ttl=60)

        assert await store.remove(URL)
        assert await store.get(URL) is None
        assert not await store.remove(URL)

    @pytest.mark.asyncio
    async def it_flushes_all_records(self, store):
        urls = [f"http://example.com/{i}.png" for i in range(3)]
        for url in urls:
            await store.set(url, RELATIVE_PATH, ttl=60)

        assert await store.flush()

        for url in urls:
            assert await store.get(url) is None
        assert await store.list_keys() == []

    @pytest.mark.asyncio
    async def it_keeps_records_without_ttl(self, store):
        await store.set(URL, RELATIVE_PATH)

        metadata = await store.get_metadata(URL)

        assert await store.get(URL) == RELATIVE_PATH
        assert metadata is not None
        assert metadata.get("expires_at") is None

    @pytest.mark.asyncio
    async def it_reports_metadata(self, store):
        await store.set(URL, RELATIVE_PATH, ttl=60)

        metadata = await store.get_metadata(URL)

        assert metadata is not None
        assert metadata["key"] == URL
        assert "created_at" in metadata
        expires_at = datetime.fromisoformat(metadata["expires_at"])
        assert expires_at > datetime.now(UTC)
        assert await store.get_metadata("http://example.com/none.png") is None

    @pytest.mark.asyncio
    async def it_lists_keys_with_prefix(self, store):
        await store.set("http://a.com/1.png", RELATIVE_PATH, ttl=60)
        await store.set("http://a.com/2.png", RELATIVE_PATH, ttl=60)
        await store.set("http://b.com/1.png", RELATIVE_PATH, ttl=60)

        assert len(await store.list_keys()) == 3
        assert await store.list_keys("http://a.com/") == ["http://a.com/1.png", "http://a.com/2.png"]


class DescribeMemoryRecordStore:
    """Test the in-memory store."""

    @pytest.mark.asyncio
    async def it_drops_expired_records(self, memory_store):
        await memory_store.set(URL, RELATIVE_PATH, ttl=60)
        memory_store._records[URL].expires_at = datetime.now(UTC) - timedelta(seconds=1)

        assert await memory_store.get(URL) is None
        assert URL not in memory_store._records
        assert await memory_store.list_keys() == []


class DescribeFilesystemRecordStore:
    """Test the persistent store."""

    def _expire(self, store, key):
        record_path = store._get_record_path(key)
        record = json.loads(record_path.read_text())
        record["expires_at"] = (datetime.now(UTC) - timedelta(seconds=1)).isoformat()
        record_path.write_text(json.dumps(record))
        return record_path

    @pytest.mark.asyncio
    async def it_drops_expired_records(self, filesystem_store):
        await filesystem_store.set(URL, RELATIVE_PATH, ttl=60)
        record_path = self._expire(filesystem_store, URL)

        assert await filesystem_store.get(URL) is None
        assert not record_path.exists()

    @pytest.mark.asyncio
    async def it_survives_a_new_instance(self, filesystem_store):
        await filesystem_store.set(URL, RELATIVE_PATH, ttl=60)

        reopened = FileSystemRecordStore(records_dir=filesystem_store.records_dir)

        assert await reopened.get(URL) == RELATIVE_PATH

    @pytest.mark.asyncio
    async def it_discards_unreadable_records(self, filesystem_store):
        record_path = filesystem_store._get_record_path(URL)
        record_path.write_text("{not json")

        assert await filesystem_store.get(URL) is None
        assert not record_path.exists()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "content",
        [
            "[]",
            '"just a string"',
            json.dumps({"key": URL, "value": RELATIVE_PATH, "expires_at": "garbage"}),
            json.dumps({"key": URL, "value": RELATIVE_PATH, "expires_at": 12}),
            json.dumps({"key": URL, "value": RELATIVE_PATH, "expires_at": "2030-01-01T00:00:00"}),
            json.dumps({"key": URL, "value": None}),
            json.dumps({"value": RELATIVE_PATH}),
        ],
    )
    async def it_discards_malformed_records(self, filesystem_store, content):
        record_path = filesystem_store._get_record_path(URL)
        record_path.write_text(content)

        assert await filesystem_store.get(URL) is None
        assert not record_path.exists()

    @pytest.mark.asyncio
    async def it_stores_again_after_discarding_a_malformed_record(self, filesystem_store):
        filesystem_store._get_record_path(URL).write_text("[]")
        assert await filesystem_store.get_metadata(URL) is None

        await filesystem_store.set(URL, RELATIVE_PATH, ttl=60)

        assert await filesystem_store.get(URL) == RELATIVE_PATH

    @pytest.mark.asyncio
    async def it_skips_malformed_records_when_listing(self, filesystem_store):
        await filesystem_store.set(URL, RELATIVE_PATH, ttl=60)
        broken = filesystem_store.records_dir / "broken.json"
        broken.write_text("[]")
        bad_expiry = filesystem_store.records_dir / "bad-expiry.json"
        bad_expiry.write_text(json.dumps({"key": "http://x/1.png", "value": "v", "expires_at": "x"}))

        assert await filesystem_store.list_keys() == [URL]
        assert not broken.exists()
        assert not bad_expiry.exists()

    @pytest.mark.asyncio
    async def it_stores_one_json_document_per_url(self, filesystem_store):
        await filesystem_store.set(URL, RELATIVE_PATH, ttl=60)

        record = json.loads(filesystem_store._get_record_path(URL).read_text())

        assert record["key"] == URL
        assert record["value"] == RELATIVE_PATH
        assert "expires_at" in record

    @pytest.mark.asyncio
    async def it_recreates_the_directory_on_flush(self, filesystem_store):
        await filesystem_store.set(URL, RELATIVE_PATH, ttl=60)

        await filesystem_store.flush()

        assert filesystem_store.records_dir.is_dir()
        assert list(filesystem_store.records_dir.iterdir()) == []
