"""Integration tests for the complete caching system."""

import asyncio
import json
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from imgcache import CacheOptions, ImageCacheManager, MaterializeError
from imgcache.cache.files import LocalFileSystem
from imgcache.cache.keys import relative_file_path
from imgcache.cache.storage import FileSystemRecordStore
from imgcache.config import CacheConfig


class ImageServer:
    """Serves image bytes through an httpx mock transport and counts requests."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.body = b"\x89PNG first"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.startswith("/broken"):
            return httpx.Response(500)
        return httpx.Response(200, content=self.body)


@pytest.fixture
def server():
    return ImageServer()


@pytest.fixture
async def cache_setup(tmp_path, server):
    """Manager backed by a persistent record store and the local disk."""
    files = LocalFileSystem(
        config=CacheConfig(), transport=httpx.MockTransport(server.handler)
    )
    store = FileSystemRecordStore(records_dir=tmp_path / "records")
    manager = ImageCacheManager(
        defaults=CacheOptions(cache_location=tmp_path / "images"),
        record_store=store,
        files=files,
    )
    yield manager, store, files
    await files.close()


class TestCacheIntegration:
    """Integration tests for cache system."""

    @pytest.mark.asyncio
    async def test_end_to_end_caching_workflow(self, cache_setup, server, tmp_path):
        """Download once, serve from disk, evict and download again."""
        manager, store, _ = cache_setup
        url = "https://cdn.example.com/img/logo.png?v=2"

        first = await manager.fetch_and_cache(url)
        second = await manager.fetch_and_cache(url)

        assert first == second
        assert first.read_bytes() == b"\x89PNG first"
        assert len(server.requests) == 1
        assert first == tmp_path / "images" / relative_file_path("https://cdn.example.com/img/logo.png")
        assert await manager.probe_cached(url)

        await manager.evict(url)
        assert not first.exists()
        assert not await manager.probe_cached(url)

        server.body = b"\x89PNG second"
        third = await manager.fetch_and_cache(url)

        assert third.read_bytes() == b"\x89PNG second"
        assert len(server.requests) == 2

    @pytest.mark.asyncio
    async def test_cache_expiration_and_refresh(self, cache_setup, server):
        """An expired record leads to a fresh download."""
        manager, store, _ = cache_setup
        url = "https://cdn.example.com/img/photo.jpg"

        path = await manager.fetch_and_cache(url)

        record_path = store._get_record_path(url)
        record = json.loads(record_path.read_text())
        record["expires_at"] = (datetime.now(UTC) - timedelta(seconds=1)).isoformat()
        record_path.write_text(json.dumps(record))

        server.body = b"refreshed"
        refreshed = await manager.fetch_and_cache(url)

        assert refreshed == path
        assert refreshed.read_bytes() == b"refreshed"
        assert len(server.requests) == 2

    @pytest.mark.asyncio
    async def test_records_survive_a_new_manager(self, cache_setup, server, tmp_path):
        """A second manager over the same directories sees earlier downloads."""
        manager, store, files = cache_setup
        url = "https://cdn.example.com/img/logo.png"
        await manager.fetch_and_cache(url)

        reopened = ImageCacheManager(
            defaults=CacheOptions(cache_location=tmp_path / "images"),
            record_store=FileSystemRecordStore(records_dir=store.records_dir),
            files=files,
        )

        assert await reopened.probe_cached(url)
        await reopened.fetch_and_cache(url)
        assert len(server.requests) == 1

    @pytest.mark.asyncio
    async def test_failed_download_leaves_no_record(self, cache_setup, server):
        """A failing download raises and nothing is cached."""
        manager, store, _ = cache_setup
        url = "https://cdn.example.com/broken/logo.png"

        with pytest.raises(MaterializeError) as exc_info:
            await manager.fetch_and_cache(url)

        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)
        assert await store.get(url) is None
        assert not await manager.probe_cached(url)

    @pytest.mark.asyncio
    async def test_concurrent_fetches_end_with_one_file(self, cache_setup):
        """Concurrent fetches of one URL all resolve to the same complete file."""
        manager, _, _ = cache_setup
        url = "https://cdn.example.com/img/logo.png"

        paths = await asyncio.gather(*(manager.fetch_and_cache(url) for _ in range(5)))

        assert len(set(paths)) == 1
        assert paths[0].read_bytes() == b"\x89PNG first"

    @pytest.mark.asyncio
    async def test_seed_inspect_and_clear(self, cache_setup, tmp_path):
        """Seeded files count towards the cache and are removed by clear_all."""
        manager, store, _ = cache_setup
        seed = tmp_path / "local.gif"
        seed.write_bytes(b"GIF89a")

        await manager.seed_and_cache("http://example.com/a.gif", seed)
        await manager.seed_and_cache("http://example.org/b.gif", seed)

        info = await manager.inspect()
        assert info.file_count == 2
        assert info.total_bytes == 12

        await manager.clear_all()

        info = await manager.inspect()
        assert info.file_count == 0
        assert await store.list_keys() == []
        assert seed.exists()

    @pytest.mark.asyncio
    async def test_corrupt_record_counts_as_a_miss(self, cache_setup, server):
        """A record file that cannot be used is replaced by a fresh download."""
        manager, store, _ = cache_setup
        url = "https://cdn.example.com/img/logo.png"
        await manager.fetch_and_cache(url)
        store._get_record_path(url).write_text(json.dumps({"key": url, "expires_at": "soon"}))

        assert not await manager.probe_cached(url)
        path = await manager.fetch_and_cache(url)

        assert path.exists()
        assert len(server.requests) == 2
        assert await manager.probe_cached(url)
