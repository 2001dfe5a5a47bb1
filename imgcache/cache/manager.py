"""Image cache manager mapping URLs to locally cached files."""

import logging
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any

from imgcache.cache import keys
from imgcache.cache.files import FileOperations, LocalFileSystem
from imgcache.cache.models import CacheInfo, CacheOptions, LookupStatus, ResolveResult
from imgcache.cache.storage.base import RecordStore
from imgcache.cache.storage.memory import MemoryRecordStore
from imgcache.config import get_settings
from imgcache.errors.exceptions import MaterializeError, NotCacheableError
from imgcache.errors.logger import StructuredLogger

logger = logging.getLogger(__name__)

Materialize = Callable[[Path, CacheOptions], Awaitable[None]]
Options = CacheOptions | Mapping[str, Any] | None


class ImageCacheManager:
    """Caches remote images on disk and tracks their freshness in a record store.

    Every record maps a canonical URL to ``<host_bucket>/<cache_key>`` below
    the cache location. A record only counts while its file exists: an
    expired record, a missing record and a record whose file was removed
    are all treated as a miss and repaired by producing the file again.
    """

    def __init__(
        self,
        defaults: CacheOptions | None = None,
        record_store: RecordStore | None = None,
        files: FileOperations | None = None,
        error_logger: StructuredLogger | None = None,
    ):
        """Initialize cache manager.

        Args:
            defaults: Options used for every call unless overridden. Built from settings if omitted
            record_store: URL record store. Defaults to an in-memory store
            files: File operations. Defaults to the local disk, closed by close()
            error_logger: Structured logger receiving materialize failures
        """
        self._owns_files = files is None
        self.files = files or LocalFileSystem()
        self.record_store = record_store or MemoryRecordStore()
        self.defaults = defaults or CacheOptions.from_config(
            get_settings().cache, self.files.get_default_cache_dir()
        )
        self.error_logger = error_logger

    def is_cacheable(self, url: object) -> bool:
        """Check whether a URL can be cached (http or https)."""
        return keys.is_cacheable(url)

    def _prepare(self, url: object, options: Options) -> tuple[str, CacheOptions, str]:
        """Validate the URL and return it with merged options and its canonical form."""
        if not keys.is_cacheable(url):
            raise NotCacheableError(url)
        merged = self.defaults.merged(options)
        return str(url), merged, keys.canonicalize(str(url), merged.use_query_params_in_cache_key)

    async def _lookup(self, canonical_url: str, options: CacheOptions) -> Path | None:
        """Return the cached file for a URL, or None when it has to be produced again."""
        relative_path = await self.record_store.get(canonical_url)
        if not relative_path:
            logger.debug(f"Record miss for {canonical_url}")
            return None

        file_path = options.cache_location / relative_path
        if not await self.files.exists(file_path):
            logger.info(f"Cached file {file_path} for {canonical_url} is gone")
            return None

        logger.debug(f"Cache hit for {canonical_url}")
        return file_path

    async def _resolve(
        self,
        url: object,
        options: Options,
        materialize: Materialize,
        register: bool = True,
    ) -> ResolveResult:
        """Return the cached file for a URL, producing it on a miss.

        Args:
            url: URL to resolve
            options: Per-call option overrides
            materialize: Coroutine writing the file to the given path, given the merged options
            register: Record the file in the record store after producing it

        Raises:
            NotCacheableError: If the URL is not http(s)
            MaterializeError: If ``materialize`` fails
        """
        url, merged, canonical_url = self._prepare(url, options)

        cached_path = await self._lookup(canonical_url, merged)
        if cached_path is not None:
            return ResolveResult(status=LookupStatus.HIT, file_path=cached_path)

        relative_path = keys.relative_file_path(canonical_url)
        file_path = merged.cache_location / relative_path

        # drop the leftover of an expired or unrecorded entry
        await self.files.delete_file(file_path)

        try:
            await materialize(file_path, merged)
        except Exception as e:
            error = MaterializeError(url, file_path, str(e))
            if self.error_logger is not None:
                self.error_logger.log_error(
                    self.error_logger.create_error_from_exception(
                        e,
                        operation=materialize.__name__,
                        url=url,
                        file_path=str(file_path),
                    )
                )
            raise error from e

        if register:
            await self.record_store.set(canonical_url, relative_path, merged.ttl)
            logger.info(f"Cached {canonical_url} at {file_path}")

        return ResolveResult(status=LookupStatus.MISS, file_path=file_path)

    async def probe_cached(self, url: object, options: Options = None) -> bool:
        """Check whether a URL is cached, using the same rules as fetch_and_cache.

        Nothing is downloaded and no record is written. On a miss a stale
        file left at the URL's path is removed.
        """

        async def nothing(file_path: Path, merged: CacheOptions) -> None:
            pass

        result = await self._resolve(url, options, nothing, register=False)
        return result.hit

    async def fetch_and_cache(self, url: object, options: Options = None) -> Path:
        """Download an image and cache the result according to the given options.

        Returns:
            Absolute path of the cached file
        """

        async def download(file_path: Path, merged: CacheOptions) -> None:
            await self.files.download_file(
                str(url),
                file_path,
                headers=merged.headers,
                allow_self_signed_ssl=merged.allow_self_signed_ssl,
            )

        result = await self._resolve(url, options, download)
        return result.file_path

    async def seed_and_cache(self, url: object, local_path: Path, options: Options = None) -> Path:
        """Seed the cache for a URL with a local file.

        Returns:
            Absolute path of the cached file
        """

        async def copy(file_path: Path, merged: CacheOptions) -> None:
            await self.files.copy_file(Path(local_path), file_path)

        result = await self._resolve(url, options, copy)
        return result.file_path

    async def evict(self, url: object, options: Options = None) -> None:
        """Delete the record and the file cached for a URL."""
        _, merged, canonical_url = self._prepare(url, options)
        file_path = keys.image_file_path(canonical_url, merged.cache_location)

        await self.record_store.remove(canonical_url)
        await self.files.delete_file(file_path)
        logger.info(f"Evicted {canonical_url}")

    async def clear_all(self, options: Options = None) -> None:
        """Delete every record and every cached file."""
        merged = self.defaults.merged(options)
        await self.record_store.flush()
        await self.files.clean_dir(merged.cache_location)
        logger.info(f"Cleared cache at {merged.cache_location}")

    async def inspect(self, options: Options = None) -> CacheInfo:
        """Return the number of cached files and their total size."""
        merged = self.defaults.merged(options)
        return await self.files.get_dir_info(merged.cache_location)

    async def close(self) -> None:
        """Close the file operations this manager created itself."""
        if self._owns_files:
            await self.files.close()
