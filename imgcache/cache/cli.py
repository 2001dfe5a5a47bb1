"""CLI commands for image cache management."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from imgcache.cache.manager import ImageCacheManager
from imgcache.cache.storage.filesystem import FileSystemRecordStore
from imgcache.config import get_settings
from imgcache.errors.exceptions import ImageCacheError
from imgcache.errors.logger import get_logger

USAGE = "Usage: imgcache [fetch URL|seed URL PATH|probe URL|evict URL|info|clear --confirm]"


def build_manager() -> ImageCacheManager:
    """Create a manager whose records survive between invocations."""
    settings = get_settings()
    return ImageCacheManager(
        record_store=FileSystemRecordStore(settings.cache.records_dir),
        error_logger=get_logger(),
    )


async def fetch(manager: ImageCacheManager, url: str) -> dict[str, Any]:
    """Download a URL into the cache."""
    file_path = await manager.fetch_and_cache(url)
    return {"url": url, "path": str(file_path)}


async def seed(manager: ImageCacheManager, url: str, local_path: str) -> dict[str, Any]:
    """Seed the cache for a URL with a local file."""
    file_path = await manager.seed_and_cache(url, Path(local_path))
    return {"url": url, "path": str(file_path)}


async def probe(manager: ImageCacheManager, url: str) -> dict[str, Any]:
    """Report whether a URL is cached."""
    return {"url": url, "cached": await manager.probe_cached(url)}


async def evict(manager: ImageCacheManager, url: str) -> dict[str, Any]:
    """Remove a URL from the cache."""
    await manager.evict(url)
    return {"url": url, "evicted": True}


async def cache_info(manager: ImageCacheManager) -> dict[str, Any]:
    """Get current cache statistics."""
    info = await manager.inspect()
    records = await manager.record_store.list_keys()
    return {
        "cache_directory": str(manager.defaults.cache_location),
        "file_count": info.file_count,
        "total_size_bytes": info.total_bytes,
        "records": len(records),
    }


async def clear_cache(manager: ImageCacheManager, confirm: bool = False) -> bool:
    """Clear all cached files and records.

    Args:
        manager: Cache manager to clear
        confirm: Must be True to actually clear the cache

    Returns:
        True if cache was cleared
    """
    if not confirm:
        print("Cache clear cancelled. Pass --confirm to clear.")
        return False

    await manager.clear_all()
    print("Cache cleared successfully")
    return True


async def run(args: list[str]) -> int:
    """Run one command and return the exit code."""
    command, params = args[0], args[1:]
    manager = build_manager()
    result: Any

    try:
        if command == "fetch" and len(params) == 1:
            result = await fetch(manager, params[0])
        elif command == "seed" and len(params) == 2:
            result = await seed(manager, params[0], params[1])
        elif command == "probe" and len(params) == 1:
            result = await probe(manager, params[0])
        elif command == "evict" and len(params) == 1:
            result = await evict(manager, params[0])
        elif command == "info":
            result = await cache_info(manager)
        elif command == "clear":
            return 0 if await clear_cache(manager, "--confirm" in params) else 1
        else:
            print(f"Unknown command: {' '.join(args)}")
            print(USAGE)
            return 1
    except ImageCacheError as e:
        print(json.dumps({"error": type(e).__name__, "message": str(e)}, indent=2))
        return 1
    finally:
        await manager.close()

    print(json.dumps(result, indent=2, default=str))
    return 0


def main() -> None:
    """CLI entry point for cache management."""
    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(1)

    sys.exit(asyncio.run(run(sys.argv[1:])))


if __name__ == "__main__":
    main()
