"""Caching infrastructure for remote images."""

from imgcache.cache.files import FileOperations, LocalFileSystem
from imgcache.cache.manager import ImageCacheManager
from imgcache.cache.models import CacheInfo, CacheOptions, LookupStatus, ResolveResult
from imgcache.cache.storage.base import RecordStore
from imgcache.cache.storage.filesystem import FileSystemRecordStore
from imgcache.cache.storage.memory import MemoryRecordStore

__all__ = [
    "CacheInfo",
    "CacheOptions",
    "FileOperations",
    "FileSystemRecordStore",
    "ImageCacheManager",
    "LocalFileSystem",
    "LookupStatus",
    "MemoryRecordStore",
    "RecordStore",
    "ResolveResult",
]
