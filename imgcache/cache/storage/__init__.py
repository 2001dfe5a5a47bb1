"""Record stores mapping canonical URLs to cached file paths."""

from imgcache.cache.storage.base import RecordStore
from imgcache.cache.storage.filesystem import FileSystemRecordStore
from imgcache.cache.storage.memory import MemoryRecordStore

__all__ = ["RecordStore", "FileSystemRecordStore", "MemoryRecordStore"]
