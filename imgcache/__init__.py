"""Local disk cache for remote images."""

from imgcache.cache import CacheInfo, CacheOptions, ImageCacheManager
from imgcache.errors.exceptions import ImageCacheError, MaterializeError, NotCacheableError

__all__ = [
    "CacheInfo",
    "CacheOptions",
    "ImageCacheManager",
    "ImageCacheError",
    "MaterializeError",
    "NotCacheableError",
]
