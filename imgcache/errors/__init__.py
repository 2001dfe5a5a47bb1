"""Error types and structured error logging."""

from imgcache.errors.exceptions import ImageCacheError, MaterializeError, NotCacheableError
from imgcache.errors.logger import (
    ErrorCategory,
    ErrorSeverity,
    StructuredError,
    StructuredLogger,
    get_logger,
)

__all__ = [
    "ImageCacheError",
    "MaterializeError",
    "NotCacheableError",
    "ErrorCategory",
    "ErrorSeverity",
    "StructuredError",
    "StructuredLogger",
    "get_logger",
]
