"""Exceptions raised by the image cache."""

from pathlib import Path


class ImageCacheError(Exception):
    """Base exception for image cache errors."""
    pass


class NotCacheableError(ImageCacheError, ValueError):
    """Raised when a URL is not an http(s) URL and cannot be cached."""

    def __init__(self, url: object) -> None:
        self.url = url
        super().__init__(f"Url is not cacheable: {url!r}")


class MaterializeError(ImageCacheError):
    """Raised when producing the cached file (download, copy) fails.

    The collaborator error is chained as ``__cause__``. No record is
    written and a partially written file is left in place.
    """

    def __init__(self, url: str, file_path: Path, message: str) -> None:
        self.url = url
        self.file_path = file_path
        super().__init__(f"Failed to cache {url} at {file_path}: {message}")
