"""Abstract base class for URL record stores."""

from abc import ABC, abstractmethod
from typing import Any


class RecordStore(ABC):
    """Abstract base class for stores mapping canonical URLs to cached file paths.

    Every entry carries an expiry. Implementations must report expired
    entries as missing and drop their backing state when they notice them.
    Errors from the underlying storage propagate to the caller.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Retrieve a record by key.

        Args:
            key: The canonical URL

        Returns:
            The relative file path, or None if not found or expired
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """Store a record.

        Args:
            key: The canonical URL
            value: The relative file path
            ttl: Time to live in seconds (optional)

        Returns:
            True if stored
        """
        pass

    @abstractmethod
    async def remove(self, key: str) -> bool:
        """Remove a record by key.

        Args:
            key: The canonical URL

        Returns:
            True if removed, False if not found
        """
        pass

    @abstractmethod
    async def flush(self) -> bool:
        """Remove all records.

        Returns:
            True if successful
        """
        pass

    @abstractmethod
    async def get_metadata(self, key: str) -> dict[str, Any] | None:
        """Get metadata about a record.

        Args:
            key: The canonical URL

        Returns:
            Metadata dict with 'created_at', 'expires_at' etc., or None
        """
        pass

    @abstractmethod
    async def list_keys(self, prefix: str | None = None) -> list[str]:
        """List the keys of live records, optionally filtered by prefix."""
        pass
