"""File system based record store, persistent across processes."""

import asyncio
import hashlib
import json
import logging
import shutil
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from imgcache.cache.storage.base import RecordStore

logger = logging.getLogger(__name__)


class FileSystemRecordStore(RecordStore):
    """Record store keeping one JSON document per URL on disk."""

    def __init__(self, records_dir: Path | None = None):
        """Initialize filesystem storage.

        Args:
            records_dir: Directory for record files. Defaults to .cache/image-records
        """
        self.records_dir = records_dir or Path.cwd() / ".cache" / "image-records"
        self.records_dir.mkdir(parents=True, exist_ok=True)

    def _get_record_path(self, key: str) -> Path:
        """Get the record file path for a key."""
        key_hash = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.records_dir / f"{key_hash}.json"

    def _is_expired(self, record: dict[str, Any]) -> bool:
        expires_at = record.get("expires_at")
        if not expires_at:
            return False
        return datetime.now(UTC) > datetime.fromisoformat(expires_at)

    async def _read(self, record_path: Path) -> dict[str, Any] | None:
        """Parse a record file, or return None when it is not a usable record."""
        try:
            record = json.loads(await asyncio.to_thread(record_path.read_text))
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None

        if not isinstance(record, dict):
            return None
        if not isinstance(record.get("key"), str) or not isinstance(record.get("value"), str):
            return None
        try:
            self._is_expired(record)
        except (ValueError, TypeError):
            return None
        return record

    async def _discard(self, record_path: Path) -> None:
        logger.warning(f"Discarding unreadable record file {record_path}")
        await asyncio.to_thread(record_path.unlink, missing_ok=True)

    async def _load(self, key: str) -> dict[str, Any] | None:
        """Load a live record, dropping expired or unreadable files."""
        record_path = self._get_record_path(key)
        if not record_path.exists():
            return None

        record = await self._read(record_path)
        if record is None:
            await self._discard(record_path)
            return None

        if record["key"] != key or self._is_expired(record):
            await asyncio.to_thread(record_path.unlink, missing_ok=True)
            return None

        return record

    async def get(self, key: str) -> str | None:
        """Retrieve the relative file path stored for a key."""
        record = await self._load(key)
        if record is None:
            return None
        return record.get("value")

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """Store a record, replacing any previous one."""
        now = datetime.now(UTC)
        record: dict[str, Any] = {
            "key": key,
            "value": value,
            "created_at": now.isoformat(),
        }
        if ttl:
            record["expires_at"] = (now + timedelta(seconds=ttl)).isoformat()

        await asyncio.to_thread(
            self._get_record_path(key).write_text, json.dumps(record, indent=2)
        )
        return True

    async def remove(self, key: str) -> bool:
        """Remove a record by key."""
        record_path = self._get_record_path(key)
        if not record_path.exists():
            return False
        await asyncio.to_thread(record_path.unlink, missing_ok=True)
        return True

    async def flush(self) -> bool:
        """Remove all records."""
        if self.records_dir.exists():
            await asyncio.to_thread(shutil.rmtree, self.records_dir)
        self.records_dir.mkdir(parents=True, exist_ok=True)
        return True

    async def get_metadata(self, key: str) -> dict[str, Any] | None:
        """Get metadata about a live record."""
        record = await self._load(key)
        if record is None:
            return None
        return {name: value for name, value in record.items() if name != "value"}

    async def list_keys(self, prefix: str | None = None) -> list[str]:
        """List live record keys, optionally filtered by prefix."""
        keys = []
        for record_path in self.records_dir.glob("*.json"):
            record = await self._read(record_path)
            if record is None:
                await self._discard(record_path)
                continue
            key = record["key"]
            if prefix is not None and not key.startswith(prefix):
                continue
            if await self._load(key) is not None:
                keys.append(key)
        return sorted(keys)
