"""In-process record store."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from imgcache.cache.storage.base import RecordStore


@dataclass
class _Record:
    value: str
    created_at: datetime
    expires_at: datetime | None = None

    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return datetime.now(UTC) > self.expires_at


class MemoryRecordStore(RecordStore):
    """Record store living in a dict. Records are lost when the process exits."""

    def __init__(self) -> None:
        self._records: dict[str, _Record] = {}

    def _live(self, key: str) -> _Record | None:
        record = self._records.get(key)
        if record is not None and record.is_expired():
            del self._records[key]
            return None
        return record

    async def get(self, key: str) -> str | None:
        record = self._live(key)
        return record.value if record else None

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        now = datetime.now(UTC)
        expires_at = now + timedelta(seconds=ttl) if ttl else None
        self._records[key] = _Record(value=value, created_at=now, expires_at=expires_at)
        return True

    async def remove(self, key: str) -> bool:
        return self._records.pop(key, None) is not None

    async def flush(self) -> bool:
        self._records.clear()
        return True

    async def get_metadata(self, key: str) -> dict[str, Any] | None:
        record = self._live(key)
        if record is None:
            return None
        return {
            "key": key,
            "created_at": record.created_at.isoformat(),
            "expires_at": record.expires_at.isoformat() if record.expires_at else None,
        }

    async def list_keys(self, prefix: str | None = None) -> list[str]:
        return sorted(
            key
            for key in list(self._records)
            if (prefix is None or key.startswith(prefix)) and self._live(key) is not None
        )
