"""Models shared by the image cache manager and its collaborators."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from imgcache.config import DEFAULT_TTL, CacheConfig


class CacheOptions(BaseModel):
    """Options controlling how a URL is cached."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    headers: dict[str, str] = Field(default_factory=dict)
    ttl: int = DEFAULT_TTL  # in seconds
    use_query_params_in_cache_key: bool | tuple[str, ...] = False
    cache_location: Path
    allow_self_signed_ssl: bool = False

    @field_validator("use_query_params_in_cache_key", mode="before")
    @classmethod
    def normalize_query_params(cls, v: Any) -> Any:
        """Accept any collection of parameter names, keeping its order."""
        if isinstance(v, str):
            return (v,)
        if isinstance(v, (list, set, frozenset)):
            return tuple(sorted(v) if isinstance(v, (set, frozenset)) else v)
        return v

    @field_validator("ttl")
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        """Ensure ttl is positive."""
        if v <= 0:
            raise ValueError("ttl must be a positive number of seconds")
        return v

    @classmethod
    def from_config(cls, config: CacheConfig, default_cache_dir: Path) -> "CacheOptions":
        """Build process-wide defaults from settings."""
        return cls(
            ttl=config.ttl,
            use_query_params_in_cache_key=config.use_query_params,
            cache_location=config.cache_dir or default_cache_dir,
            allow_self_signed_ssl=config.allow_self_signed_ssl,
        )

    def merged(self, overrides: "CacheOptions | Mapping[str, Any] | None" = None) -> "CacheOptions":
        """Return a copy with the given fields replaced.

        A ``CacheOptions`` instance only overrides the fields that were set
        explicitly when it was built. ``self`` is never modified.
        """
        if overrides is None:
            return self
        if isinstance(overrides, CacheOptions):
            overrides = {name: getattr(overrides, name) for name in overrides.model_fields_set}
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data.update(overrides)
        return type(self).model_validate(data)


@dataclass
class CacheInfo:
    """Aggregate statistics about the cache directory."""

    file_count: int
    total_bytes: int
    files: list[Path]


class LookupStatus(Enum):
    """Outcome of looking a URL up in the cache."""

    HIT = "hit"
    MISS = "miss"


@dataclass
class ResolveResult:
    """Where a URL's file lives and whether it had to be produced."""

    status: LookupStatus
    file_path: Path

    @property
    def hit(self) -> bool:
        return self.status is LookupStatus.HIT
