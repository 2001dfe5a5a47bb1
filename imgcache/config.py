"""Settings for the image cache and its error log.

Every setting can be overridden from the environment. ``ENV_FILE`` names an
optional ``.env`` file whose entries are loaded into the environment first.
"""

import os
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_TTL = 60 * 60 * 24 * 14  # 2 weeks

_BOOL_WORDS = {"true": True, "1": True, "yes": True, "false": False, "0": False, "no": False}


def _parse_bool(value: str) -> bool:
    return _BOOL_WORDS.get(value.strip().lower(), False)


def _parse_query_params(value: str) -> bool | list[str]:
    """``true``/``false`` toggle all parameters, anything else is a list of names."""
    if value.strip().lower() in _BOOL_WORDS:
        return _parse_bool(value)
    return [name.strip() for name in value.split(",") if name.strip()]


def _apply_env(data: dict[str, Any], variables: dict[str, tuple[str, Callable[[str], Any]]]) -> None:
    """Overwrite fields in ``data`` from the environment variables that are set."""
    for variable, (field, parse) in variables.items():
        if value := os.environ.get(variable):
            data[field] = parse(value)


class LoggingConfig(BaseModel):
    """Error log configuration."""

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(default="json", description="json or text")
    log_dir: Path = Field(default=Path("logs"), description="Directory for log files")
    max_bytes: int = Field(default=10 * 1024 * 1024, description="Rotate log files at this size")
    backup_count: int = Field(default=5, description="Rotated log files to keep")

    def __init__(self, **data: Any) -> None:
        """Initialize with environment variable overrides."""
        _apply_env(
            data,
            {
                "LOG_LEVEL": ("level", str),
                "LOG_FORMAT": ("format", str),
                "LOG_DIR": ("log_dir", Path),
                "LOG_MAX_BYTES": ("max_bytes", int),
                "LOG_BACKUP_COUNT": ("backup_count", int),
            },
        )
        super().__init__(**data)


class CacheConfig(BaseModel):
    """Process-wide defaults for the image cache."""

    cache_dir: Path | None = Field(
        default=None, description="Root directory for cached files (None = .cache/images)"
    )
    records_dir: Path | None = Field(
        default=None, description="Directory for persistent URL records (None = .cache/image-records)"
    )
    ttl: int = Field(default=DEFAULT_TTL, description="Record time to live in seconds")
    use_query_params: bool | list[str] = Field(
        default=False, description="Query parameters taken into account for cache keys"
    )
    allow_self_signed_ssl: bool = Field(
        default=False, description="Skip TLS certificate verification on download"
    )
    timeout: float = Field(default=30.0, description="Download timeout in seconds")
    user_agent: str = Field(default="imgcache/1.0", description="User-Agent sent on download")

    def __init__(self, **data: Any) -> None:
        """Initialize with environment variable overrides."""
        _apply_env(
            data,
            {
                "IMGCACHE_CACHE_DIR": ("cache_dir", Path),
                "IMGCACHE_RECORDS_DIR": ("records_dir", Path),
                "IMGCACHE_TTL": ("ttl", int),
                "IMGCACHE_USE_QUERY_PARAMS": ("use_query_params", _parse_query_params),
                "IMGCACHE_ALLOW_SELF_SIGNED_SSL": ("allow_self_signed_ssl", _parse_bool),
                "IMGCACHE_TIMEOUT": ("timeout", float),
                "IMGCACHE_USER_AGENT": ("user_agent", str),
            },
        )
        super().__init__(**data)


def load_env_file(env_file: Path) -> None:
    """Copy ``KEY=value`` lines of a .env file into the environment.

    Blank lines and ``#`` comments are skipped. A missing file is ignored.
    """
    if not env_file.exists():
        return

    for line in env_file.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ[key.strip()] = value.strip()


class Settings(BaseModel):
    """Main application settings."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    def __init__(self, **data: Any) -> None:
        """Initialize settings, loading ENV_FILE first when it is set."""
        if env_file := os.environ.get("ENV_FILE"):
            load_env_file(Path(env_file))
        super().__init__(**data)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the singleton settings instance."""
    return Settings()
