"""Structured logging of cache failures.

Failures while producing a cached file are written as one record per error
to a rotating log file, either as JSON lines or as readable text depending
on ``LOG_FORMAT``.
"""

import json
import logging
import logging.handlers
import traceback
import uuid
from datetime import UTC, datetime
from enum import Enum
from functools import cache
from typing import Any

import httpx
from pydantic import BaseModel, Field

from imgcache.config import Settings, get_settings
from imgcache.errors.exceptions import NotCacheableError


class ErrorSeverity(Enum):
    """Error severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    def to_log_level(self) -> int:
        """Convert severity to Python logging level."""
        return getattr(logging, self.name)  # type: ignore[no-any-return]


class ErrorCategory(Enum):
    """What part of the cache a failure came from."""

    NETWORK = "network"
    FILESYSTEM = "filesystem"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


def categorize_exception(exception: BaseException) -> ErrorCategory:
    """Pick the error category matching an exception type."""
    if isinstance(exception, httpx.HTTPError):
        return ErrorCategory.NETWORK
    if isinstance(exception, NotCacheableError):
        return ErrorCategory.VALIDATION
    if isinstance(exception, OSError):
        return ErrorCategory.FILESYSTEM
    return ErrorCategory.UNKNOWN


class StructuredError(BaseModel):
    """A single cache failure, ready to be logged."""

    error_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    operation: str | None = None
    url: str | None = None
    file_path: str | None = None
    error_code: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    traceback: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")

    def summary(self) -> str:
        """One-line text rendering, skipping empty fields."""
        parts = [
            f"[{self.severity.value.upper()}] {self.message}",
            f"Category: {self.category.value}",
        ]
        if self.operation:
            parts.append(f"Operation: {self.operation}")
        if self.url:
            parts.append(f"URL: {self.url}")
        if self.file_path:
            parts.append(f"File: {self.file_path}")
        if self.error_code:
            parts.append(f"Code: {self.error_code}")
        if self.metadata:
            parts.append(f"Metadata: {json.dumps(self.metadata)}")
        return " | ".join(parts)


class JSONFormatter(logging.Formatter):
    """Render log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        structured = getattr(record, "structured_error", None)
        if structured is not None:
            return json.dumps(structured)

        return json.dumps(
            {
                "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
                "logger": record.name,
                "level": record.levelname,
                "message": record.getMessage(),
                "module": record.module,
                "line": record.lineno,
            }
        )


class StructuredLogger:
    """Writes StructuredError records to a rotating log file."""

    def __init__(self, name: str, config: Settings | None = None) -> None:
        """Initialize structured logger.

        Args:
            name: Logger name, also the log file's base name
            config: Settings providing the logging section. Defaults to global settings
        """
        self.name = name
        self.config = config or get_settings()
        self.logger = logging.getLogger(self.name)
        self.logger.setLevel(self.config.logging.level.upper())
        self.logger.handlers.clear()
        self.logger.addHandler(self._build_handler())

    def _build_handler(self) -> logging.Handler:
        log_config = self.config.logging
        log_config.log_dir.mkdir(exist_ok=True, parents=True)

        handler = logging.handlers.RotatingFileHandler(
            log_config.log_dir / f"{self.name}.log",
            maxBytes=log_config.max_bytes,
            backupCount=log_config.backup_count,
        )
        if log_config.format == "json":
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        return handler

    def log_error(self, error: StructuredError) -> None:
        """Log a structured error."""
        level = error.severity.to_log_level()
        if self.config.logging.format == "json":
            self.logger.log(level, error.message, extra={"structured_error": error.to_dict()})
        else:
            self.logger.log(level, error.summary())

    def create_error_from_exception(
        self,
        exception: BaseException,
        category: ErrorCategory | None = None,
        severity: ErrorSeverity | None = None,
        operation: str | None = None,
        url: str | None = None,
        file_path: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> StructuredError:
        """Create a structured error from an exception.

        The category is derived from the exception type unless given.
        """
        return StructuredError(
            message=str(exception),
            category=category or categorize_exception(exception),
            severity=severity or ErrorSeverity.ERROR,
            operation=operation,
            url=url,
            file_path=file_path,
            error_code=type(exception).__name__,
            metadata=metadata or {},
            traceback="".join(traceback.format_exception(exception)),
        )


@cache
def get_logger(name: str = "imgcache") -> StructuredLogger:
    """Get or create a logger instance."""
    return StructuredLogger(name)
