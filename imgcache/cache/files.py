"""Filesystem and download primitives used by the cache manager."""

import asyncio
import shutil
from abc import ABC, abstractmethod
from pathlib import Path

import httpx

from imgcache.cache.models import CacheInfo
from imgcache.config import CacheConfig, get_settings


class FileOperations(ABC):
    """Abstract base class for the file operations the cache relies on."""

    @abstractmethod
    async def exists(self, path: Path) -> bool:
        """Check whether a file exists."""
        pass

    @abstractmethod
    async def delete_file(self, path: Path) -> None:
        """Delete a file. A missing file is not an error."""
        pass

    @abstractmethod
    async def download_file(
        self,
        url: str,
        dest: Path,
        headers: dict[str, str] | None = None,
        allow_self_signed_ssl: bool = False,
    ) -> None:
        """Download ``url`` into ``dest``, creating parent directories.

        Raises:
            httpx.HTTPError: On network errors and non-2xx responses
            OSError: If the file cannot be written
        """
        pass

    @abstractmethod
    async def copy_file(self, src: Path, dest: Path) -> None:
        """Copy ``src`` to ``dest``, creating parent directories."""
        pass

    @abstractmethod
    async def clean_dir(self, path: Path) -> None:
        """Remove everything below ``path`` and leave it as an empty directory."""
        pass

    @abstractmethod
    async def get_dir_info(self, path: Path) -> CacheInfo:
        """Count the files below ``path`` and sum their sizes."""
        pass

    @abstractmethod
    def get_default_cache_dir(self) -> Path:
        """Directory used when no cache location is configured."""
        pass

    async def close(self) -> None:
        """Release held resources such as network clients."""


class LocalFileSystem(FileOperations):
    """File operations on the local disk, downloading with httpx."""

    def __init__(
        self,
        config: CacheConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize local file operations.

        Args:
            config: Cache settings (timeout, user agent). Defaults to global settings
            transport: Optional httpx transport, used instead of the network
        """
        self.config = config or get_settings().cache
        self.transport = transport
        self._clients: dict[bool, httpx.AsyncClient] = {}

    def _get_client(self, verify: bool) -> httpx.AsyncClient:
        """Get the HTTP client for a TLS verification mode."""
        client = self._clients.get(verify)
        if client is None:
            client = httpx.AsyncClient(
                headers={"User-Agent": self.config.user_agent},
                follow_redirects=True,
                timeout=self.config.timeout,
                verify=verify,
                transport=self.transport,
            )
            self._clients[verify] = client
        return client

    async def exists(self, path: Path) -> bool:
        return await asyncio.to_thread(Path(path).is_file)

    async def delete_file(self, path: Path) -> None:
        await asyncio.to_thread(Path(path).unlink, missing_ok=True)

    async def download_file(
        self,
        url: str,
        dest: Path,
        headers: dict[str, str] | None = None,
        allow_self_signed_ssl: bool = False,
    ) -> None:
        client = self._get_client(verify=not allow_self_signed_ssl)
        response = await client.get(url, headers=headers or {})
        response.raise_for_status()

        dest = Path(dest)
        await asyncio.to_thread(dest.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(dest.write_bytes, response.content)

    async def copy_file(self, src: Path, dest: Path) -> None:
        dest = Path(dest)
        await asyncio.to_thread(dest.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copyfile, src, dest)

    async def clean_dir(self, path: Path) -> None:
        path = Path(path)
        if path.exists():
            await asyncio.to_thread(shutil.rmtree, path)
        path.mkdir(parents=True, exist_ok=True)

    async def get_dir_info(self, path: Path) -> CacheInfo:
        def scan() -> CacheInfo:
            files = sorted(p for p in Path(path).rglob("*") if p.is_file())
            return CacheInfo(
                file_count=len(files),
                total_bytes=sum(p.stat().st_size for p in files),
                files=files,
            )

        if not Path(path).exists():
            return CacheInfo(file_count=0, total_bytes=0, files=[])
        return await asyncio.to_thread(scan)

    def get_default_cache_dir(self) -> Path:
        return self.config.cache_dir or Path.cwd() / ".cache" / "images"

    async def close(self) -> None:
        """Close HTTP clients."""
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()
