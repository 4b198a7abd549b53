from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional, Tuple
from urllib.parse import quote, unquote, urlparse

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when an object cannot be written, read or resolved."""


class LocalBucketStorage:
    """
    Public object buckets backed by a directory tree.

    Objects live at ``<root>/<bucket>/<path>`` and are published as
    ``<public_base_url>/<bucket>/<path>``; the API mounts the root under /storage.
    Blocking file I/O runs in worker threads.
    """

    def __init__(self, root: str | Path, public_base_url: str) -> None:
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")

    def _object_path(self, bucket: str, path: str) -> Path:
        parts = PurePosixPath(path.lstrip("/")).parts
        if not parts or any(p in ("..", ".") for p in parts) or "/" in bucket or bucket in ("", "..", "."):
            raise StorageError(f"Invalid object path: {bucket}/{path}")
        return self.root.joinpath(bucket, *parts)

    # PUBLIC_INTERFACE
    def public_url(self, bucket: str, path: str) -> str:
        """Public URL of an object."""
        return f"{self.public_base_url}/{bucket}/{quote(path.lstrip('/'))}"

    # PUBLIC_INTERFACE
    @staticmethod
    def path_from_url(url: Optional[str], bucket: str) -> Optional[str]:
        """
        Extract the object path inside ``bucket`` from a public URL.

        Works for URLs of this store (``.../<bucket>/<path>``) and for hosted
        bucket URLs of the form ``.../public/<bucket>/<path>``.
        """
        if not url:
            return None
        raw_path = unquote(urlparse(url).path)
        marker = f"/{bucket}/"
        if marker in raw_path:
            return raw_path.split(marker, 1)[1] or None
        if "/public/" in raw_path:
            return raw_path.split("/public/", 1)[1] or None
        return None

    # PUBLIC_INTERFACE
    def resolve_url(self, url: str) -> Optional[Tuple[str, str]]:
        """Return (bucket, path) when the URL points into this store, else None."""
        if not url.startswith(self.public_base_url + "/"):
            return None
        rest = unquote(url[len(self.public_base_url) + 1:].split("?", 1)[0])
        bucket, _, path = rest.partition("/")
        if not bucket or not path:
            return None
        return bucket, path

    # PUBLIC_INTERFACE
    async def upload(self, bucket: str, path: str, data: bytes, upsert: bool = True) -> str:
        """Write an object and return its public URL."""
        target = self._object_path(bucket, path)

        def _write() -> None:
            if target.exists() and not upsert:
                raise StorageError(f"Object already exists: {bucket}/{path}")
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            raise StorageError(f"Failed to upload {bucket}/{path}: {exc}") from exc
        logger.debug("Stored %s/%s (%d bytes)", bucket, path, len(data))
        return self.public_url(bucket, path)

    # PUBLIC_INTERFACE
    async def download(self, bucket: str, path: str) -> bytes:
        """Read an object's bytes."""
        target = self._object_path(bucket, path)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except OSError as exc:
            raise StorageError(f"Failed to read {bucket}/{path}: {exc}") from exc

    # PUBLIC_INTERFACE
    async def exists(self, bucket: str, path: str) -> bool:
        target = self._object_path(bucket, path)
        return await asyncio.to_thread(target.is_file)

    # PUBLIC_INTERFACE
    async def remove(self, bucket: str, paths: Iterable[str]) -> List[str]:
        """Delete objects; missing ones are ignored. Returns the paths actually removed."""
        targets = [(p, self._object_path(bucket, p)) for p in paths if p]

        def _remove() -> List[str]:
            removed: List[str] = []
            for path, target in targets:
                if target.is_file():
                    target.unlink()
                    removed.append(path)
            return removed

        try:
            return await asyncio.to_thread(_remove)
        except OSError as exc:
            raise StorageError(f"Failed to remove objects from {bucket}: {exc}") from exc
