"""
Storage backends for archive files
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional, Protocol
from urllib.parse import urlparse

import vercel_blob

from .errors import ConfigError

logger = logging.getLogger(__name__)

# Blob uploads are buffered in memory up to this size, then on disk
SPOOL_MAX_BYTES = 16 * 1024 * 1024


class Store(Protocol):
    """Path addressed storage for archive files.

    `create` truncates an existing file, so callers must check `exists` first
    when overwriting is not acceptable.
    """

    def create(self, path: str) -> BinaryIO: ...

    def exists(self, path: str) -> bool: ...

    def close(self) -> None: ...


class DiskStore:
    """Archive files on the local filesystem"""

    def __init__(self, base_path: str | os.PathLike):
        self.base_path = Path(base_path)

    def _resolve(self, relative_path: str) -> Path:
        return (self.base_path / relative_path).absolute()

    def create(self, path: str) -> BinaryIO:
        target = self._resolve(path)
        target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        return open(target, "wb")

    def exists(self, path: str) -> bool:
        try:
            self._resolve(path).stat()
        except FileNotFoundError:
            return False
        return True

    def close(self) -> None:
        pass


class BlobWriter:
    """Collects an archive file and uploads it to blob storage on close"""

    def __init__(self, key: str):
        self.key = key
        self.closed = False
        self._buffer = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_BYTES)

    def write(self, data: bytes) -> int:
        return self._buffer.write(data)

    def flush(self) -> None:
        self._buffer.flush()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._buffer.seek(0)
            data = self._buffer.read()
            vercel_blob.put(
                self.key,
                data,
                {
                    "contentType": "application/gzip",
                    "allowOverwrite": True,
                    "addRandomSuffix": False,
                },
            )
            logger.info(f"Uploaded {self.key} ({len(data)} bytes)")
        finally:
            self._buffer.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class BlobStore:
    """Archive files in Vercel Blob storage, below an optional prefix"""

    def __init__(self, prefix: str = "", token: Optional[str] = None):
        self.prefix = prefix.strip("/")
        # vercel_blob expects the token via environment variable
        if token:
            os.environ["BLOB_READ_WRITE_TOKEN"] = token

    def _key(self, path: str) -> str:
        if not self.prefix:
            return path.lstrip("/")
        return f"{self.prefix}/{path.lstrip('/')}"

    def create(self, path: str) -> BinaryIO:
        return BlobWriter(self._key(path))

    def exists(self, path: str) -> bool:
        key = self._key(path)
        listing = vercel_blob.list({"prefix": key})
        return any(blob.get("pathname") == key for blob in listing.get("blobs", []))

    def close(self) -> None:
        pass


class NoopStore:
    """Discards everything written to it; useful for dry runs"""

    def create(self, path: str) -> BinaryIO:
        return open(os.devnull, "wb")

    def exists(self, path: str) -> bool:
        return False

    def close(self) -> None:
        pass


def store_from_url(url: str, blob_token: Optional[str] = None) -> Store:
    """
    Build a store from a storage URL

    Supported schemes:
        file:///var/lib/archive   - local directory
        blob://archives/orders    - Vercel Blob, keys below the given prefix
        noop://                   - discard everything
    """
    parsed = urlparse(url)

    if parsed.scheme == "file":
        return DiskStore(parsed.netloc + parsed.path)
    if parsed.scheme == "blob":
        if not blob_token and not os.getenv("BLOB_READ_WRITE_TOKEN"):
            raise ConfigError("VERCEL_BLOB_RW_TOKEN is required for blob storage")
        return BlobStore(parsed.netloc + parsed.path, token=blob_token)
    if parsed.scheme == "noop":
        return NoopStore()
    raise ConfigError(f"unsupported storage scheme: {parsed.scheme!r}")
