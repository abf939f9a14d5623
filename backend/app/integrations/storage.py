# backend/app/integrations/storage.py
"""
Blob storage collaborator.

The moderation and upload code only needs two calls: store bytes under a
path and get a URL back, and delete a path. LocalBlobStorage keeps files
on disk below STORAGE_DIR; main.py serves that directory at
STORAGE_PUBLIC_URL.
"""
import asyncio
import logging
import re
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def safe_file_name(name: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", Path(name or "").name)
    return cleaned or "file"


class BlobStorage(Protocol):
    async def store(self, data: bytes, path: str) -> str:
        ...

    async def delete(self, path: str) -> None:
        ...


class LocalBlobStorage:
    def __init__(self, root: str, public_url: str = "/files"):
        self.root = Path(root).resolve()
        self.public_url = public_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root not in target.parents:
            raise ValueError(f"Path escapes storage root: {path}")
        return target

    async def store(self, data: bytes, path: str) -> str:
        target = self._resolve(path)

        def _write():
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await asyncio.to_thread(_write)
        logger.info("Stored %d bytes at %s", len(data), path)
        return f"{self.public_url}/{path}"

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        # Missing files raise FileNotFoundError; callers decide whether that matters
        await asyncio.to_thread(target.unlink)
        logger.info("Deleted stored file %s", path)


def media_storage_path(vault_id: int, file_url: str) -> str:
    """Uploads live at {vault_id}/{file name}; the URL's last segment is the file name."""
    return f"{vault_id}/{file_url.rstrip('/').rsplit('/', 1)[-1]}"


async def discard_stored_file(storage: BlobStorage, path: str) -> bool:
    """
    Best-effort delete. Returns False instead of raising so that callers
    removing database rows are never blocked by the storage backend.
    """
    try:
        await storage.delete(path)
        return True
    except Exception:
        logger.exception("Error deleting file from storage: %s", path)
        return False
